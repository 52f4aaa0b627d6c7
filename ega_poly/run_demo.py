"""
run_demo.py

Punto de entrada para ajustar un polinomio con el Algoritmo Genético Elitista (EGA).

Carga la configuración desde un archivo YAML (fusionada con la configuración por
defecto), lee los puntos de un archivo o los genera de forma sintética y ejecuta
la variante de un solo proceso o la variante con varios workers.

Uso:
    ega-poly --config config.yaml --input input.txt
    ega-poly --input input.txt --workers 3
"""
import argparse
import json
import os
import sys

import yaml

from .config import build_config
from .distributed import GlobalResult, WorkerRunner
from .ega_core import EGA, RunResult
from .errors import ConfigurationError, CoordinationError, InputDataError
from .logger import get_logger
from .points import PointSet, generate_points, read_points

SEPARATOR = "-" * 60


def load_points(config) -> PointSet:
    """Lee los puntos de ``input_file`` o, si no hay archivo, los genera con ``generator_params``."""
    if config.get("input_file"):
        return read_points(config["input_file"])
    generator_params = config["generator_params"]
    try:
        return generate_points(
            generator_params["coefficients"],
            int(generator_params["pointCount"]),
            tuple(generator_params["x_range"]),
            float(generator_params["noise_std"]),
            generator_params["seed"],
        )
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"generator_params inválido: {error}") from error


def format_result(result: RunResult) -> str:
    # La solución es el primer individuo de la población: los mejores coeficientes
    lines = [f"\tc{order} = {gen:.6g}" for order, gen in enumerate(result.best_individual)]
    lines.append(f"Mejor fitness: {result.best_fitness:.6g}")
    lines.append(f"Generaciones: {result.generation_count} ({result.state})")
    lines.append(f"Tiempo total (s): {result.elapsed_time:.3f}")
    return "\n".join(lines)


def save_global_result(global_result: GlobalResult, output_dir) -> str:
    """Guarda el resultado de cada worker y el mejor global en ``global_result.json``."""
    os.makedirs(output_dir, exist_ok=True)
    summary = {
        "best_rank": global_result.rank,
        "best": global_result.result.to_dict(),
        "workers": [result.to_dict() for result in global_result.worker_results],
    }
    path = os.path.join(output_dir, "global_result.json")
    with open(path, "w") as fh:
        json.dump(summary, fh, indent=2)
    return path


def run(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ajuste de coeficientes de un polinomio con un algoritmo genético.")
    parser.add_argument("--config", type=str, default=None, help="Ruta al archivo de configuración YAML.")
    parser.add_argument("--input", type=str, default=None, help="Archivo de puntos 'x y'. Reemplaza input_file.")
    parser.add_argument("--workers", type=int, default=None, help="Cantidad de workers independientes.")
    parser.add_argument("--output-dir", type=str, default=None, help="Directorio para el resultado final.")
    args = parser.parse_args(argv)

    overrides = {}
    if args.input is not None:
        overrides["input_file"] = args.input
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    config = build_config(args.config, overrides)

    logger = get_logger("ega_poly", config["log_dir"])
    points = load_points(config)
    logger.info("%d puntos cargados", len(points))

    print(SEPARATOR)
    if config["workers"] == 1:
        ega = EGA(config["ega_params"], points)
        result = ega.run(output_dir=config["output_dir"])
        print("¡Terminado! Solución encontrada:")
        print(format_result(result))
    else:
        global_result = WorkerRunner(config["ega_params"], points, config["workers"]).run()
        for rank, result in enumerate(global_result.worker_results):
            print(f"Rank {rank}:")
            print(format_result(result))
        print(SEPARATOR)
        print(f"¡Terminado! Mejor solución global (rank {global_result.rank}):")
        print(format_result(global_result.result))
        if config["output_dir"] is not None:
            save_global_result(global_result, config["output_dir"])
    return 0


def main(argv=None) -> int:
    """Ejecuta la demostración y convierte los errores esperados en un mensaje y código 1."""
    try:
        return run(argv)
    except (FileNotFoundError, ConfigurationError, InputDataError, CoordinationError, yaml.YAMLError) as error:
        print(f"ERROR: {error}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
