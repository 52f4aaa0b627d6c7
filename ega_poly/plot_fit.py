"""
plot_fit.py

Script para visualizar el resultado del ajuste.
Grafica los puntos medidos junto con el polinomio encontrado y, al lado, la
evolución del fitness a lo largo de las generaciones.

Uso:
    ega-poly-plot results/final_result.json input.txt --save ajuste.png
"""

import argparse
import json
import sys

import matplotlib.pyplot as plt
import numpy as np

from .points import PointSet, polynomial_values, read_points


def load_results(results_path="results/final_result.json"):
    """Carga el ``final_result.json`` que escribe ``EGA.run``."""
    with open(results_path, "r") as f:
        return json.load(f)


def plot_fit(results, points: PointSet, save_path=None, show=True):
    """Dibuja los puntos, el polinomio ajustado y la historia del fitness."""
    coefficients = results["best"]["params"]
    history = results.get("history", {})

    figure = plt.figure(figsize=(12, 5))

    # Subplot 1: puntos y polinomio encontrado
    axes = figure.add_subplot(1, 2, 1)
    x_line = np.linspace(np.min(points.x), np.max(points.x), 200)
    axes.scatter(points.x, points.y, s=10, alpha=0.6, label="Puntos")
    label = " + ".join(f"{c:.3g}x^{k}" for k, c in enumerate(coefficients))
    axes.plot(x_line, polynomial_values(coefficients, x_line), "r-", linewidth=2, label=label)
    axes.set_xlabel("x")
    axes.set_ylabel("f(x)")
    axes.set_title("Polinomio ajustado")
    axes.legend(fontsize="small")
    axes.grid(True, alpha=0.3)

    # Subplot 2: evolución del fitness
    axes = figure.add_subplot(1, 2, 2)
    if history.get("min"):
        generations = range(1, len(history["min"]) + 1)
        axes.plot(generations, history["min"], "b-", label="Mejor Fitness", linewidth=2)
        axes.plot(generations, history["avg"], "r--", label="Fitness Promedio", alpha=0.7)
        axes.set_yscale("log")
        axes.legend()
    axes.set_xlabel("Generación")
    axes.set_ylabel("Fitness")
    axes.set_title("Evolución del Fitness")
    axes.grid(True, alpha=0.3)

    figure.tight_layout()
    if save_path:
        figure.savefig(save_path, dpi=150, bbox_inches="tight")
    if show:
        plt.show()
    return figure


def main(argv=None):
    parser = argparse.ArgumentParser(description="Grafica el polinomio ajustado y la evolución del fitness.")
    parser.add_argument("results", type=str, help="Ruta a final_result.json.")
    parser.add_argument("points", type=str, help="Archivo de puntos usado en el ajuste.")
    parser.add_argument("--save", type=str, default=None, help="Guardar la figura en este archivo.")
    parser.add_argument("--no-show", action="store_true", help="No abrir la ventana de la figura.")
    args = parser.parse_args(argv)

    try:
        results = load_results(args.results)
        points = read_points(args.points)
    except (FileNotFoundError, ValueError) as error:
        print(f"ERROR: {error}", file=sys.stderr)
        return 1
    plot_fit(results, points, save_path=args.save, show=not args.no_show)
    return 0


if __name__ == "__main__":
    sys.exit(main())
