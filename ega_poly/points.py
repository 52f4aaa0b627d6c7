"""
points.py

Conjunto de puntos (x, y) que el algoritmo genético intenta aproximar con un
polinomio, junto con los colaboradores externos que lo producen:

- ``read_points``: lee un archivo de pares de flotantes separados por espacios.
- ``generate_points`` / ``write_points``: generan un archivo sintético a partir
  de coeficientes conocidos y ruido gaussiano opcional.

Uso del generador:
    ega-poly-generate input.txt --count 100 --coefficients 1 2 3 4 --noise 0.05
"""

import argparse
import sys
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .errors import InputDataError


@dataclass(frozen=True)
class PointSet:
    """Puntos de muestra inmutables, compartidos en sólo lectura por todas las evaluaciones."""
    x: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        x = np.array(self.x, dtype=float)
        y = np.array(self.y, dtype=float)
        if x.ndim != 1 or x.shape != y.shape:
            raise InputDataError(f"x e y deben ser secuencias de igual longitud (x={x.shape}, y={y.shape}).")
        x.flags.writeable = False
        y.flags.writeable = False
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    def __len__(self):
        return int(self.x.shape[0])


def polynomial_values(coefficients: Sequence[float], x: np.ndarray) -> np.ndarray:
    """Evalúa el polinomio (coeficientes de menor a mayor orden) en ``x``."""
    return np.polynomial.polynomial.polyval(np.asarray(x, dtype=float), np.asarray(coefficients, dtype=float))


def read_points(path) -> PointSet:
    """Lee pares ``x f(x)`` separados por espacios en blanco hasta el final del archivo.

    Raises:
        FileNotFoundError: Si el archivo no existe.
        InputDataError: Si hay un token no numérico, una cantidad impar de valores
                        o ningún punto.
    """
    with open(path, "r") as filehandler:
        tokens = filehandler.read().split()
    if not tokens:
        raise InputDataError(f"El archivo {path} no contiene puntos.")
    if len(tokens) % 2 != 0:
        raise InputDataError(f"El archivo {path} tiene una cantidad impar de valores ({len(tokens)}).")
    try:
        values = np.array([float(token) for token in tokens], dtype=float)
    except ValueError as error:
        raise InputDataError(f"Valor no numérico en {path}: {error}") from error
    return PointSet(x=values[0::2], y=values[1::2])


def generate_points(coefficients: Sequence[float], count: int, x_range: Tuple[float, float] = (-1.0, 1.0),
                    noise_std: float = 0.0, seed=None) -> PointSet:
    """Genera ``count`` puntos del polinomio con ruido gaussiano de desviación ``noise_std``."""
    if count < 1:
        raise InputDataError("count debe ser al menos 1.")
    rng = np.random.default_rng(seed)
    x = np.sort(rng.uniform(x_range[0], x_range[1], count))
    y = polynomial_values(coefficients, x)
    if noise_std > 0:
        y = y + rng.normal(0.0, noise_std, size=count)
    return PointSet(x=x, y=y)


def write_points(path, points: PointSet):
    """Escribe un punto por línea: ``x y``."""
    np.savetxt(path, np.column_stack([points.x, points.y]), fmt="%.10g")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Genera un archivo de puntos ruidosos de un polinomio.")
    parser.add_argument("output", type=str, help="Archivo de salida.")
    parser.add_argument("--count", type=int, default=100, help="Cantidad de puntos.")
    parser.add_argument("--coefficients", type=float, nargs="+", default=[1.0, 2.0, 3.0, 4.0],
                        help="Coeficientes c0 c1 ... (de menor a mayor orden).")
    parser.add_argument("--x-range", type=float, nargs=2, default=[-1.0, 1.0], metavar=("LOW", "HIGH"))
    parser.add_argument("--noise", type=float, default=0.0, help="Desviación estándar del ruido.")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    try:
        points = generate_points(args.coefficients, args.count, tuple(args.x_range), args.noise, args.seed)
    except InputDataError as error:
        print(f"ERROR: {error}", file=sys.stderr)
        return 1
    write_points(args.output, points)
    print(f"{len(points)} puntos escritos en {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
