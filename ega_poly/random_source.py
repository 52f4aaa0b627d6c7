"""
random_source.py

Fuente de números aleatorios del algoritmo genético.

Cada corrida (y cada worker en la variante distribuida) es dueña de su propio
flujo aleatorio: no hay estado global sembrado una sola vez al inicio del
proceso. Así los resultados son reproducibles por semilla y los workers no
quedan correlacionados entre sí.

La generación de desviaciones normales está aislada en funciones puras que
sólo reciben una fuente uniforme, de modo que se puede sustituir el método
sin tocar la lógica de mutación.
"""

import numpy as np
from typing import Callable, Optional


UniformSource = Callable[[int], np.ndarray]


def polar_deviates(uniform: UniformSource, size: int) -> np.ndarray:
    """Transformación de Box–Muller en su forma polar (con rechazo).

    Se sortean dos valores uniformes en (-1, 1); el par se acepta sólo si la suma
    de sus cuadrados ``s`` cae en (0, 1). El par aceptado se transforma en una
    desviación normal estándar con ``v1 * sqrt(-2 ln(s) / s)``.

    Args:
        uniform: Función que devuelve ``n`` valores uniformes en [0, 1).
        size (int): Cantidad de desviaciones a generar.

    Returns:
        np.ndarray: ``size`` valores con distribución N(0, 1).
    """
    deviates = np.empty(size, dtype=float)
    filled = 0
    while filled < size:
        needed = size - filled
        v1 = 2.0 * uniform(needed) - 1.0
        v2 = 2.0 * uniform(needed) - 1.0
        s = v1 * v1 + v2 * v2
        accepted = (s > 0.0) & (s < 1.0)
        v1 = v1[accepted][:needed]
        s = s[accepted][:needed]
        deviates[filled:filled + v1.size] = v1 * np.sqrt(-2.0 * np.log(s) / s)
        filled += v1.size
    return deviates


def box_muller_deviates(uniform: UniformSource, size: int) -> np.ndarray:
    """Box–Muller clásico (forma trigonométrica), sin rechazo."""
    u1 = 1.0 - uniform(size)  # (0, 1]
    u2 = uniform(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


class RandomSource:
    """Flujo aleatorio propio de una corrida del algoritmo.

    Envuelve un ``numpy.random.Generator`` y expone sólo lo que usan los
    operadores: uniformes, enteros y normales.
    """

    def __init__(self, seed=None, normal_deviates: Callable[[UniformSource, int], np.ndarray] = polar_deviates):
        """
        Args:
            seed: Entero, ``np.random.SeedSequence`` o None (entropía del sistema).
            normal_deviates: Generador de desviaciones normales estándar a partir
                             de una fuente uniforme. Por defecto, Box–Muller polar.
        """
        self.rng = np.random.default_rng(seed)
        self._normal_deviates = normal_deviates

    def random(self, size: int) -> np.ndarray:
        """Uniformes en [0, 1)."""
        return self.rng.random(size)

    def uniform(self, low: float, high: float, size=None):
        return self.rng.uniform(low, high, size)

    def integers(self, low: int, high: int, size=None):
        """Enteros uniformes en [low, high)."""
        return self.rng.integers(low, high, size)

    def standard_normal(self, size: int) -> np.ndarray:
        return self._normal_deviates(self.rng.random, size)

    def normal(self, mu: float, sigma: float, size: Optional[int] = None):
        """Normales N(mu, sigma). Con ``size=None`` devuelve un escalar."""
        if size is None:
            return float(mu + sigma * self.standard_normal(1)[0])
        return mu + sigma * self.standard_normal(size)
