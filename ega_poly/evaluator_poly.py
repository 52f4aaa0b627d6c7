"""
evaluator_poly.py

Evaluadores de fitness para el ajuste polinomial.

El fitness de un individuo es la suma de los residuos al cuadrado entre el
polinomio construido con sus genes (coeficientes de menor a mayor orden) y los
puntos medidos:

    fitness = sum_pt ( sum_k gen[k] * x_pt^k  -  y_pt )^2

Un valor más bajo es mejor; cero es un ajuste perfecto.

Hay tres backends intercambiables, todos puros respecto de sus entradas y
numéricamente equivalentes salvo redondeo:

- ``SequentialEvaluator``: bucles explícitos, la referencia.
- ``VectorizedEvaluator``: una matriz de Vandermonde y un producto matricial.
- ``ParallelEvaluator``: reparte la población en trozos entre los procesos de
  un ``multiprocessing.Pool``. La llamada bloquea hasta que vuelven todos los
  trozos, así el bucle principal nunca avanza a la siguiente generación con
  una evaluación a medias.
"""

import logging
from multiprocessing import Pool, cpu_count

import numpy as np

from .errors import ConfigurationError
from .points import PointSet

logger = logging.getLogger(__name__)


def fitness_kernel(population: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Suma de residuos al cuadrado de cada fila de ``population`` (forma (P, G))."""
    gene_count = population.shape[1]
    # powers[pt, k] = x_pt^k
    powers = np.asarray(x, dtype=float)[:, None] ** np.arange(gene_count)
    residuals = powers @ population.T - np.asarray(y, dtype=float)[:, None]
    return np.sum(residuals * residuals, axis=0)


class FitnessEvaluator:
    """Interfaz común: ``evaluate(population) -> tabla de fitness``."""

    name = "base"

    def __init__(self, points: PointSet):
        self.points = points

    def _check(self, population: np.ndarray):
        if len(self.points) == 0:
            raise ValueError("No se puede evaluar sin puntos.")
        if population.ndim != 2 or population.shape[0] == 0:
            raise ValueError(f"Población vacía o mal formada: forma {population.shape}.")

    def evaluate(self, population: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class SequentialEvaluator(FitnessEvaluator):
    name = "sequential"

    def evaluate(self, population):
        self._check(population)
        fitnesses = np.empty(population.shape[0], dtype=float)
        # para cada individuo de la población
        for i, individual in enumerate(population):
            sum_error = 0.0
            # para cada punto dado
            for x, y in zip(self.points.x, self.points.y):
                f_approx = 0.0
                # para cada coeficiente: c_k * x^k
                for order, gen in enumerate(individual):
                    f_approx += float(gen) * float(x) ** order
                sum_error += (f_approx - float(y)) ** 2
            fitnesses[i] = sum_error
        return fitnesses


class VectorizedEvaluator(FitnessEvaluator):
    name = "vectorized"

    def evaluate(self, population):
        self._check(population)
        return fitness_kernel(population, self.points.x, self.points.y)


# Puntos del proceso hijo, cargados una sola vez por init_worker.
_worker_points = None


def init_worker(x: np.ndarray, y: np.ndarray):
    """Inicializador de los procesos del pool: deja los puntos en memoria del hijo."""
    global _worker_points
    _worker_points = (x, y)


def _evaluate_chunk(chunk: np.ndarray) -> np.ndarray:
    x, y = _worker_points
    return fitness_kernel(chunk, x, y)


class ParallelEvaluator(FitnessEvaluator):
    """Evalúa trozos de la población en paralelo con un pool de procesos.

    El pool se crea una vez y vive hasta ``close()``; los puntos viajan a cada
    proceso hijo sólo al inicializarlo.
    """

    name = "parallel"

    def __init__(self, points: PointSet, processes: int = None):
        super().__init__(points)
        if processes is None:
            processes = max(1, cpu_count() - 1)
        self.processes = int(max(1, processes))
        self.pool = Pool(processes=self.processes, initializer=init_worker,
                         initargs=(np.array(points.x), np.array(points.y)))
        logger.debug("Pool de evaluación con %d procesos", self.processes)

    def evaluate(self, population):
        self._check(population)
        if self.pool is None:
            raise RuntimeError("El pool de evaluación ya fue cerrado.")
        chunks =np.array_split(population, min(self.processes, population.shape[0]))
        results = self.pool.map(_evaluate_chunk, chunks)
        return np.concatenate(results)

    def close(self):
        if self.pool is not None:
            self.pool.close()
            self.pool.join()
            self.pool = None


BACKENDS = {
    SequentialEvaluator.name: SequentialEvaluator,
    VectorizedEvaluator.name: VectorizedEvaluator,
    ParallelEvaluator.name: ParallelEvaluator,
}


def make_evaluator(name: str, points: PointSet, processes: int = None) -> FitnessEvaluator:
    """Crea el backend de fitness por nombre: 'sequential', 'vectorized' o 'parallel'."""
    if name not in BACKENDS:
        raise ConfigurationError(f"Backend de fitness desconocido: '{name}'. Opciones: {sorted(BACKENDS)}")
    if name == ParallelEvaluator.name:
        return ParallelEvaluator(points, processes)
    return BACKENDS[name](points)
