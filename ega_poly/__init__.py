"""Ajuste de coeficientes de polinomios con un Algoritmo Genético Elitista (EGA)."""

from .distributed import GlobalResult, WorkerRunner, aggregate
from .ega_core import EGA, LoopState, Population, RunResult, crossover, mutate, select
from .errors import ConfigurationError, CoordinationError, InputDataError
from .evaluator_poly import make_evaluator
from .points import PointSet, generate_points, read_points
from .random_source import RandomSource

__version__ = "0.1.0"
