"""
ega_core.py

Este archivo contiene el núcleo del Algoritmo Genético Elitista (EGA) que ajusta
los coeficientes de un polinomio de grado fijo a un conjunto de puntos ruidosos.

Características Principales:
- Individuo: Una fila de la población, un vector de ``geneCount`` coeficientes reales
  (de menor a mayor orden).
- Población: Dos buffers de tamaño fijo ("actual" y "auxiliar") que intercambian su
  rol en cada generación (doble buffer, sin copias al intercambiar).
- Cruzamiento: La mitad más apta se conserva; el resto se llena con hijos de un solo
  punto de corte entre padres de esa mitad.
- Mutación: Ruido uniforme pequeño sobre los genes, con una intensidad por individuo
  sorteada de una normal. El mejor individuo nunca se muta (elitismo).
- Selección: Ordena la población por fitness ascendente (estable ante empates).
- Terminación: Objetivo alcanzado (``converged``), o límite de generaciones / racha
  sin cambios agotados (``exhausted``).
"""

import json
import logging
import math
import os
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from .config import DEFAULT_EGA_PARAMS
from .errors import ConfigurationError
from .evaluator_poly import BACKENDS, FitnessEvaluator, make_evaluator
from .points import PointSet
from .random_source import RandomSource

logger = logging.getLogger(__name__)


# -----------------------
# Población
# -----------------------
class Population:
    """Dos buffers de individuos con roles "actual" y "auxiliar".

    Los operadores leen de ``current`` y escriben en ``scratch``; ``swap()``
    intercambia los roles sin copiar datos. Ninguna fila pertenece a ambos
    buffers a la vez.
    """

    def __init__(self, size: int, gene_count: int):
        self.current = np.zeros((size, gene_count), dtype=float)
        self.scratch = np.zeros((size, gene_count), dtype=float)

    @property
    def size(self) -> int:
        return self.current.shape[0]

    @property
    def gene_count(self) -> int:
        return self.current.shape[1]

    def initialize(self, random_source: RandomSource, low: float, high: float):
        """Llena cada gen con un valor uniforme en [low, high]."""
        self.current[:] = random_source.uniform(low, high, self.current.shape)

    def swap(self):
        self.current, self.scratch = self.scratch, self.current

    @property
    def best(self) -> np.ndarray:
        return self.current[0]


# -----------------------
# Operadores
# -----------------------
def crossover(population: np.ndarray, out: np.ndarray, random_source: RandomSource) -> np.ndarray:
    """Crea la siguiente generación a partir de la mitad más apta de ``population``.

    ``population`` ya viene ordenada (mejor primero). La mitad élite se copia sin
    cambios en las mismas posiciones de ``out``; el resto se completa con pares de
    hijos. Los dos padres se eligen al azar, con reemplazo, entre la élite; el punto
    de corte se elige entre 1 y ``geneCount - 2`` para que cada hijo tenga genes de
    ambos padres.

    Por ejemplo:
        padre1 == [0 0 0 0]
        padre2 == [1 1 1 1]
        punto de corte = 2
        hijo1  == [0 0 1 1]
        hijo2  == [1 1 0 0]

    Args:
        population (np.ndarray): Población actual, forma (P, G).
        out (np.ndarray): Buffer de salida con la misma forma.
        random_source (RandomSource): Flujo aleatorio de la corrida.

    Returns:
        np.ndarray: ``out``, con la nueva generación.
    """
    size, gene_count = population.shape
    if gene_count < 3:
        raise ValueError("El cruzamiento de un punto necesita al menos 3 genes.")
    elite_size = max(1, size // 2)
    out[:elite_size] = population[:elite_size]

    remaining = size - elite_size
    if remaining == 0:
        return out
    pairs = (remaining + 1) // 2
    parent1 = random_source.integers(0, elite_size, pairs)
    parent2 = random_source.integers(0, elite_size, pairs)
    crosspoints = random_source.integers(1, gene_count - 1, pairs)

    before_cut = np.arange(gene_count)[None, :] < crosspoints[:, None]
    children = np.empty((2 * pairs, gene_count), dtype=float)
    children[0::2] = np.where(before_cut, population[parent1], population[parent2])
    children[1::2] = np.where(before_cut, population[parent2], population[parent1])
    # con un resto impar sólo entra el primer hijo del último par
    out[elite_size:] = children[:remaining]
    return out


def mutate(population: np.ndarray, random_source: RandomSource, individual_mean: float, individual_std: float,
           gene_mean: float, gene_std: float, step: float = 0.01) -> np.ndarray:
    """Aplica ruido a los genes, en el lugar, salvo al individuo 0.

    Para cada individuo se sortea un umbral N(individual_mean, individual_std),
    truncado a entero (la "cantidad" de mutación). Para cada gen se sortea
    N(gene_mean, gene_std); si queda por debajo del umbral, al gen se le suma un
    valor uniforme en [-step, step].

    El individuo 0 es el mejor de la generación anterior y se conserva intacto, así
    el mejor fitness nunca empeora.
    """
    size, gene_count = population.shape
    if size < 2:
        return population
    rows = size - 1
    thresholds = np.trunc(random_source.normal(individual_mean, individual_std, rows))
    gene_samples = random_source.normal(gene_mean, gene_std, rows * gene_count).reshape(rows, gene_count)
    mutated = gene_samples < thresholds[:, None]
    noise = step * (2.0 * random_source.random(rows * gene_count).reshape(rows, gene_count) - 1.0)
    population[1:] += np.where(mutated, noise, 0.0)
    return population


def rank_indices(fitness: np.ndarray) -> np.ndarray:
    """Permutación de índices que ordena ``fitness`` de menor a mayor; los empates respetan el índice original."""
    return np.argsort(fitness, kind="stable")


def select(population: np.ndarray, fitness: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Reordena los individuos por fitness ascendente dentro de ``out``.

    No se crea ni se destruye ningún individuo, sólo se reordena. Después de la
    selección la fila 0 de ``out`` es la de menor fitness.

    Returns:
        np.ndarray: La tabla de fitness en el nuevo orden.
    """
    order = rank_indices(fitness)
    np.take(population, order, axis=0, out=out)
    return fitness[order]


# -----------------------
# Resultado de una corrida
# -----------------------
class LoopState(str, Enum):
    INITIALIZING = "initializing"
    EVOLVING = "evolving"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RunResult:
    """Resultado de una corrida: se produce una sola vez, al terminar el bucle."""
    best_individual: Tuple[float, ...]
    best_fitness: float
    generation_count: int
    elapsed_time: float
    state: str = ""

    def to_dict(self) -> Dict:
        result = asdict(self)
        result["best_individual"] = list(self.best_individual)
        return result


# -----------------------
# Lectura de parámetros
# -----------------------
def check_seed(seed):
    """Acepta ``None`` o un entero no negativo; cualquier otra semilla es un error de configuración."""
    if seed is None:
        return None
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise ConfigurationError(f"seed debe ser un entero no negativo o null (recibido {seed!r}).")
    if seed < 0:
        raise ConfigurationError(f"seed no puede ser negativa (recibido {seed}).")
    return int(seed)


def read_ega_params(config: Dict, points: PointSet) -> Dict:
    """Convierte y valida los parámetros del EGA, completando con los valores por defecto.

    Se usa antes de reservar nada (población, pool de evaluación o procesos de
    los workers). Cualquier valor inválido lanza ``ConfigurationError``.

    Returns:
        Dict: Los parámetros ya convertidos, con nombres de atributo de ``EGA``.
    """
    config = dict(DEFAULT_EGA_PARAMS, **config)
    try:
        params = {
            "pop_size": int(config["populationSize"]),
            "gene_count": int(config["geneCount"]),
            "point_count": len(points) if config["pointCount"] is None else int(config["pointCount"]),
            "individual_mean": float(config["mutationIndividualMean"]),
            "individual_std": float(config["mutationIndividualStdDev"]),
            "gene_mean": float(config["mutationGeneMean"]),
            "gene_std": float(config["mutationGeneStdDev"]),
            "mutation_step": float(config["mutationStep"]),
            "max_generations": int(config["maxGenerationNumber"]),
            "max_const_iter": int(config["maxConstIter"]),
            "target_error": float(config["targetError"]),
            "convergence_epsilon": float(config["convergenceEpsilon"]),
            "backend": str(config["backend"]),
            "processes": None if config["processes"] is None else int(config["processes"]),
            "log_every": int(config["log_every"]),
        }
        params["init_low"], params["init_high"] = (float(bound) for bound in config["init_range"])
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"Configuración inválida: {error}") from error
    params["seed"] = check_seed(config["seed"])

    if params["pop_size"] < 1:
        raise ConfigurationError(f"populationSize debe ser al menos 1 (recibido {params['pop_size']}).")
    if params["gene_count"] < 3:
        raise ConfigurationError(f"geneCount debe ser al menos 3 (recibido {params['gene_count']}).")
    if params["point_count"] < 1 or len(points) == 0:
        raise ConfigurationError("Se necesita al menos un punto para evaluar el fitness.")
    if params["point_count"] != len(points):
        raise ConfigurationError(
            f"pointCount={params['point_count']} no coincide con los {len(points)} puntos leídos.")
    if params["individual_std"] < 0 or params["gene_std"] < 0:
        raise ConfigurationError("Las desviaciones estándar de mutación no pueden ser negativas.")
    if params["mutation_step"] < 0:
        raise ConfigurationError("mutationStep no puede ser negativo.")
    if params["max_generations"] < 1 or params["max_const_iter"] < 1:
        raise ConfigurationError("maxGenerationNumber y maxConstIter deben ser al menos 1.")
    if params["target_error"] < 0:
        raise ConfigurationError("targetError no puede ser negativo.")
    if not params["convergence_epsilon"] > 0:
        raise ConfigurationError("convergenceEpsilon debe ser positivo.")
    if not params["init_low"] < params["init_high"]:
        raise ConfigurationError(f"init_range inválido: [{params['init_low']}, {params['init_high']}].")
    if params["backend"] not in BACKENDS:
        raise ConfigurationError(
            f"Backend de fitness desconocido: '{params['backend']}'. Opciones: {sorted(BACKENDS)}")
    return params


# -----------------------
# EGA core
# -----------------------
class EGA:
    """Bucle principal del Algoritmo Genético Elitista.

    Estados: ``initializing -> evolving -> converged | exhausted``. La
    configuración se valida en el constructor, antes de reservar la población;
    una configuración inválida lanza ``ConfigurationError`` sin ejecutar nada.
    """

    def __init__(self, config: Dict, points: PointSet, random_source: Optional[RandomSource] = None,
                 evaluator: Optional[FitnessEvaluator] = None):
        """
        Args:
            config (Dict): Parámetros del algoritmo (ver ``config.DEFAULT_EGA_PARAMS``).
                           Las claves faltantes toman el valor por defecto.
            points (PointSet): Puntos a aproximar.
            random_source (RandomSource, optional): Flujo aleatorio propio. Si no se
                                                    da, se crea uno con ``seed``.
            evaluator (FitnessEvaluator, optional): Backend de fitness. Si no se da,
                                                    se crea el indicado por ``backend``.
        """
        self.config = dict(DEFAULT_EGA_PARAMS)
        self.config.update(config)
        self.points = points
        self._read_config()

        self.random_source = random_source if random_source is not None else RandomSource(self.seed)
        self._owns_evaluator = evaluator is None
        self.evaluator = evaluator if evaluator is not None else make_evaluator(self.backend, points, self.processes)

        self.history = {"min": [], "avg": [], "gen_time": []}
        self._initialize()

    def _read_config(self):
        for name, value in read_ega_params(self.config, self.points).items():
            setattr(self, name, value)

    def _initialize(self):
        self.state = LoopState.INITIALIZING
        self.population = Population(self.pop_size, self.gene_count)
        self.population.initialize(self.random_source, self.init_low, self.init_high)
        self.generation = 0
        self.no_change_streak = 0
        self.best_fitness = math.inf
        self.previous_best_fitness = math.inf

    def _termination_state(self) -> Optional[LoopState]:
        if self.best_fitness <= self.target_error:
            return LoopState.CONVERGED
        if self.generation >= self.max_generations or self.no_change_streak >= self.max_const_iter:
            return LoopState.EXHAUSTED
        return None

    def close(self):
        """Libera el evaluador creado por el EGA (el pool del backend ``parallel``)."""
        if self._owns_evaluator and self.evaluator is not None:
            self.evaluator.close()
            self.evaluator = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def step(self) -> float:
        """Ejecuta una generación completa y devuelve el mejor fitness."""
        if self.evaluator is None:
            raise RuntimeError("El EGA ya fue cerrado: no se pueden ejecutar más generaciones.")
        start = time.perf_counter()
        population = self.population

        # 1. Cruzamiento de la mitad más apta; los hijos pasan a ser la población actual
        crossover(population.current, population.scratch, self.random_source)
        population.swap()

        # 2. Mutación (el individuo 0 queda intacto)
        mutate(population.current, self.random_source, self.individual_mean, self.individual_std,
               self.gene_mean, self.gene_std, self.mutation_step)

        # 3. Evaluación de la población mutada, todavía sin ordenar
        fitness = self.evaluator.evaluate(population.current)

        # 4. Selección: la población ordenada pasa a ser la actual
        ranked_fitness = select(population.current, fitness, population.scratch)
        population.swap()
        self.best_fitness = float(ranked_fitness[0])
        self.generation += 1

        # ¿El fitness sigue bajando o estamos estancados en un mínimo local?
        if math.fabs(self.best_fitness - self.previous_best_fitness) < self.convergence_epsilon:
            self.no_change_streak += 1
        else:
            self.no_change_streak = 0
        self.previous_best_fitness = self.best_fitness

        self.history["min"].append(self.best_fitness)
        self.history["avg"].append(float(np.mean(ranked_fitness)))
        self.history["gen_time"].append(time.perf_counter() - start)
        return self.best_fitness

    def run(self, output_dir: Optional[str] = None) -> RunResult:
        """Ejecuta generaciones hasta que se cumpla una condición de terminación.

        Args:
            output_dir (str, optional): Si se indica, se guarda ``final_result.json`` al
                                        terminar (nunca resultados intermedios).

        Returns:
            RunResult: El mejor individuo, su fitness, las generaciones y el tiempo.
        """
        t0 = time.perf_counter()
        self.state = LoopState.EVOLVING
        try:
            terminal_state = self._termination_state()
            while terminal_state is None:
                self.step()
                if self.log_every and self.generation % self.log_every == 0:
                    logger.info("[Gen %d] min=%.6g; avg=%.6g; sin cambios=%d", self.generation,
                                self.best_fitness, self.history["avg"][-1], self.no_change_streak)
                terminal_state = self._termination_state()
        finally:
            self.close()
        total_time = time.perf_counter() - t0
        self.state = terminal_state

        result = RunResult(
            best_individual=tuple(float(gen) for gen in self.population.best),
            best_fitness=self.best_fitness,
            generation_count=self.generation,
            elapsed_time=total_time,
            state=terminal_state.value,
        )
        logger.info("Fin (%s) en la generación %d: fitness=%.6g; tiempo=%.3fs", terminal_state.value,
                    self.generation, self.best_fitness, total_time)
        if output_dir is not None:
            self.save_result(result, output_dir)
        return result

    def save_result(self, result: RunResult, output_dir: str) -> str:
        """Guarda el resultado final, la historia y la configuración en ``final_result.json``."""
        os.makedirs(output_dir, exist_ok=True)
        final = {
            "history": self.history,
            "best": {
                "params": list(result.best_individual),
                "fitness": result.best_fitness,
            },
            "generations": result.generation_count,
            "state": result.state,
            "config": self.config,
            "total_time_s": result.elapsed_time,
        }
        path = os.path.join(output_dir, "final_result.json")
        with open(path, "w") as fh:
            json.dump(final, fh, indent=2, default=str)
        return path
