"""
distributed.py

Variante con varios workers: un conjunto de reinicios independientes del EGA.

Cada worker es un proceso propio, sin memoria compartida, con su propio flujo
aleatorio derivado de la semilla común (``SeedSequence.spawn``) para que los
workers no converjan al mismo paso. Todos comparten los mismos puntos (sólo
lectura) y la misma configuración. No hay comunicación durante la evolución:
al terminar, cada worker envía un único ``WorkerMessage`` al coordinador (el
rank 0, que también corre su propio EGA), y éste elige el de menor fitness.

Si un worker falla o termina sin entregar su resultado, la agregación falla con
``CoordinationError``: no hay recuperación con resultados parciales.
"""

import logging
import multiprocessing
import queue
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from .ega_core import EGA, RunResult, check_seed, read_ega_params
from .errors import ConfigurationError, CoordinationError
from .logger import get_logger
from .points import PointSet
from .random_source import RandomSource

logger = logging.getLogger(__name__)

COORDINATOR_RANK = 0


@dataclass(frozen=True)
class WorkerMessage:
    """Lo que un worker envía al coordinador, identificado por su rank.

    ``genes`` trae exactamente ``geneCount`` flotantes (el mejor individuo). Si el
    worker falló, ``error`` describe la falla y el resto de los campos no vale.
    """
    rank: int
    genes: Tuple[float, ...] = ()
    fitness: float = float("inf")
    elapsed_time: float = 0.0
    generation_count: int = 0
    state: str = ""
    error: Optional[str] = None

    @classmethod
    def from_result(cls, rank: int, result: RunResult) -> "WorkerMessage":
        return cls(rank=rank, genes=tuple(result.best_individual), fitness=float(result.best_fitness),
                   elapsed_time=float(result.elapsed_time), generation_count=int(result.generation_count),
                   state=result.state)

    def to_result(self) -> RunResult:
        return RunResult(best_individual=tuple(self.genes), best_fitness=self.fitness,
                         generation_count=self.generation_count, elapsed_time=self.elapsed_time, state=self.state)


@dataclass(frozen=True)
class GlobalResult:
    """El mejor resultado entre todos los workers, con el rank que lo produjo."""
    rank: int
    result: RunResult
    worker_results: Tuple[RunResult, ...] = ()


class ResultChannel:
    """Canal de mensajes worker -> coordinador sobre una ``multiprocessing.Queue``."""

    def __init__(self, message_queue=None):
        self.queue = message_queue if message_queue is not None else multiprocessing.Queue()

    def send(self, message: WorkerMessage):
        self.queue.put(message)

    def receive(self, timeout: float) -> WorkerMessage:
        """Bloquea hasta ``timeout`` segundos; lanza ``queue.Empty`` si no llegó nada."""
        return self.queue.get(timeout=timeout)


def spawn_seeds(seed, workers: int):
    """Una secuencia de semillas independiente por rank."""
    return np.random.SeedSequence(seed).spawn(workers)


def run_worker(rank: int, config: Dict, points: PointSet, seed_seq) -> RunResult:
    """Corre un EGA completo con el flujo aleatorio propio del rank."""
    logger.debug("Worker %d iniciando", rank)
    ega = EGA(config, points, random_source=RandomSource(seed_seq))
    return ega.run()


def _worker_main(rank: int, config: Dict, points: PointSet, seed_seq, channel: ResultChannel):
    # Punto de entrada de los procesos hijos: siempre envía exactamente un mensaje.
    # Con "spawn" el hijo no hereda los handlers del padre; con "fork" esto no cambia nada.
    get_logger()
    try:
        message = WorkerMessage.from_result(rank, run_worker(rank, config, points, seed_seq))
    except Exception as error:
        message = WorkerMessage(rank=rank, error=f"{type(error).__name__}: {error}")
    channel.send(message)


def gather_results(channel: ResultChannel, expected_ranks: Iterable[int], gene_count: int,
                   processes: Optional[Mapping] = None, poll_interval: float = 0.5) -> Dict[int, RunResult]:
    """Espera un mensaje de cada rank esperado y los devuelve como ``{rank: RunResult}``.

    Bloquea sin límite de tiempo mientras los workers sigan vivos. Falla con
    ``CoordinationError`` si un mensaje trae un error, tiene una cantidad de genes
    distinta de ``gene_count``, un rank inesperado o repetido, o si un proceso
    terminó sin haber entregado su mensaje.
    """
    pending = set(expected_ranks)
    received = {}
    processes = processes or {}
    dead_without_message = set()
    while pending:
        try:
            message = channel.receive(timeout=poll_interval)
        except queue.Empty:
            dead = {rank for rank in pending if rank in processes and not processes[rank].is_alive()}
            # un proceso muerto tiene una consulta más de gracia por si su mensaje venía en camino
            lost = dead & dead_without_message
            if lost:
                raise CoordinationError(f"Los workers {sorted(lost)} terminaron sin entregar su resultado.")
            dead_without_message = dead
            continue

        if message.rank not in pending:
            kind = "repetido" if message.rank in received else "inesperado"
            raise CoordinationError(f"Mensaje con rank {kind}: {message.rank}.")
        if message.error is not None:
            raise CoordinationError(f"El worker {message.rank} falló: {message.error}")
        if len(message.genes) != gene_count:
            raise CoordinationError(
                f"El worker {message.rank} envió {len(message.genes)} genes; se esperaban {gene_count}.")
        received[message.rank] = message.to_result()
        pending.discard(message.rank)
    return received


def aggregate(results) -> GlobalResult:
    """Elige el resultado de menor fitness; ante empates gana el rank más bajo.

    Args:
        results: ``{rank: RunResult}`` o una secuencia de RunResult indexada por rank.
    """
    if not isinstance(results, Mapping):
        results = dict(enumerate(results))
    if not results:
        raise CoordinationError("No hay resultados que agregar.")
    best_rank = min(results, key=lambda rank: (results[rank].best_fitness, rank))
    ordered = tuple(results[rank] for rank in sorted(results))
    return GlobalResult(rank=best_rank, result=results[best_rank], worker_results=ordered)


class WorkerRunner:
    """Lanza ``workers`` EGA independientes y agrega sus resultados en el rank 0.

    Args:
        config (Dict): Parámetros del EGA (los mismos para todos los workers).
        points (PointSet): Puntos compartidos en sólo lectura.
        workers (int): Cantidad total de workers, coordinador incluido.
        seed: Semilla común de la que se derivan los flujos de cada rank.
        start_method (str, optional): Método de inicio de ``multiprocessing``.
    """

    def __init__(self, config: Dict, points: PointSet, workers: int, seed=None, start_method: Optional[str] = None):
        try:
            self.workers = int(workers)
        except (TypeError, ValueError) as error:
            raise ConfigurationError(f"workers inválido: {error}") from error
        if self.workers < 1:
            raise ConfigurationError(f"workers debe ser al menos 1 (recibido {self.workers}).")
        self.config = dict(config)
        self.points = points
        # la configuración se valida una sola vez, antes de lanzar cualquier proceso
        params = read_ega_params(self.config, points)
        self.seed = params["seed"] if seed is None else check_seed(seed)
        self.gene_count = params["gene_count"]
        self.context = multiprocessing.get_context(start_method)

    def run(self) -> GlobalResult:
        seeds = spawn_seeds(self.seed, self.workers)
        channel = ResultChannel(self.context.Queue())
        processes = {}
        for rank in range(1, self.workers):
            process = self.context.Process(target=_worker_main, name=f"ega-worker-{rank}",
                                           args=(rank, self.config, self.points, seeds[rank], channel))
            process.start()
            processes[rank] = process

        try:
            results = {COORDINATOR_RANK: run_worker(COORDINATOR_RANK, self.config, self.points, seeds[COORDINATOR_RANK])}
            results.update(gather_results(channel, processes.keys(), self.gene_count, processes))
        except BaseException:
            for process in processes.values():
                if process.is_alive():
                    process.terminate()
            raise
        finally:
            for process in processes.values():
                process.join()

        for rank in sorted(results):
            result = results[rank]
            logger.info("[Rank %d] coeficientes=%s; fitness=%.6g; generaciones=%d; tiempo=%.3fs", rank,
                        np.round(result.best_individual, 6).tolist(), result.best_fitness,
                        result.generation_count, result.elapsed_time)
        global_result = aggregate(results)
        logger.info("Mejor resultado global: rank %d con fitness=%.6g", global_result.rank,
                    global_result.result.best_fitness)
        return global_result
