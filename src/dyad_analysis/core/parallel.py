"""
Fan-out/fan-in execution of independent estimation tasks.

Per-row ability fits, per-pair RSC fits and per-pair bootstrap runs share
no mutable state, so they are dispatched through a bounded joblib worker
pool. Results always come back in task order.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from joblib import Parallel, delayed

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_N_JOBS = 1
DEFAULT_BACKEND = "loky"


@dataclass(frozen=True)
class ParallelConfig:
    """
    Worker-pool settings for data-parallel estimation.

    Attributes:
        n_jobs: Number of workers. 1 runs in-process; -1 uses all cores.
        backend: joblib backend name ("loky", "threading", ...).
        task_timeout: Per-task timeout in seconds for pooled execution.
            None disables the timeout. Ignored when n_jobs == 1.
    """

    n_jobs: int = DEFAULT_N_JOBS
    backend: str = DEFAULT_BACKEND
    task_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")
        if self.task_timeout is not None and self.task_timeout <= 0:
            raise ValueError(
                f"task_timeout must be positive, got {self.task_timeout}"
            )


def parallel_map(
    func: Callable[..., T],
    tasks: Iterable[Sequence[Any]],
    config: ParallelConfig | None = None,
) -> list[T]:
    """
    Apply `func(*task)` to every task, optionally across worker processes.

    With `n_jobs == 1` the tasks run in-process, in order, which keeps
    tracebacks simple and avoids pickling.

    Args:
        func: Module-level callable (must be picklable for n_jobs != 1).
        tasks: Iterable of positional-argument tuples, one per task.
        config: Worker-pool settings. Defaults to a single in-process worker.

    Returns:
        List of results, index-aligned with `tasks`.
    """
    if config is None:
        config = ParallelConfig()

    if config.n_jobs == 1:
        return [func(*task) for task in tasks]

    logger.debug(
        f"Dispatching tasks to {config.n_jobs} workers "
        f"(backend={config.backend}, timeout={config.task_timeout})"
    )
    runner = Parallel(
        n_jobs=config.n_jobs,
        backend=config.backend,
        timeout=config.task_timeout,
    )
    results: list[T] = runner(delayed(func)(*task) for task in tasks)
    return results
