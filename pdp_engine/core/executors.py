# pdp_engine/core/executors.py
"""Pluggable executors for the per-grid-row loop.

Any ``concurrent.futures.Executor`` can drive the averaging engine. This
module adds an in-thread ``SequentialExecutor`` and a factory for the
thread and process pools configured through ``ComputeConfig``.
"""

import os
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from ..config.pdp_config import EXECUTOR_BACKENDS
from ..utils.exceptions import validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SequentialExecutor(Executor):
    """Executor running each submitted call immediately in the caller's thread."""

    max_workers = 1

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


def resolve_n_jobs(n_jobs: int) -> int:
    """Translate ``-1`` into the CPU count."""
    if n_jobs == -1:
        return os.cpu_count() or 1
    validate_parameter("n_jobs", n_jobs, min_value=1)
    return n_jobs


def worker_count(executor: Optional[Executor]) -> int:
    """Best-effort number of workers behind an executor."""
    if executor is None or isinstance(executor, SequentialExecutor):
        return 1
    return getattr(executor, "_max_workers", None) or os.cpu_count() or 1


def make_executor(backend: str = "sequential", n_jobs: int = 1) -> Executor:
    """Create an executor for a backend name.

    Args:
        backend: "sequential", "thread" or "process"
        n_jobs: Number of workers (-1 for all CPUs)

    Example:
        >>> with make_executor("thread", n_jobs=4) as executor:
        ...     result = compute(model, grid, X, executor=executor)
    """
    validate_parameter("backend", backend, valid_values=EXECUTOR_BACKENDS)
    n_workers = resolve_n_jobs(n_jobs)

    if backend == "sequential" or n_workers == 1:
        return SequentialExecutor()

    logger.info(f"Starting {backend} executor with {n_workers} workers")
    if backend == "thread":
        return ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="pdp")
    return ProcessPoolExecutor(max_workers=n_workers)


@contextmanager
def executor_scope(
    executor: Optional[Executor] = None,
    backend: str = "sequential",
    n_jobs: int = 1
) -> Iterator[Executor]:
    """Yield the caller's executor, or an owned one that is shut down on exit."""
    if executor is not None:
        yield executor
        return

    owned = make_executor(backend, n_jobs)
    try:
        yield owned
    finally:
        owned.shutdown(wait=True, cancel_futures=True)
