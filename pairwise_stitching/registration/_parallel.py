"""Helpers for running independent sub-tasks on a shared worker pool."""
import contextlib
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from multiprocessing import cpu_count
from typing import Callable, Generator, Iterable, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_task_count() -> int:
    """Number of chunks a stage is split into (one per CPU)."""
    return max(1, cpu_count())


def chunk_bounds(length: int, n_chunks: Optional[int] = None) -> List[Tuple[int, int]]:
    """Split ``range(length)`` into at most ``n_chunks`` contiguous [start, stop) pairs."""
    if length <= 0:
        return []
    if n_chunks is None:
        n_chunks = default_task_count()
    n_chunks = max(1, min(n_chunks, length))
    step, remainder = divmod(length, n_chunks)
    bounds = []
    start = 0
    for i in range(n_chunks):
        stop = start + step + (1 if i < remainder else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


def run_all(executor: Executor, tasks: Iterable[Callable[[], T]]) -> List[T]:
    """Submit every task and block until all of them are done.

    Results come back in submission order. The first exception raised by a
    task is re-raised here, after all tasks have finished.
    """
    futures: List[Future] = [executor.submit(task) for task in tasks]
    results = []
    error: Optional[BaseException] = None
    for future in futures:
        try:
            results.append(future.result())
        except Exception as e:
            if error is None:
                error = e
    if error is not None:
        raise error
    return results


@contextlib.contextmanager
def worker_pool(num_workers: Optional[int] = None) -> Generator[Executor, None, None]:
    """A thread pool sized to the hardware, shut down on every exit path."""
    n_workers = num_workers or cpu_count()
    logger.debug(f"Starting worker pool with {n_workers} threads")
    executor = ThreadPoolExecutor(max_workers=n_workers)
    try:
        yield executor
    finally:
        executor.shutdown(wait=True)
        logger.debug("Worker pool shut down")
