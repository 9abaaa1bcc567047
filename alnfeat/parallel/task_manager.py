"""
Worker pools for fanning record batches out over processes or threads.

Both pools stream: at most two tasks per worker are taken from the input
iterator ahead of the results already handed back, and results come back in
submission order so partial tables can be merged while the rest of the file
is still being read. Large shared state goes to each worker once, through
the pool initializer, rather than with every task.
"""

import os
import logging
from itertools import islice
from multiprocessing import Pool as ProcessPool
from concurrent.futures import ThreadPoolExecutor
from collections import deque
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

POOL_TYPES = ("process", "thread")


def iter_batches(items: Iterable[Any], batch_size: int) -> Iterator[List[Any]]:
    """
    Cut an iterable into lists of at most batch_size items.

    The input is consumed lazily, so a generator over a large file is never
    held in memory as a whole. A batch_size below 1 is treated as 1.
    """
    batch_size = max(1, batch_size)
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, batch_size))
        if not batch:
            return
        yield batch


class WorkerPool:
    """
    Common interface of the process and thread pools.

    Use as a context manager; the underlying executor is started on entry
    and shut down on exit. When given, initializer(*initargs) runs once in
    every worker before it takes its first task.
    """

    kind = ""

    def __init__(self, num_workers: Optional[int] = None,
                 initializer: Optional[Callable] = None, initargs: Tuple = ()):
        if not isinstance(num_workers, int) or num_workers <= 0:
            num_workers = os.cpu_count() or 4
        self.num_workers = num_workers
        self.initializer = initializer
        self.initargs = tuple(initargs)
        self._executor = None

    @property
    def window(self) -> int:
        """Largest number of tasks submitted but not yet handed back."""
        return self.num_workers * 2

    def start(self):
        raise NotImplementedError

    def shutdown(self):
        raise NotImplementedError

    def imap(self, func: Callable, tasks: Iterable[Any]) -> Iterator[Any]:
        """
        Yield func(task) for every task, in task order.

        Tasks are pulled from the iterator only while fewer than window of
        them are pending. The first exception raised by a worker is logged
        and re-raised; outstanding work is abandoned.
        """
        raise NotImplementedError

    def map(self, func: Callable, tasks: Iterable[Any]) -> List[Any]:
        return list(self.imap(func, tasks))

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(num_workers={self.num_workers})"


class ProcessWorkerPool(WorkerPool):
    """Pool of worker processes; func, tasks and initargs must be picklable."""

    kind = "process"

    def start(self):
        if self._executor is None:
            logger.debug(f"Starting {self.num_workers} worker processes")
            self._executor = ProcessPool(processes=self.num_workers,
                                         initializer=self.initializer,
                                         initargs=self.initargs)

    def shutdown(self):
        if self._executor is not None:
            self._executor.close()
            self._executor.join()
            self._executor = None

    def imap(self, func: Callable, tasks: Iterable[Any]) -> Iterator[Any]:
        self.start()
        # Pool.imap would drain the whole task iterator up front
        pending = deque()
        try:
            for task in tasks:
                pending.append(self._executor.apply_async(func, (task,)))
                if len(pending) >= self.window:
                    yield pending.popleft().get()
            while pending:
                yield pending.popleft().get()
        except Exception as e:
            logger.error(f"Worker process failed: {e}", exc_info=True)
            self._executor.terminate()
            self._executor = None
            raise


class ThreadWorkerPool(WorkerPool):
    """Pool of worker threads sharing the caller's memory."""

    kind = "thread"

    def start(self):
        if self._executor is None:
            logger.debug(f"Starting {self.num_workers} worker threads")
            self._executor = ThreadPoolExecutor(max_workers=self.num_workers,
                                                initializer=self.initializer,
                                                initargs=self.initargs)

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def imap(self, func: Callable, tasks: Iterable[Any]) -> Iterator[Any]:
        self.start()
        pending = deque()
        try:
            for task in tasks:
                pending.append(self._executor.submit(func, task))
                if len(pending) >= self.window:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()
        except Exception as e:
            logger.error(f"Worker thread failed: {e}", exc_info=True)
            for future in pending:
                future.cancel()
            raise


def create_worker_pool(pool_type: str = 'process', num_workers: Optional[int] = None,
                       initializer: Optional[Callable] = None, initargs: Tuple = ()) -> WorkerPool:
    """
    Build a pool by name.

    Raises:
        ValueError: If pool_type is neither 'process' nor 'thread'.
    """
    pools = {pool.kind: pool for pool in (ProcessWorkerPool, ThreadWorkerPool)}
    pool_class = pools.get(pool_type.lower())
    if pool_class is None:
        raise ValueError(f"Unknown pool type: {pool_type}. Use one of: {', '.join(POOL_TYPES)}")
    pool = pool_class(num_workers, initializer=initializer, initargs=initargs)
    logger.info(f"Using {pool.num_workers} {pool.kind} workers")
    return pool
