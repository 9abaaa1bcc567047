"""
Parallel processing module.

Provides worker pools and lazy batching for fanning record batches out over
processes or threads.
"""

from alnfeat.parallel.task_manager import (
    create_worker_pool,
    iter_batches,
    WorkerPool,
    ProcessWorkerPool,
    ThreadWorkerPool
)
