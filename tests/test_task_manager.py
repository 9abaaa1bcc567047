"""
Unit tests for worker pools and batching.
"""

import unittest

from alnfeat.parallel.task_manager import (
    ProcessWorkerPool,
    ThreadWorkerPool,
    create_worker_pool,
    iter_batches,
)


def square(x):
    """Square a number."""
    return x * x


_offset = 0


def set_offset(offset):
    global _offset
    _offset = offset


def add_offset(x):
    return x + _offset


def fails_on_three(x):
    if x == 3:
        raise ValueError(f"Value not allowed: {x}")
    return x


class TestIterBatches(unittest.TestCase):
    def test_batch_sizes(self):
        self.assertEqual(list(iter_batches(range(7), 3)), [[0, 1, 2], [3, 4, 5], [6]])
        self.assertEqual(list(iter_batches([], 3)), [])
        self.assertEqual(list(iter_batches([1, 2], 0)), [[1], [2]])

    def test_is_lazy(self):
        def generate():
            for i in range(5):
                yield i

        batches = iter_batches(generate(), 2)
        self.assertEqual(next(batches), [0, 1])
        self.assertEqual(list(batches), [[2, 3], [4]])


class TestWorkerPools(unittest.TestCase):
    def test_factory(self):
        self.assertIsInstance(create_worker_pool("process", 2), ProcessWorkerPool)
        self.assertIsInstance(create_worker_pool("Thread", 2), ThreadWorkerPool)
        with self.assertRaises(ValueError):
            create_worker_pool("gpu", 2)

    def test_default_worker_count(self):
        self.assertGreater(ThreadWorkerPool(None).num_workers, 0)
        self.assertEqual(repr(ThreadWorkerPool(3)), "ThreadWorkerPool(num_workers=3)")

    def test_thread_pool_keeps_order(self):
        with create_worker_pool("thread", 3) as pool:
            results = list(pool.imap(square, iter(range(20))))
        self.assertEqual(results, [x * x for x in range(20)])

    def test_process_pool_keeps_order(self):
        with create_worker_pool("process", 2) as pool:
            results = pool.map(square, range(10))
        self.assertEqual(results, [x * x for x in range(10)])

    def _assert_bounded_read_ahead(self, pool_type):
        pulled = []

        def tasks():
            for i in range(1000):
                pulled.append(i)
                yield i

        with create_worker_pool(pool_type, 2) as pool:
            results = pool.imap(square, tasks())
            self.assertEqual(next(results), 0)
            self.assertLessEqual(len(pulled), pool.window)
            self.assertEqual(list(results), [x * x for x in range(1, 1000)])
        self.assertEqual(len(pulled), 1000)

    def test_process_pool_bounded_read_ahead(self):
        self._assert_bounded_read_ahead("process")

    def test_thread_pool_bounded_read_ahead(self):
        self._assert_bounded_read_ahead("thread")

    def test_initializer_runs_in_every_worker(self):
        for pool_type in ("process", "thread"):
            with create_worker_pool(pool_type, 2, initializer=set_offset, initargs=(100,)) as pool:
                self.assertEqual(pool.map(add_offset, range(5)), [100, 101, 102, 103, 104])
        set_offset(0)

    def test_thread_pool_propagates_errors(self):
        with self.assertLogs("alnfeat.parallel.task_manager", level="ERROR"):
            with self.assertRaises(ValueError):
                with create_worker_pool("thread", 2) as pool:
                    list(pool.imap(fails_on_three, range(6)))


if __name__ == "__main__":
    unittest.main()
