"""
Test Suite: Concurrent Task Executor

Tests for:
- Result order independent of completion order
- Fail-fast error reporting
- Sequential fallback when the pool cannot start
- Nested dispatch and cooperative cancellation

Run with: python -m pytest tests/test_executor.py -v
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import threading
import time

import pytest

from fracdecomp.context import SolverContext
from fracdecomp.errors import (
    ComputationError,
    ExecutorAggregateError,
    TaskCancelledError,
)
from fracdecomp.executor import CancellationToken, TaskExecutor


def sleeper(value, delay):
    def unit():
        time.sleep(delay)
        return value
    return unit


class FailingPool:
    """Pool double whose submit cannot start threads."""

    def __init__(self, max_workers):
        self.max_workers = max_workers

    def submit(self, fn, *args):
        raise RuntimeError("can't start new thread")

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def executor():
    with TaskExecutor(max_workers=4) as pool:
        yield pool


class TestOrdering:
    """Results come back in input order."""

    def test_reversed_completion(self, executor):
        """Later tasks finish first; order is still preserved."""
        tasks = [sleeper(i, 0.01 * (8 - i)) for i in range(8)]
        assert executor.execute_tasks(tasks) == list(range(8))

    def test_map(self, executor):
        assert executor.map(lambda x: x * x, range(10)) == [x * x for x in range(10)]

    def test_empty(self, executor):
        assert executor.execute_tasks([]) == []

    def test_tasks_dispatched(self, executor):
        executor.execute_tasks([lambda: 1, lambda: 2, lambda: 3])
        executor.map(str, [1, 2])
        assert executor.tasks_dispatched == 5

    def test_runs_concurrently(self, executor):
        """Units overlap in time on the pool."""
        barrier = threading.Barrier(2, timeout=5)

        def unit():
            barrier.wait()
            return True

        assert executor.execute_tasks([unit, unit]) == [True, True]


class TestFailFast:
    """The first failing unit surfaces as one aggregate error."""

    def test_index_and_cause(self, executor):
        def failing():
            raise ValueError("bad sample")

        tasks = [sleeper(0, 0.0), sleeper(1, 0.0), failing, sleeper(3, 0.2)]

        with pytest.raises(ExecutorAggregateError) as excinfo:
            executor.execute_tasks(tasks)

        assert excinfo.value.index == 2
        assert isinstance(excinfo.value.error, ValueError)
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_sequential_failure(self):
        """Single-worker executors report the same index."""
        def failing():
            raise KeyError("missing")

        executor = TaskExecutor(max_workers=1)
        with pytest.raises(ExecutorAggregateError) as excinfo:
            executor.execute_tasks([lambda: 0, failing, lambda: 2])
        assert excinfo.value.index == 1

    def test_failure_payload(self):
        """Engine errors raised in a unit are reported as themselves."""
        error = ExecutorAggregateError(3, ComputationError("boom", term_index=2, sample=0.5))
        failure = error.to_failure()

        assert failure['success'] is False
        assert failure['kind'] == 'ComputationError'
        assert failure['task_index'] == 3

    def test_context_unwraps_engine_errors(self, executor):
        context = SolverContext(executor=executor)

        def unit(x):
            if x == 2:
                raise ComputationError("callback failed", sample=float(x))
            return x

        with pytest.raises(ComputationError):
            context.dispatch(unit, range(4))

    def test_pool_survives_failure(self, executor):
        """A failed batch does not poison later batches."""
        def failing():
            raise RuntimeError("once")

        with pytest.raises(ExecutorAggregateError):
            executor.execute_tasks([failing, lambda: 1])
        assert executor.execute_tasks([lambda: 1, lambda: 2]) == [1, 2]


class TestFallback:
    """Sequential execution when the pool is unavailable."""

    def test_pool_creation_failure(self):
        def broken_factory(max_workers):
            raise RuntimeError("thread limit reached")

        executor = TaskExecutor(max_workers=4, pool_factory=broken_factory)
        with pytest.warns(UserWarning):
            results = executor.map(lambda x: x + 1, range(5))

        assert results == [1, 2, 3, 4, 5]
        assert executor.degraded

    def test_submit_failure(self):
        executor = TaskExecutor(max_workers=4, pool_factory=FailingPool)
        with pytest.warns(UserWarning):
            results = executor.execute_tasks([sleeper(i, 0.0) for i in range(6)])

        assert results == list(range(6))
        assert executor.degraded

    def test_degraded_stays_sequential(self):
        calls = []

        def broken_factory(max_workers):
            calls.append(max_workers)
            raise OSError("no threads")

        executor = TaskExecutor(max_workers=2, pool_factory=broken_factory)
        with pytest.warns(UserWarning):
            executor.map(abs, [-1, -2])
        executor.map(abs, [-3, -4])

        assert calls == [2]


class TestNesting:
    """Dispatch from inside a unit."""

    def test_nested_dispatch_does_not_deadlock(self):
        executor = TaskExecutor(max_workers=2)

        def outer(i):
            return sum(executor.map(lambda j: i * j, range(4)))

        try:
            assert executor.map(outer, range(6)) == [6 * i for i in range(6)]
        finally:
            executor.shutdown()


class TestCancellation:
    """Cooperative cancellation between units."""

    def test_cancelled_before_start(self, executor):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(TaskCancelledError):
            executor.execute_tasks([lambda: 1, lambda: 2], cancel_token=token)

    def test_cancel_mid_batch(self):
        token = CancellationToken()
        executor = TaskExecutor(max_workers=1)
        ran = []

        def unit(i):
            ran.append(i)
            if i == 1:
                token.cancel()
            return i

        with pytest.raises(TaskCancelledError):
            executor.map(unit, range(5), cancel_token=token)
        assert ran == [0, 1]

    def test_context_passes_token(self, executor):
        token = CancellationToken()
        token.cancel()
        context = SolverContext(executor=executor, cancel_token=token)

        with pytest.raises(TaskCancelledError):
            context.dispatch(abs, [1, 2, 3])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
