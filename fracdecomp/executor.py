"""
Concurrent Task Executor

Runs ordered sequences of zero-argument units of work on a long-lived thread
pool and returns their results in input order.

Units are closures over NumPy/PyTorch data, so a thread pool is used rather
than processes: the heavy kernels release the GIL and nothing needs to be
pickled. Each unit must be free of shared mutable state and must not perform
I/O; aggregation of the results happens in the calling thread.

Failure policy is fail-fast: the first failing unit (lowest index among the
failures observed) aborts outstanding work and surfaces as a single
``ExecutorAggregateError``. If the pool cannot be created or cannot start
threads, the same task sequence runs sequentially with the same output.
"""

import atexit
import os
import threading
import warnings
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence

from . import config
from .errors import ExecutorAggregateError, TaskCancelledError


Task = Callable[[], Any]


class CancellationToken:
    """
    Cooperative cancellation flag checked between dispatched units.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancel()
    >>> token.cancelled
    True
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, index: Optional[int] = None):
        if self._event.is_set():
            where = f" before task {index}" if index is not None else ""
            raise TaskCancelledError(f"Execution cancelled{where}")


class TaskExecutor:
    """
    Order-preserving, fail-fast executor over a long-lived thread pool.

    Parameters
    ----------
    max_workers : int, optional
        Pool size (default: ``FRACDECOMP_MAX_WORKERS`` or the CPU count)
    pool_factory : callable, optional
        ``pool_factory(max_workers)`` returning an executor with ``submit``
        and ``shutdown`` (default: ``ThreadPoolExecutor``)
    verbose : bool, optional
        Print pool lifecycle diagnostics (default: False)

    Attributes
    ----------
    tasks_dispatched : int
        Number of units handed to ``execute_tasks`` so far
    degraded : bool
        True once the executor fell back to sequential execution

    Examples
    --------
    >>> with TaskExecutor(max_workers=2) as executor:
    ...     executor.execute_tasks([lambda: 1, lambda: 2, lambda: 3])
    [1, 2, 3]
    """

    def __init__(self,
                 max_workers: Optional[int] = None,
                 pool_factory: Optional[Callable[[int], Any]] = None,
                 verbose: bool = False):
        self.max_workers = max_workers or config.MAX_WORKERS or os.cpu_count() or 1
        self.pool_factory = pool_factory or self._thread_pool
        self.verbose = verbose

        self._pool = None
        self._lock = threading.Lock()
        self._local = threading.local()
        self._active_checkouts = 0
        self.tasks_dispatched = 0
        self.degraded = False

    def _thread_pool(self, max_workers: int) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=max_workers,
                                  thread_name_prefix='fracdecomp')

    def _degrade(self, exc: BaseException):
        self.degraded = True
        warnings.warn(f"Worker pool unavailable ({type(exc).__name__}: {exc}); "
                      f"running tasks sequentially.")

    @contextmanager
    def checkout(self) -> Iterator[Optional[Any]]:
        """
        Scoped access to the shared pool.

        Yields the pool, or ``None`` when running degraded. The checkout is
        released on every exit path, including task failure.
        """
        with self._lock:
            if self._pool is None and not self.degraded:
                try:
                    self._pool = self.pool_factory(self.max_workers)
                    if self.verbose:
                        print(f"TaskExecutor: started pool with {self.max_workers} workers")
                except (RuntimeError, OSError) as exc:
                    self._degrade(exc)
            self._active_checkouts += 1
            pool = self._pool
        try:
            yield pool
        finally:
            with self._lock:
                self._active_checkouts -= 1

    @property
    def in_worker(self) -> bool:
        return getattr(self._local, 'depth', 0) > 0

    def _run_unit(self, task: Task, index: int,
                  cancel_token: Optional[CancellationToken]) -> Any:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(index)
        self._local.depth = getattr(self._local, 'depth', 0) + 1
        try:
            return task()
        finally:
            self._local.depth -= 1

    def _run_sequential(self, tasks: Sequence[Task],
                        cancel_token: Optional[CancellationToken]) -> List[Any]:
        results = []
        for index, task in enumerate(tasks):
            try:
                results.append(self._run_unit(task, index, cancel_token))
            except TaskCancelledError:
                raise
            except Exception as exc:
                raise ExecutorAggregateError(index, exc) from exc
        return results

    def _run_pool(self, pool, tasks: Sequence[Task],
                  cancel_token: Optional[CancellationToken]) -> List[Any]:
        futures: List[Future] = []
        try:
            for index, task in enumerate(tasks):
                futures.append(pool.submit(self._run_unit, task, index, cancel_token))
        except RuntimeError as exc:
            # Thread start failure or a pool that was shut down underneath us
            for future in futures:
                future.cancel()
            self._degrade(exc)
            return self._run_sequential(tasks, cancel_token)

        done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [i for i, f in enumerate(futures)
                  if f in done and not f.cancelled() and f.exception() is not None]
        if not failed:
            return [f.result() for f in futures]

        for future in not_done:
            future.cancel()

        index = min(failed)
        error = futures[index].exception()
        if isinstance(error, TaskCancelledError):
            raise error
        raise ExecutorAggregateError(index, error) from error

    def execute_tasks(self, tasks: Iterable[Task],
                      cancel_token: Optional[CancellationToken] = None) -> List[Any]:
        """
        Run units of work and return their results in input order.

        Parameters
        ----------
        tasks : iterable of callables
            Zero-argument units of work
        cancel_token : CancellationToken, optional
            Checked before each unit starts

        Returns
        -------
        results : list
            ``results[i]`` is the value returned by ``tasks[i]``

        Raises
        ------
        ExecutorAggregateError
            If any unit raised; names the failing index and chains the error
        TaskCancelledError
            If ``cancel_token`` was set before all units started
        """
        tasks = list(tasks)
        with self._lock:
            self.tasks_dispatched += len(tasks)
        if not tasks:
            return []

        # Nested dispatch from inside a unit runs inline: a bounded pool
        # waiting on its own workers would deadlock.
        if len(tasks) == 1 or self.max_workers == 1 or self.in_worker:
            return self._run_sequential(tasks, cancel_token)

        with self.checkout() as pool:
            if pool is None:
                return self._run_sequential(tasks, cancel_token)
            return self._run_pool(pool, tasks, cancel_token)

    def map(self, fn: Callable[[Any], Any], items: Iterable[Any],
            cancel_token: Optional[CancellationToken] = None) -> List[Any]:
        """``[fn(item) for item in items]`` as one batch of units."""
        return self.execute_tasks([_bind(fn, item) for item in items], cancel_token)

    def shutdown(self, wait: bool = True):
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait)
            if self.verbose:
                print("TaskExecutor: pool shut down")

    def __enter__(self) -> 'TaskExecutor':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()


def _bind(fn: Callable[[Any], Any], item: Any) -> Task:
    def unit():
        return fn(item)
    return unit


_default_executor: Optional[TaskExecutor] = None
_default_lock = threading.Lock()


def get_default_executor() -> TaskExecutor:
    """Process-level executor shared by requests that do not bring their own."""
    global _default_executor
    with _default_lock:
        if _default_executor is None:
            _default_executor = TaskExecutor()
            atexit.register(_default_executor.shutdown, False)
        return _default_executor
