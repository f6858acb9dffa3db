"""
Per-request solver context.

Holds what would otherwise be process-wide state: the executor handle, the
operational-matrix cache, the combinatorial table and request counters. A
context is created for one request and discarded with it; solvers receive it
explicitly.
"""

from collections import Counter
from typing import Any, Callable, Iterable, List, Optional

from . import config
from .core.combinatorics import CombinatorialTable
from .core.operational import OperationalMatrixCache
from .errors import ExecutorAggregateError, FracDecompError
from .executor import CancellationToken, TaskExecutor, get_default_executor
from .transforms.inversion import InversionScheme, get_scheme


class SolverContext:
    """
    Explicit request context passed to every solver.

    Parameters
    ----------
    executor : TaskExecutor, optional
        Executor for inner loops (default: the process-level executor)
    verbose : bool, optional
        Print solver diagnostics (default: ``FRACDECOMP_VERBOSE``)
    inversion_scheme : str, optional
        Inversion scheme for the transform-based methods (default: 'euler')
    inversion_nodes : int, optional
        Node count for the inversion scheme
    cancel_token : CancellationToken, optional
        Checked between dispatched units

    Attributes
    ----------
    matrices : OperationalMatrixCache
        Operational matrices built during this request
    counters : collections.Counter
        Work counters ('dispatches', 'units', 'terms', 'iterations', ...)

    Examples
    --------
    >>> with TaskExecutor(max_workers=2) as executor:
    ...     context = SolverContext(executor=executor)
    ...     context.dispatch(lambda x: x * x, [1, 2, 3])
    [1, 4, 9]
    """

    def __init__(self,
                 executor: Optional[TaskExecutor] = None,
                 verbose: Optional[bool] = None,
                 inversion_scheme: Optional[str] = None,
                 inversion_nodes: Optional[int] = None,
                 cancel_token: Optional[CancellationToken] = None):
        self.executor = executor if executor is not None else get_default_executor()
        self.verbose = config.VERBOSE if verbose is None else bool(verbose)
        self.inversion_scheme = inversion_scheme
        self.inversion_nodes = inversion_nodes
        self.cancel_token = cancel_token
        self.table = CombinatorialTable(0)
        self.matrices = OperationalMatrixCache(table=self.table, verbose=self.verbose)
        self.counters = Counter()
        self._scheme = None

    def combinatorial_table(self, size: int) -> CombinatorialTable:
        """Memoized table large enough for ``size``, built at most once per size."""
        if size > self.table.size:
            self.table = CombinatorialTable(size)
            self.matrices.table = self.table
            self.counters['tables'] += 1
        return self.table

    def inversion(self) -> InversionScheme:
        """Inversion scheme of this request, resolved once so its weights are reused."""
        if self._scheme is None:
            self._scheme = get_scheme(self.inversion_scheme, self.inversion_nodes)
        return self._scheme

    def dispatch(self, fn: Callable[[Any], Any], items: Iterable[Any]) -> List[Any]:
        """
        Run ``fn`` over ``items`` on the executor, preserving order.

        An engine error raised inside a unit surfaces as itself; any other
        failure surfaces as ``ExecutorAggregateError``.
        """
        items = list(items)
        self.counters['dispatches'] += 1
        self.counters['units'] += len(items)
        try:
            return self.executor.map(fn, items, cancel_token=self.cancel_token)
        except ExecutorAggregateError as exc:
            if isinstance(exc.error, FracDecompError):
                raise exc.error
            raise

    def log(self, message: str):
        if self.verbose:
            print(message)
