"""
Error taxonomy for the fractional decomposition engine.

Every failure the engine can report is an instance of ``FracDecompError``.
Errors are raised at the component that detects them and propagate to the
immediate caller; only the request entry point (``fracdecomp.engine.solve``)
turns them into structured failure dictionaries via ``to_failure()``.
"""

from typing import Any, Dict, List, Optional


class FracDecompError(Exception):
    """Base class of all engine errors."""

    def to_failure(self) -> Dict[str, Any]:
        """Structured, JSON-serializable failure payload."""
        return {
            'success': False,
            'kind': type(self).__name__,
            'message': str(self),
        }


class ParameterRangeError(FracDecompError, ValueError):
    """A fractional order, degree or step count is outside its domain.

    Raised during validation, before any matrix, series or executor work.
    Never retried.
    """

    def __init__(self, name: str, value: Any, expected: str):
        self.name = name
        self.value = value
        self.expected = expected
        super().__init__(f"{name}={value!r} is out of range: expected {expected}")


class UnsupportedSelectionError(ParameterRangeError):
    """Unknown model or method, or a method the model does not offer."""


class ComputationError(FracDecompError):
    """A user callback raised or produced a non-finite value.

    Parameters
    ----------
    message : str
        Description of the failure
    term_index : int, optional
        Decomposition term (or MHPM iteration) being computed
    sample : float, optional
        Time sample at which the callback failed
    """

    def __init__(self,
                 message: str,
                 term_index: Optional[int] = None,
                 sample: Optional[float] = None):
        self.term_index = term_index
        self.sample = sample
        where = []
        if term_index is not None:
            where.append(f"term {term_index}")
        if sample is not None:
            where.append(f"t={sample:.6g}")
        if where:
            message = f"{message} (at {', '.join(where)})"
        super().__init__(message)


class TransformInversionError(FracDecompError):
    """Numerical inversion (or the forward integral feeding it) failed.

    Kept distinct from ``ComputationError`` so callers can retry with a
    different inversion scheme.
    """

    def __init__(self, message: str, scheme: Optional[str] = None,
                 t: Optional[float] = None):
        self.scheme = scheme
        self.t = t
        if scheme is not None:
            message = f"[{scheme}] {message}"
        super().__init__(message)


class ConvergenceExhausted(FracDecompError):
    """MHPM reached the iteration cap without meeting the tolerance.

    Recoverable: the caller may retry with a relaxed tolerance or more
    iterations.
    """

    def __init__(self, iterations: int, error: float, tolerance: float,
                 history: Optional[List[float]] = None):
        self.iterations = iterations
        self.error = error
        self.tolerance = tolerance
        self.history = list(history or [])
        super().__init__(
            f"No convergence after {iterations} iterations: "
            f"error {error:.3e} > tolerance {tolerance:.3e}"
        )


class LinearSolveError(FracDecompError):
    """The MHPM linear system was singular, ill-conditioned or produced non-finite values."""

    def __init__(self, message: str, iteration: Optional[int] = None,
                 condition: Optional[float] = None):
        self.iteration = iteration
        self.condition = condition
        if iteration is not None:
            message = f"{message} (iteration {iteration})"
        super().__init__(message)


class ExecutorAggregateError(FracDecompError):
    """A dispatched unit of work failed.

    The original exception is available as ``error`` and is chained as
    ``__cause__``.
    """

    def __init__(self, index: int, error: BaseException):
        self.index = index
        self.error = error
        super().__init__(f"Task {index} failed: {type(error).__name__}: {error}")

    def to_failure(self) -> Dict[str, Any]:
        # Report the underlying engine error when a unit raised one
        if isinstance(self.error, FracDecompError):
            failure = self.error.to_failure()
            failure['task_index'] = self.index
            return failure
        failure = super().to_failure()
        failure['task_index'] = self.index
        return failure


class TaskCancelledError(FracDecompError):
    """A cooperative cancellation token was set between dispatched units."""
