"""
Solver parameters.

``SolverParameters`` is an immutable record validated on construction, so an
out-of-range request fails before any matrix, series or executor work starts.
"""

import math
import numbers
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional

from . import config
from .errors import ParameterRangeError


ScalarFunction = Callable[[float], float]


def _constant(value: float) -> ScalarFunction:
    def initial_condition(t: float) -> float:
        return value
    return initial_condition


def check_fractional_order(name: str, value: Any) -> float:
    """Validate a fractional order in (0, 1] and return it as float."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ParameterRangeError(name, value, "a real number in (0, 1]")
    value = float(value)
    if not math.isfinite(value) or not 0.0 < value <= 1.0:
        raise ParameterRangeError(name, value, "a real number in (0, 1]")
    return value


def check_fractal_dimension(value: Any) -> float:
    """Validate a fractal dimension in (1, 2] and return it as float."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ParameterRangeError('fractal_dimension', value, "a real number in (1, 2]")
    value = float(value)
    if not math.isfinite(value) or not 1.0 < value <= 2.0:
        raise ParameterRangeError('fractal_dimension', value, "a real number in (1, 2]")
    return value


def check_degree(value: Any, minimum: int = 0,
                 maximum: Optional[int] = None) -> int:
    """Validate a polynomial degree."""
    maximum = config.MAX_DEGREE if maximum is None else maximum
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ParameterRangeError('polynomial_degree', value,
                                  f"an integer in [{minimum}, {maximum}]")
    if not minimum <= value <= maximum:
        raise ParameterRangeError('polynomial_degree', value,
                                  f"an integer in [{minimum}, {maximum}]")
    return int(value)


def _check_positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise ParameterRangeError(name, value, "a positive integer")
    return int(value)


def _check_positive_real(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ParameterRangeError(name, value, "a positive finite real")
    value = float(value)
    if not math.isfinite(value) or value <= 0.0:
        raise ParameterRangeError(name, value, "a positive finite real")
    return value


@dataclass(frozen=True)
class SolverParameters:
    """
    Numeric parameters of a single solve.

    Parameters
    ----------
    alpha : float
        Fractional order of the time derivative, in (0, 1]
    beta : float, optional
        Second fractional order (multi-term operators), in (0, 1].
        Defaults to ``alpha``.
    gamma : float, optional
        Fractal order in (0, 1]; the fractal dimension is ``1 + gamma``.
        ``gamma = 1`` gives the plain Caputo derivative (default: 1.0)
    polynomial_degree : int, optional
        Bernstein basis degree (default: 5)
    max_terms : int, optional
        Number of decomposition terms u_0..u_{max_terms-1} (default: 10)
    max_iterations : int, optional
        MHPM iteration cap (default: 100)
    time_end : float, optional
        Right end of the time interval [0, time_end] (default: 1.0)
    time_steps : int, optional
        Number of uniform steps; the curve has ``time_steps + 1`` samples
    initial_condition : callable
        g(t), the zeroth decomposition term
    nonlinear_term : callable
        N(u) acting point-wise on the solution value
    tolerance : float, optional
        MHPM convergence tolerance (default: 1e-6)

    Examples
    --------
    >>> params = SolverParameters(alpha=0.9, polynomial_degree=5,
    ...                           time_end=10.0, time_steps=100,
    ...                           initial_condition=lambda t: 1.0,
    ...                           nonlinear_term=math.sin)
    >>> params.fractal_dimension
    2.0
    """

    alpha: float
    beta: Optional[float] = None
    gamma: float = 1.0
    polynomial_degree: int = 5
    max_terms: int = 10
    max_iterations: int = 100
    time_end: float = 1.0
    time_steps: int = 100
    initial_condition: ScalarFunction = field(default=None, repr=False)
    nonlinear_term: ScalarFunction = field(default=None, repr=False)
    tolerance: float = config.DEFAULT_TOLERANCE

    def __post_init__(self):
        if self.beta is None:
            object.__setattr__(self, 'beta', self.alpha)
        if isinstance(self.initial_condition, numbers.Real) and \
                not isinstance(self.initial_condition, bool):
            object.__setattr__(self, 'initial_condition',
                               _constant(float(self.initial_condition)))
        self.validate()

    def validate(self) -> 'SolverParameters':
        """Raise ``ParameterRangeError`` on the first out-of-range field."""
        object.__setattr__(self, 'alpha', check_fractional_order('alpha', self.alpha))
        object.__setattr__(self, 'beta', check_fractional_order('beta', self.beta))
        object.__setattr__(self, 'gamma', check_fractional_order('gamma', self.gamma))
        object.__setattr__(self, 'polynomial_degree', check_degree(self.polynomial_degree))
        object.__setattr__(self, 'max_terms', _check_positive_int('max_terms', self.max_terms))
        object.__setattr__(self, 'max_iterations',
                           _check_positive_int('max_iterations', self.max_iterations))
        object.__setattr__(self, 'time_steps', _check_positive_int('time_steps', self.time_steps))
        object.__setattr__(self, 'time_end', _check_positive_real('time_end', self.time_end))
        object.__setattr__(self, 'tolerance', _check_positive_real('tolerance', self.tolerance))

        if not callable(self.initial_condition):
            raise ParameterRangeError('initial_condition', self.initial_condition,
                                      "a callable (t) -> float or a number")
        if not callable(self.nonlinear_term):
            raise ParameterRangeError('nonlinear_term', self.nonlinear_term,
                                      "a callable (u) -> float")
        return self

    @property
    def fractal_dimension(self) -> float:
        return 1.0 + self.gamma

    @property
    def step(self) -> float:
        return self.time_end / self.time_steps

    def with_updates(self, **changes) -> 'SolverParameters':
        """Return a validated copy with some fields replaced."""
        return replace(self, **changes)

    # Request keys used by the request-processing collaborator
    REQUEST_KEYS = {
        'alpha': 'alpha',
        'beta': 'beta',
        'gamma': 'gamma',
        'polynomialDegree': 'polynomial_degree',
        'maxTerms': 'max_terms',
        'maxIterations': 'max_iterations',
        'timeEnd': 'time_end',
        'timeSteps': 'time_steps',
        'initialCondition': 'initial_condition',
        'nonlinearTerm': 'nonlinear_term',
        'tolerance': 'tolerance',
    }

    @classmethod
    def from_request(cls,
                     request: Mapping[str, Any],
                     defaults: Optional[Dict[str, Any]] = None) -> 'SolverParameters':
        """
        Build parameters from a camelCase request bag.

        Unknown keys (``model``, ``method``, transport fields) are ignored.
        Missing optional keys fall back to ``defaults`` and then to the field
        defaults. ``alpha``, ``timeEnd``, ``timeSteps`` and
        ``initialCondition`` are required.

        Parameters
        ----------
        request : mapping
            Parameter bag, camelCase or snake_case keys
        defaults : dict, optional
            Model-specific defaults in snake_case (e.g. ``nonlinear_term``)

        Returns
        -------
        params : SolverParameters
        """
        kwargs = dict(defaults or {})
        snake_keys = set(cls.REQUEST_KEYS.values())
        for key, value in request.items():
            name = cls.REQUEST_KEYS.get(key, key if key in snake_keys else None)
            if name is not None and value is not None:
                kwargs[name] = value

        for required in ('alpha', 'time_end', 'time_steps', 'initial_condition'):
            if required not in kwargs:
                raise ParameterRangeError(required, None, "a value (missing from request)")
        if 'nonlinear_term' not in kwargs:
            raise ParameterRangeError('nonlinear_term', None,
                                      "a callable (no model default available)")
        return cls(**kwargs)
