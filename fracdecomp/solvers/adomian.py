"""
Adomian Decomposition Series

The nonlinear term N(u) of u = u_0 + u_1 + u_2 + ... is expanded as
N(u) = Σ_m A_m with Adomian polynomials

    A_0 = N(u_0)
    A_m = Σ_{k=1}^{m} C(k, m) N^{(k)}(u_0)                    (m ≥ 1)

where the coefficients follow the Rach/Duan recurrence

    C(1, m) = u_m
    C(k, m) = (1/m) Σ_{j=0}^{m-k} (j+1) u_{j+1} C(k-1, m-1-j)   (2 ≤ k ≤ m)

The derivatives N^{(k)}(u_0) = k! a_k come from the Taylor coefficients a_k
of N around u_0(t), obtained by Chebyshev interpolation of N on
[u_0 - ρ, u_0 + ρ]; N itself only has to accept scalars.

The decomposition term n (n ≥ 1) is the polynomial A_{n-1}; it reads the
prior terms u_0..u_{n-1} and nothing else.
"""

import math
from typing import Callable, Iterator, List, Optional, Sequence

import numpy as np

from ..core.combinatorics import CombinatorialTable
from ..errors import ComputationError, ParameterRangeError


TermFunction = Callable[[float], float]

# Half-width of the interval on which N is interpolated around u_0(t)
TAYLOR_RADIUS = 1.0
# Interpolation degree beyond the highest derivative needed
TAYLOR_OVERSAMPLING = 6
# Chebyshev-to-monomial conversion loses accuracy quickly above this degree
MAX_TAYLOR_DEGREE = 24


class DecompositionSeries:
    """
    Append-only sequence of term functions u_0, u_1, ..., u_n.

    Terms are never replaced or removed, so a term created from the first
    n entries keeps seeing exactly those entries.

    Examples
    --------
    >>> series = DecompositionSeries([lambda t: 1.0])
    >>> series.append(lambda t: -t)
    >>> series.evaluate(0.5)
    0.5
    """

    def __init__(self, terms: Optional[Sequence[TermFunction]] = None):
        self._terms: List[TermFunction] = []
        for term in terms or ():
            self.append(term)

    def append(self, term: TermFunction):
        if not callable(term):
            raise TypeError(f"Decomposition terms must be callable, got {type(term).__name__}")
        self._terms.append(term)

    def __len__(self) -> int:
        return len(self._terms)

    def __getitem__(self, index: int) -> TermFunction:
        return self._terms[index]

    def __iter__(self) -> Iterator[TermFunction]:
        return iter(tuple(self._terms))

    @property
    def terms(self) -> tuple:
        return tuple(self._terms)

    def evaluate(self, t: float) -> float:
        """Partial sum Σ_k u_k(t)."""
        return float(sum(term(t) for term in self._terms))


def taylor_coefficients(nonlinear_term: Callable[[float], float], center: float,
                        order: int, radius: float = TAYLOR_RADIUS) -> np.ndarray:
    """
    Taylor coefficients a_0..a_order of N around ``center``.

    N is interpolated at Chebyshev points of [center - radius, center + radius]
    and the interpolant is converted to a power series in (u - center).
    """
    degree = min(max(order + TAYLOR_OVERSAMPLING, 12), MAX_TAYLOR_DEGREE)

    def sampled(u):
        return np.fromiter((nonlinear_term(float(v)) for v in u), dtype=np.float64,
                           count=len(u))

    cheb = np.polynomial.Chebyshev.interpolate(
        sampled, degree, domain=[center - radius, center + radius])
    # Power series in the window variable w = (u - center) / radius
    power = np.polynomial.chebyshev.cheb2poly(cheb.coef)
    coef = np.zeros(order + 1)
    n = min(order + 1, len(power))
    coef[:n] = power[:n] / radius ** np.arange(n)
    return coef


def adomian_polynomial(values: Sequence[float], derivatives: Sequence[float]) -> float:
    """
    A_m from u_0..u_m and N^{(1)}..N^{(m)} at u_0 (``derivatives[k-1]``).

    Parameters
    ----------
    values : sequence of float
        u_0(t), ..., u_m(t) at a fixed t
    derivatives : sequence of float
        N^{(k)}(u_0(t)) for k = 1..m
    """
    m = len(values) - 1
    if m == 0:
        raise ValueError("A_0 is N(u_0); no recurrence needed")
    # C[k][j] holds C(k, j); only j ≥ k is ever non-zero
    C = np.zeros((m + 1, m + 1))
    C[1, 1:] = values[1:]
    for k in range(2, m + 1):
        for j in range(k, m + 1):
            acc = 0.0
            for i in range(0, j - k + 1):
                acc += (i + 1) * values[i + 1] * C[k - 1, j - 1 - i]
            C[k, j] = acc / j
    return float(sum(C[k, m] * derivatives[k - 1] for k in range(1, m + 1)))


class AdomianTerm:
    """
    Decomposition contribution of index n: t -> A_{n-1}(t).

    Holds a snapshot of the first n prior terms, so later appends to the
    series cannot leak into it.
    """

    def __init__(self, prior: Sequence[TermFunction],
                 nonlinear_term: Callable[[float], float],
                 index: int, table: CombinatorialTable):
        self.prior = tuple(prior)
        self.nonlinear_term = nonlinear_term
        self.index = index
        self.table = table

    def __repr__(self) -> str:
        return f"AdomianTerm(index={self.index})"

    def _prior_values(self, t: float) -> List[float]:
        values = []
        for k, term in enumerate(self.prior):
            try:
                value = float(term(t))
            except Exception as exc:
                raise ComputationError(f"Term u_{k} raised {type(exc).__name__}: {exc}",
                                       term_index=self.index, sample=t) from exc
            if not math.isfinite(value):
                raise ComputationError(f"Term u_{k} is not finite",
                                       term_index=self.index, sample=t)
            values.append(value)
        return values

    def __call__(self, t: float) -> float:
        t = float(t)
        values = self._prior_values(t)
        m = self.index - 1
        try:
            if m == 0:
                result = float(self.nonlinear_term(values[0]))
            else:
                a = taylor_coefficients(self.nonlinear_term, values[0], m)
                derivatives = [self.table.factorial(k) * a[k] for k in range(1, m + 1)]
                result = adomian_polynomial(values, derivatives)
        except ComputationError:
            raise
        except Exception as exc:
            raise ComputationError(f"Nonlinear term raised {type(exc).__name__}: {exc}",
                                   term_index=self.index, sample=t) from exc
        if not math.isfinite(result):
            raise ComputationError("Nonlinear term produced a non-finite value",
                                   term_index=self.index, sample=t)
        return result


def next_term(prior_series: Sequence[TermFunction],
              nonlinear_term: Callable[[float], float],
              n: int,
              table: Optional[CombinatorialTable] = None) -> AdomianTerm:
    """
    Decomposition contribution of index n from the first n prior terms.

    Parameters
    ----------
    prior_series : DecompositionSeries or sequence of callables
        u_0, u_1, ...; only entries 0..n-1 are read
    nonlinear_term : callable
        N(u) on scalars
    n : int
        Term index, n ≥ 1
    table : CombinatorialTable, optional
        Memoized factorials shared across the solve

    Returns
    -------
    term : AdomianTerm
        Callable t -> A_{n-1}[u_0..u_{n-1}](t)

    Raises
    ------
    ParameterRangeError
        If n < 1 or fewer than n prior terms are available

    Examples
    --------
    >>> series = DecompositionSeries([lambda t: 1.0, lambda t: -t])
    >>> A1 = next_term(series, lambda u: u ** 2, 2)   # A_1 = 2 u_0 u_1
    >>> round(A1(0.5), 12)
    -1.0
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise ParameterRangeError('n', n, "an integer ≥ 1")
    if len(prior_series) < n:
        raise ParameterRangeError('prior_series', len(prior_series),
                                  f"at least {n} prior terms for term {n}")
    if not callable(nonlinear_term):
        raise ParameterRangeError('nonlinear_term', nonlinear_term, "a callable (u) -> float")
    table = (table or CombinatorialTable(n)).ensure(n)
    return AdomianTerm([prior_series[k] for k in range(n)], nonlinear_term, n, table)
