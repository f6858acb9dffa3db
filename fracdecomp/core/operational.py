"""
Fractal-Fractional Operational Matrices

Matrices that act on Bernstein coefficient vectors in place of the
fractal-fractional derivative and integral with power-law kernel.

Operators (δ = fractal_dimension - 1 ∈ (0, 1], α ∈ (0, 1]):
    D^{α,δ} u(t) = (t^{1-δ} / δ) * D^α_C u(t)          (Caputo in the numerator)
    I^{α,δ} f(t) = δ * I^α[τ^{δ-1} f(τ)](t)            (Riemann-Liouville)

δ = 1 recovers the plain Caputo derivative and Riemann-Liouville integral,
and D^{α,δ} I^{α,δ} f = f.

On monomials of the normalized variable x ∈ [0, 1]:
    D^{α,δ} x^j = Γ(j+1) / (δ Γ(j+1-α)) * x^{j-α+1-δ}   (j ≥ 1, zero for j = 0)
    I^{α,δ} x^j = δ Γ(j+δ) / Γ(j+δ+α) * x^{j+δ-1+α}

The image monomials are projected back onto the basis with exact moments
    ∫_0^1 x^p B_{k,n}(x) dx = C(n,k) Beta(p+k+1, n-k+1)
and the closed-form Gram matrix, giving

    M = A diag(μ) P G^{-1},   so that   Op[B(x)] ≈ M B(x)

(A: Bernstein-to-monomial change of basis, P: moment matrix). On a physical
interval [0, L] the matrices pick up L^{1-δ-α} (derivative) and
L^{α+δ-1} (integral).
"""

import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import torch

from .. import config
from ..errors import ParameterRangeError
from ..params import check_degree, check_fractal_dimension, check_fractional_order
from .bernstein import BernsteinBasis
from .combinatorics import CombinatorialTable


VARIABLES = {'t': 't', 'time': 't', 'x': 'x', 'space': 'x'}
KINDS = ('derivative', 'integral')

MatrixKey = Tuple[str, str, float, float, int, float]


@dataclass(frozen=True, eq=False)
class OperationalMatrix:
    """
    Immutable operational matrix and the parameters it was built from.

    Two matrices are interchangeable only when their ``key`` tuples match.

    Attributes
    ----------
    kind : str
        'derivative' or 'integral'
    variable : str
        Canonical variable name ('t' or 'x')
    order : float
        Fractional order α
    fractal_dimension : float
        Fractal dimension in (1, 2]
    degree : int
        Basis degree
    interval : float
        Length L of the physical interval [0, L]
    matrix : torch.Tensor, shape (degree+1, degree+1)
        A fresh copy on every access; the stored tensor is never handed out
    """

    kind: str
    variable: str
    order: float
    fractal_dimension: float
    degree: int
    interval: float
    _data: torch.Tensor = field(repr=False)

    def __post_init__(self):
        object.__setattr__(self, '_data', self._data.detach().clone())

    @property
    def matrix(self) -> torch.Tensor:
        return self._data.clone()

    @property
    def key(self) -> MatrixKey:
        return (self.kind, self.variable, self.order, self.fractal_dimension,
                self.degree, self.interval)

    @property
    def shape(self) -> Tuple[int, int]:
        return tuple(self._data.shape)

    def is_compatible(self, other: 'OperationalMatrix') -> bool:
        return self.key == other.key

    def apply(self, coefficients: torch.Tensor) -> torch.Tensor:
        """
        Coefficients of Op[u] for u = Σ_k c_k B_k.

        With Op[B] ≈ M B, Op[c^T B] ≈ (M^T c)^T B.
        """
        return self._data.T @ torch.as_tensor(coefficients, dtype=torch.float64)

    def numpy(self):
        return self._data.numpy().copy()


def _validate(variable: str, order: float, fractal_dimension: float,
              degree: int, interval: float) -> Tuple[str, float, float, int, float]:
    if not isinstance(variable, str) or variable.lower() not in VARIABLES:
        raise ParameterRangeError('variable', variable, f"one of {sorted(VARIABLES)}")
    order = check_fractional_order('order', order)
    fractal_dimension = check_fractal_dimension(fractal_dimension)
    degree = check_degree(degree)
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) \
            or not math.isfinite(interval) or interval <= 0:
        raise ParameterRangeError('interval', interval, "a positive finite real")
    return VARIABLES[variable.lower()], order, fractal_dimension, degree, float(interval)


def _moment_matrix(exponents: torch.Tensor, degree: int,
                   binomials: torch.Tensor) -> torch.Tensor:
    """P_jk = ∫_0^1 x^{p_j} B_{k,n}(x) dx via log-Beta."""
    k = torch.arange(degree + 1, dtype=torch.float64)
    a = exponents[:, None] + k[None, :] + 1.0
    b = (degree - k + 1.0)[None, :].expand_as(a)
    log_beta = torch.lgamma(a) + torch.lgamma(b) - torch.lgamma(a + b)
    return binomials[None, :] * torch.exp(log_beta)


def _assemble(basis: BernsteinBasis, scale: torch.Tensor,
              exponents: torch.Tensor, verbose: bool) -> torch.Tensor:
    gram = basis.gram_matrix()
    moments = _moment_matrix(exponents, basis.degree, basis.binomials)

    if verbose:
        cond = torch.linalg.cond(gram).item()
        print(f"  Gram condition number: {cond:.2e}")
        if cond > config.ILL_CONDITIONED:
            warnings.warn(f"Large Gram condition number ({cond:.2e}) at degree {basis.degree}.")

    # E = P G^{-1}; G is symmetric so solve G E^T = P^T
    projection = torch.linalg.solve(gram, moments.T).T
    return basis.monomial_matrix() @ (scale[:, None] * projection)


def generate_operational_matrix(variable: str,
                                order: float,
                                fractal_dimension: float,
                                degree: int,
                                interval: float = 1.0,
                                table: Optional[CombinatorialTable] = None,
                                verbose: bool = False) -> OperationalMatrix:
    """
    Operational matrix of the fractal-fractional derivative D^{α,δ}.

    Parameters
    ----------
    variable : str
        Differentiation variable ('t'/'time' or 'x'/'space')
    order : float
        Fractional order α ∈ (0, 1]
    fractal_dimension : float
        Fractal dimension ∈ (1, 2]; δ = fractal_dimension - 1
    degree : int
        Bernstein basis degree
    interval : float, optional
        Length L of the physical interval [0, L] (default: 1.0)
    table : CombinatorialTable, optional
        Shared binomial table
    verbose : bool, optional
        Print conditioning diagnostics

    Returns
    -------
    OperationalMatrix
        ``D^{α,δ} B(x) ≈ matrix @ B(x)``

    Raises
    ------
    ParameterRangeError
        If any argument is outside its domain

    Examples
    --------
    >>> op = generate_operational_matrix('t', 1.0, 2.0, 3)
    >>> basis = BernsteinBasis(3)
    >>> c = basis.project(lambda x: x ** 3)
    >>> basis.evaluate(op.apply(c), [0.5])   # d/dx x^3 = 3x^2
    tensor([0.7500], dtype=torch.float64)
    """
    variable, order, fractal_dimension, degree, interval = _validate(
        variable, order, fractal_dimension, degree, interval)
    delta = fractal_dimension - 1.0

    if verbose:
        print(f"Derivative operational matrix:")
        print(f"  variable={variable}, α={order}, fractal dimension={fractal_dimension}, "
              f"degree={degree}, L={interval}")

    basis = BernsteinBasis(degree, table=table)
    j = torch.arange(degree + 1, dtype=torch.float64)
    scale = torch.zeros(degree + 1, dtype=torch.float64)
    if degree > 0:
        jj = j[1:]
        scale[1:] = torch.exp(torch.lgamma(jj + 1) - torch.lgamma(jj + 1 - order)) / delta
    # j = 0 has a zero image; any non-negative exponent keeps the moments finite
    exponents = torch.clamp(j - order + 1.0 - delta, min=0.0)

    matrix = _assemble(basis, scale, exponents, verbose)
    matrix = matrix * interval ** (1.0 - delta - order)
    return OperationalMatrix('derivative', variable, order, fractal_dimension,
                             degree, interval, matrix)


def generate_integration_matrix(variable: str,
                                order: float,
                                fractal_dimension: float,
                                degree: int,
                                interval: float = 1.0,
                                table: Optional[CombinatorialTable] = None,
                                verbose: bool = False) -> OperationalMatrix:
    """
    Operational matrix of the fractal-fractional integral I^{α,δ}.

    Same arguments and validation as :func:`generate_operational_matrix`.

    Returns
    -------
    OperationalMatrix
        ``I^{α,δ} B(x) ≈ matrix @ B(x)``
    """
    variable, order, fractal_dimension, degree, interval = _validate(
        variable, order, fractal_dimension, degree, interval)
    delta = fractal_dimension - 1.0

    if verbose:
        print(f"Integration operational matrix:")
        print(f"  variable={variable}, α={order}, fractal dimension={fractal_dimension}, "
              f"degree={degree}, L={interval}")

    basis = BernsteinBasis(degree, table=table)
    j = torch.arange(degree + 1, dtype=torch.float64)
    scale = delta * torch.exp(torch.lgamma(j + delta) - torch.lgamma(j + delta + order))
    exponents = j + delta - 1.0 + order

    matrix = _assemble(basis, scale, exponents, verbose)
    matrix = matrix * interval ** (order + delta - 1.0)
    return OperationalMatrix('integral', variable, order, fractal_dimension,
                             degree, interval, matrix)


class OperationalMatrixCache:
    """
    Per-request memo of operational matrices keyed by their parameters.

    Owned by a ``SolverContext``; never shared across requests.
    """

    _builders = {
        'derivative': generate_operational_matrix,
        'integral': generate_integration_matrix,
    }

    def __init__(self, table: Optional[CombinatorialTable] = None, verbose: bool = False):
        self.table = table
        self.verbose = verbose
        self._store: Dict[MatrixKey, OperationalMatrix] = {}
        self.hits = 0
        self.builds = 0

    def __len__(self) -> int:
        return len(self._store)

    def get(self, kind: str, variable: str, order: float, fractal_dimension: float,
            degree: int, interval: float = 1.0) -> OperationalMatrix:
        if kind not in self._builders:
            raise ParameterRangeError('kind', kind, f"one of {KINDS}")
        key = (kind,) + _validate(variable, order, fractal_dimension, degree, interval)
        cached = self._store.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        matrix = self._builders[kind](variable, order, fractal_dimension, degree,
                                      interval, table=self.table, verbose=self.verbose)
        self._store[key] = matrix
        self.builds += 1
        return matrix

    def derivative(self, variable, order, fractal_dimension, degree, interval=1.0):
        return self.get('derivative', variable, order, fractal_dimension, degree, interval)

    def integral(self, variable, order, fractal_dimension, degree, interval=1.0):
        return self.get('integral', variable, order, fractal_dimension, degree, interval)
