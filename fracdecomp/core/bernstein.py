"""
Bernstein Polynomial Basis

One-dimensional Bernstein basis on an interval [a, b], with evaluation,
derivatives, L2 projection and the change of basis to monomials used by the
fractional operational matrices.

Mathematical Foundation:
-----------------------
Bernstein polynomial of degree n:
    B_{i,n}(x) = C(n,i) * x^i * (1-x)^{n-i}  for x ∈ [0,1]

Properties:
- Non-negative: B_{i,n}(x) ≥ 0
- Partition of unity: Σ_{i=0}^n B_{i,n}(x) = 1
- Endpoint interpolation: B_{0,n}(0) = B_{n,n}(1) = 1

Gram matrix on [0,1] (closed form):
    G_ij = ∫ B_i B_j dx = C(n,i) C(n,j) / ((2n+1) C(2n, i+j))

Monomial expansion:
    B_{i,n}(x) = Σ_{j=i}^n (-1)^{j-i} C(n,i) C(n-i, j-i) x^j
"""

import warnings
from typing import Callable, Iterator, Optional, Tuple, Union

import numpy as np
import torch

from .. import config
from ..params import check_degree
from .combinatorics import CombinatorialTable


ArrayLike = Union[float, np.ndarray, torch.Tensor]


def gauss_legendre(n_nodes: int) -> Tuple[np.ndarray, np.ndarray]:
    """Gauss-Legendre nodes and weights mapped to [0, 1]."""
    xi, w = np.polynomial.legendre.leggauss(n_nodes)
    return 0.5 * (xi + 1.0), 0.5 * w


class BernsteinBasis:
    """
    Bernstein polynomial basis of a fixed degree.

    Behaves as an immutable sequence of ``degree + 1`` scalar basis functions
    (``basis[k](x)``) and also evaluates all of them at once on tensors.

    Parameters
    ----------
    degree : int
        Polynomial degree n (n+1 basis functions)
    domain : tuple of float, optional
        Physical interval (a, b) mapped onto [0, 1] (default: (0, 1))
    table : CombinatorialTable, optional
        Shared factorial/binomial table (built if not given)
    verbose : bool, optional
        Print construction diagnostics (default: False)

    Attributes
    ----------
    n_features : int
        Number of basis functions
    binomials : torch.Tensor
        C(n, i) for i = 0..n

    Examples
    --------
    >>> basis = BernsteinBasis(degree=5, domain=(0.0, 10.0))
    >>> phi = basis(torch.linspace(0, 10, 11))
    >>> phi.shape
    torch.Size([11, 6])
    >>> basis[0](0.0)
    1.0
    """

    def __init__(self,
                 degree: int,
                 domain: Tuple[float, float] = (0.0, 1.0),
                 table: Optional[CombinatorialTable] = None,
                 verbose: bool = False):
        self.degree = check_degree(degree)
        self.n_features = self.degree + 1
        self.x_min, self.x_max = float(domain[0]), float(domain[1])
        if not self.x_max > self.x_min:
            raise ValueError(f"Empty domain ({self.x_min}, {self.x_max})")
        self.domain = (self.x_min, self.x_max)

        self.table = (table or CombinatorialTable(2 * self.degree)).ensure(2 * self.degree)
        self.binomials = self.table.binomial_row(self.degree)

        self._gram = None
        self._monomial = None

        if verbose:
            print(f"BernsteinBasis initialized:")
            print(f"  Degree: {self.degree} ({self.n_features} functions)")
            print(f"  Domain: [{self.x_min:.4f}, {self.x_max:.4f}]")

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self.n_features

    def __getitem__(self, k: int) -> Callable[[float], float]:
        if k < 0:
            k += self.n_features
        if not 0 <= k <= self.degree:
            raise IndexError(f"Basis index {k} out of range for degree {self.degree}")
        n = self.degree
        c = self.binomials[k].item()
        x_min, width = self.x_min, self.x_max - self.x_min

        def basis_function(x: float) -> float:
            t = min(max((x - x_min) / width, 0.0), 1.0)
            return c * t ** k * (1.0 - t) ** (n - k)

        basis_function.__name__ = f"B_{k}_{n}"
        return basis_function

    def __iter__(self) -> Iterator[Callable[[float], float]]:
        for k in range(self.n_features):
            yield self[k]

    def __repr__(self) -> str:
        return f"BernsteinBasis(degree={self.degree}, domain={self.domain})"

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _normalize_coords(self, x: ArrayLike) -> torch.Tensor:
        """Map physical coordinates to [0,1], clamped against round-off."""
        x = torch.as_tensor(x, dtype=torch.float64).reshape(-1)
        t = (x - self.x_min) / (self.x_max - self.x_min)
        return torch.clamp(t, 0.0, 1.0)

    def _bernstein_1d(self, t: torch.Tensor, i: int, n: int,
                      binom_coeffs: torch.Tensor) -> torch.Tensor:
        """B_{i,n}(t) for t already in [0, 1]."""
        if i == 0:
            return torch.pow(1.0 - t, n)
        elif i == n:
            return torch.pow(t, n)
        return binom_coeffs[i] * torch.pow(t, i) * torch.pow(1.0 - t, n - i)

    def _matrix(self, t: torch.Tensor, n: int) -> torch.Tensor:
        binom = self.table.binomial_row(n)
        phi = torch.zeros((t.shape[0], n + 1), dtype=torch.float64)
        for i in range(n + 1):
            phi[:, i] = self._bernstein_1d(t, i, n, binom)
        return phi

    def __call__(self, x: ArrayLike) -> torch.Tensor:
        """
        Evaluate all basis functions.

        Parameters
        ----------
        x : float, array or tensor, shape (N,)
            Points in the physical domain

        Returns
        -------
        phi : torch.Tensor, shape (N, degree+1)
        """
        return self._matrix(self._normalize_coords(x), self.degree)

    def derivative(self, x: ArrayLike) -> torch.Tensor:
        """
        First derivative of every basis function in physical units.

            dB_{i,n}/dt = n * (B_{i-1,n-1}(t) - B_{i,n-1}(t))
        """
        t = self._normalize_coords(x)
        n = self.degree
        if n == 0:
            return torch.zeros((t.shape[0], 1), dtype=torch.float64)
        lower = self._matrix(t, n - 1)
        d_phi = torch.zeros((t.shape[0], n + 1), dtype=torch.float64)
        d_phi[:, 1:] += lower
        d_phi[:, :-1] -= lower
        return n * d_phi / (self.x_max - self.x_min)

    def evaluate(self, coefficients: ArrayLike, x: ArrayLike) -> torch.Tensor:
        """Σ_k coefficients[k] * B_k(x), shape (N,)."""
        c = torch.as_tensor(coefficients, dtype=torch.float64)
        if c.shape[0] != self.n_features:
            raise ValueError(f"Expected {self.n_features} coefficients, got {c.shape[0]}")
        return self(x) @ c

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def gram_matrix(self) -> torch.Tensor:
        """Closed-form Gram matrix ∫_0^1 B_i B_j dx (normalized variable)."""
        if self._gram is None:
            n = self.degree
            binom = self.binomials
            binom_2n = self.table.binomial_row(2 * n)
            idx = torch.arange(n + 1)
            self._gram = torch.outer(binom, binom) / \
                ((2 * n + 1) * binom_2n[idx[:, None] + idx[None, :]])
        return self._gram

    def monomial_matrix(self) -> torch.Tensor:
        """
        Change of basis A with B_i(x) = Σ_j A_ij x^j on the normalized variable.

        Upper triangular: A_ij = (-1)^{j-i} C(n,i) C(n-i, j-i) for j ≥ i.
        """
        if self._monomial is None:
            n = self.degree
            A = torch.zeros((n + 1, n + 1), dtype=torch.float64)
            for i in range(n + 1):
                inner = self.table.binomial_row(n - i)
                for j in range(i, n + 1):
                    A[i, j] = (-1.0) ** (j - i) * self.binomials[i] * inner[j - i]
            self._monomial = A
        return self._monomial

    def quadrature(self, n_nodes: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Gauss-Legendre rule used for projection.

        Returns
        -------
        nodes : np.ndarray
            Nodes in physical coordinates
        weights : np.ndarray
            Weights on the normalized interval (sum to 1)
        """
        if n_nodes is None:
            n_nodes = max(2 * self.degree + 2, config.PROJECTION_NODES)
        x, w = gauss_legendre(n_nodes)
        return self.x_min + (self.x_max - self.x_min) * x, w

    def project_samples(self, values: ArrayLike, weights: np.ndarray,
                        nodes: np.ndarray) -> torch.Tensor:
        """
        L2 projection from samples at quadrature nodes.

            c = G^{-1} Φ^T W f(x_q)

        Parameters
        ----------
        values : array, shape (Q,) or (Q, m)
            Function samples at ``nodes``
        weights, nodes : np.ndarray
            Rule returned by :meth:`quadrature`

        Returns
        -------
        coefficients : torch.Tensor, shape (degree+1,) or (degree+1, m)
        """
        f = torch.as_tensor(np.asarray(values, dtype=np.float64))
        phi = self(nodes)
        w = torch.as_tensor(weights, dtype=torch.float64)
        rhs = phi.T @ (w[:, None] * f if f.ndim == 2 else w * f)
        return torch.linalg.solve(self.gram_matrix(), rhs)

    def project(self, f: Callable[[float], float],
                n_nodes: Optional[int] = None) -> torch.Tensor:
        """
        L2 projection of a scalar function onto the basis.

        Examples
        --------
        >>> basis = BernsteinBasis(3)
        >>> c = basis.project(lambda x: x ** 2)
        >>> torch.allclose(basis.evaluate(c, [0.5]), torch.tensor([0.25], dtype=torch.float64))
        True
        """
        nodes, weights = self.quadrature(n_nodes)
        values = np.fromiter((f(float(x)) for x in nodes), dtype=np.float64,
                             count=len(nodes))
        return self.project_samples(values, weights, nodes)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def verify_partition_of_unity(self, n_test: int = 100, tol: float = 1e-9) -> bool:
        """
        Check Σ_k B_k(x) = 1 and B_k(x) ≥ 0 on random points.

        Parameters
        ----------
        n_test : int
            Number of random test points
        tol : float
            Allowed deviation from 1

        Returns
        -------
        bool
            True if both properties hold
        """
        x_test = torch.rand(n_test, dtype=torch.float64) * (self.x_max - self.x_min) + self.x_min
        x_test = torch.cat([x_test, torch.tensor([self.x_min, self.x_max], dtype=torch.float64)])
        phi = self(x_test)
        max_error = torch.abs(phi.sum(dim=1) - 1.0).max().item()

        if max_error > tol:
            warnings.warn(f"Partition of unity violated! Max error: {max_error:.2e}")
            return False
        if (phi < 0).any():
            warnings.warn("Negative Bernstein basis value encountered")
            return False
        return True


def generate_basis(degree: int,
                   domain: Tuple[float, float] = (0.0, 1.0),
                   table: Optional[CombinatorialTable] = None) -> BernsteinBasis:
    """
    Build the degree-n Bernstein basis.

    Raises
    ------
    ParameterRangeError
        If ``degree`` is not an integer in [0, MAX_DEGREE]
    """
    return BernsteinBasis(degree, domain=domain, table=table)
