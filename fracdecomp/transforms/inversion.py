"""
Numerical Inversion of Laplace-type Transforms

All schemes are written in the unified form of Abate & Whitt (2006):

    f(t) ≈ (1/t) Σ_{k} Re( η_k F(β_k / t) )

with nodes β_k and weights η_k that depend only on the node count M and are
computed once per scheme instance.

Schemes:
- GaverStehfest: real nodes β_k = k ln 2, k = 1..M. Cheap; suited to smooth,
  monotone f. Weights grow quickly with M, so M stays small (default 14).
- FixedTalbot: deformed Bromwich contour. Very accurate for closed-form,
  analytic F, but evaluates F where Re(s) < 0, so it cannot be used with a
  quadrature-backed forward transform.
- EulerInversion: Bromwich line Re(s) = M ln10 / (3t) with Euler
  (binomial) summation of the Fourier series. Works with quadrature-backed
  F and oscillatory f; the default scheme of the solvers.
"""

import math
from fractions import Fraction
from typing import Callable, Dict, Optional, Sequence, Type

import numpy as np

from .. import config
from ..errors import ParameterRangeError, TransformInversionError


# Relative size of accumulated round-off tolerated in the weighted sum
CANCELLATION_TOLERANCE = 1e-4


class InversionScheme:
    """
    Base class of the inversion schemes.

    Parameters
    ----------
    nodes : int, optional
        Node count M (even, ≥ 12). Defaults to the scheme's own default.

    Attributes
    ----------
    betas : np.ndarray (complex)
        Nodes β_k (evaluate F at β_k / t)
    etas : np.ndarray (complex)
        Weights η_k
    """

    name = 'scheme'
    default_nodes = 12
    requires_analytic = False

    def __init__(self, nodes: Optional[int] = None):
        M = self.default_nodes if nodes is None else nodes
        if isinstance(M, bool) or not isinstance(M, int) or M < 12 or M % 2:
            raise ParameterRangeError('nodes', M, "an even integer ≥ 12")
        self.M = M
        self.betas, self.etas = self._weights(M)

    def _weights(self, M: int):
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.betas)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(nodes={self.M})"

    def points(self, t: float) -> np.ndarray:
        """Transform-domain points at which F must be evaluated for time t."""
        if not (math.isfinite(t) and t > 0):
            raise TransformInversionError(f"Inversion needs t > 0, got t={t}",
                                          scheme=self.name, t=t)
        return self.betas / t

    def combine(self, t: float, values: Sequence[complex]) -> float:
        """
        Weighted sum of F evaluated at ``points(t)``.

        Raises
        ------
        TransformInversionError
            If any F value or the sum is non-finite, or if round-off in the
            sum dominates the result
        """
        values = np.asarray(values, dtype=np.complex128)
        if not np.all(np.isfinite(values)):
            raise TransformInversionError("Non-finite transform value at inversion node",
                                          scheme=self.name, t=t)
        terms = (self.etas * values).real / t
        result = float(np.sum(terms))
        if not math.isfinite(result):
            raise TransformInversionError("Inversion sum diverged", scheme=self.name, t=t)

        magnitude = float(np.sum(np.abs(terms)))
        if magnitude * np.finfo(np.float64).eps > CANCELLATION_TOLERANCE * max(abs(result), 1.0):
            raise TransformInversionError(
                f"Catastrophic cancellation in inversion sum "
                f"(Σ|terms| = {magnitude:.3e}, result = {result:.3e})",
                scheme=self.name, t=t)
        return result

    def invert(self, F: Callable[[complex], complex], t: float,
               executor=None) -> float:
        """
        f(t) from F.

        Parameters
        ----------
        F : callable
            Transform-domain function of a complex argument
        t : float
            Time, t > 0
        executor : TaskExecutor, optional
            Evaluates F at the nodes as independent units
        """
        if self.requires_analytic and getattr(F, 'quadrature_backed', False):
            raise TransformInversionError(
                "Contour nodes reach Re(s) < 0 where a quadrature-backed transform "
                "does not exist; use the 'euler' or 'stehfest' scheme",
                scheme=self.name, t=t)
        s_points = self.points(t)
        if executor is not None:
            values = executor.map(F, list(s_points))
        else:
            values = [F(s) for s in s_points]
        return self.combine(t, values)


class GaverStehfest(InversionScheme):
    """
    Gaver-Stehfest real-axis inversion.

        V_k = (-1)^{k+M/2} Σ_{j=⌊(k+1)/2⌋}^{min(k, M/2)}
              j^{M/2} (2j)! / ((M/2-j)! j! (j-1)! (k-j)! (2j-k)!)
        f(t) ≈ (ln 2 / t) Σ_{k=1}^{M} V_k F(k ln 2 / t)
    """

    name = 'stehfest'
    default_nodes = 14

    def _weights(self, M):
        half = M // 2
        fact = math.factorial
        V = []
        for k in range(1, M + 1):
            total = Fraction(0)
            for j in range((k + 1) // 2, min(k, half) + 1):
                total += Fraction(
                    j ** half * fact(2 * j),
                    fact(half - j) * fact(j) * fact(j - 1) * fact(k - j) * fact(2 * j - k))
            V.append(float((-1) ** (k + half) * total))
        betas = math.log(2.0) * np.arange(1, M + 1, dtype=np.complex128)
        etas = math.log(2.0) * np.asarray(V, dtype=np.complex128)
        return betas, etas


class FixedTalbot(InversionScheme):
    """
    Fixed Talbot contour inversion (Abate & Valkó).

        β_0 = 2M/5,  β_k = (2kπ/5)(cot(kπ/M) + i)
        η_0 = e^{β_0}/2,
        η_k = [1 + i(kπ/M)(1 + cot²(kπ/M)) - i cot(kπ/M)] e^{β_k}
        f(t) ≈ (2 / (5t)) Σ_{k=0}^{M-1} Re(η_k F(β_k / t))
    """

    name = 'talbot'
    default_nodes = 32
    requires_analytic = True

    def _weights(self, M):
        k = np.arange(1, M)
        theta = k * np.pi / M
        cot = 1.0 / np.tan(theta)
        betas = np.empty(M, dtype=np.complex128)
        etas = np.empty(M, dtype=np.complex128)
        betas[0] = 2.0 * M / 5.0
        betas[1:] = (2.0 * k * np.pi / 5.0) * (cot + 1j)
        etas[0] = 0.5 * np.exp(betas[0])
        etas[1:] = (1.0 + 1j * theta * (1.0 + cot ** 2) - 1j * cot) * np.exp(betas[1:])
        return betas, etas * (2.0 / 5.0)


class EulerInversion(InversionScheme):
    """
    Euler-summation inversion of the Bromwich integral.

        β_k = M ln10 / 3 + iπk,  η_k = 10^{M/3} (-1)^k ξ_k,  k = 0..2M
        ξ_0 = 1/2, ξ_k = 1 (1 ≤ k ≤ M), ξ_{2M} = 2^{-M},
        ξ_{2M-k} = ξ_{2M-k+1} + 2^{-M} C(M, k)  (0 < k < M)
        f(t) ≈ (1/t) Σ_{k=0}^{2M} Re(η_k F(β_k / t))
    """

    name = 'euler'
    default_nodes = 12

    def _weights(self, M):
        xi = np.ones(2 * M + 1)
        xi[0] = 0.5
        xi[2 * M] = 2.0 ** -M
        for k in range(1, M):
            xi[2 * M - k] = xi[2 * M - k + 1] + 2.0 ** -M * math.comb(M, k)
        k = np.arange(2 * M + 1)
        betas = M * math.log(10.0) / 3.0 + 1j * np.pi * k
        signs = np.where(k % 2 == 0, 1.0, -1.0)
        etas = (10.0 ** (M / 3.0)) * signs * xi
        return betas.astype(np.complex128), etas.astype(np.complex128)


SCHEMES: Dict[str, Type[InversionScheme]] = {
    'stehfest': GaverStehfest,
    'gaver-stehfest': GaverStehfest,
    'talbot': FixedTalbot,
    'euler': EulerInversion,
}


def get_scheme(scheme=None, nodes: Optional[int] = None) -> InversionScheme:
    """
    Resolve a scheme name (or instance) to an ``InversionScheme``.

    ``None`` selects ``FRACDECOMP_INVERSION_SCHEME`` (default 'euler').
    """
    if isinstance(scheme, InversionScheme):
        return scheme
    name = (scheme or config.INVERSION_SCHEME).lower()
    if name not in SCHEMES:
        raise ParameterRangeError('scheme', scheme, f"one of {sorted(SCHEMES)}")
    if nodes is None and config.INVERSION_NODES and scheme is None:
        nodes = config.INVERSION_NODES
    return SCHEMES[name](nodes)
