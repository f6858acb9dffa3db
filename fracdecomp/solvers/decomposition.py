"""
Decomposition Solvers (ADM, LADM, STADM)

Solve D^{α,δ} u + N(u) = 0, u(0) = g(0), in its Volterra form

    u(t) = g(t) - I^{α,δ}[N(u)](t)

by the decomposition u = Σ_k u_k:

    u_0 = g
    u_k = -I^{α,δ}[A_{k-1}]       (k ≥ 1)

with A_{k-1} the Adomian polynomial of the first k terms. Every u_k (k ≥ 1)
is stored as Bernstein coefficients on [0, time_end], so evaluating the
series never recurses through earlier Adomian polynomials.

The three methods differ only in how the fractal-fractional integral is
applied to the projected A_{k-1}:

- ADM: integration operational matrix on the coefficients
- LADM: Laplace domain, I^{α,δ}h = L^{-1}[δ s^{-α} L[τ^{δ-1} h]]
- STADM: Shehu domain, same with the multiplier (v/s)^α
"""

from typing import Optional

import numpy as np
import torch

from ..context import SolverContext
from ..core.bernstein import BernsteinBasis
from ..params import SolverParameters
from ..transforms.integral import IntegralTransform, LaplaceTransform, ShehuTransform
from ..utils import SolutionCurve, evaluate_callable, uniform_grid
from .adomian import DecompositionSeries, next_term
from .base import Solver


class BernsteinTerm:
    """Decomposition term u_k held as Bernstein coefficients."""

    def __init__(self, basis: BernsteinBasis, coefficients: torch.Tensor, index: int):
        self.basis = basis
        self.coefficients = coefficients.clone()
        self.index = index

    def __call__(self, t: float) -> float:
        return self.basis.evaluate(self.coefficients, [float(t)]).item()

    def values(self, times) -> np.ndarray:
        return self.basis.evaluate(self.coefficients, times).numpy()

    def __repr__(self) -> str:
        return f"BernsteinTerm(index={self.index}, degree={self.basis.degree})"


class DecompositionSolver(Solver):
    """
    Adomian decomposition with a pluggable fractal-fractional integrator.

    Subclasses implement :meth:`integrate`.

    Examples
    --------
    >>> params = SolverParameters(alpha=0.9, polynomial_degree=5, max_terms=10,
    ...                           time_end=10.0, time_steps=100,
    ...                           initial_condition=lambda t: 1.0,
    ...                           nonlinear_term=math.sin)
    >>> curve = ADMSolver().solve(params)
    >>> len(curve)
    101
    """

    def integrate(self, params: SolverParameters, basis: BernsteinBasis,
                  coefficients: torch.Tensor, nodes: np.ndarray,
                  weights: np.ndarray) -> torch.Tensor:
        """Coefficients of I^{α,δ}[Σ_k coefficients_k B_k]."""
        raise NotImplementedError

    def build_series(self, params: SolverParameters) -> DecompositionSeries:
        """
        Generate u_0..u_{max_terms-1}.

        Each Adomian polynomial is sampled at the projection nodes as one
        executor unit per node.
        """
        params = self.check(params)
        basis = self.basis(params)
        nodes, weights = basis.quadrature()
        table = self.context.combinatorial_table(max(params.max_terms, 2 * basis.degree))
        series = DecompositionSeries([params.initial_condition])

        if self.verbose:
            print(f"\n{self.name}: α={params.alpha}, fractal dimension={params.fractal_dimension}, "
                  f"degree={basis.degree}, terms={params.max_terms}, T={params.time_end}")

        for k in range(1, params.max_terms):
            adomian = next_term(series, params.nonlinear_term, k, table)
            samples = self.context.dispatch(adomian, nodes)
            projected = basis.project_samples(samples, weights, nodes)
            coefficients = -self.integrate(params, basis, projected, nodes, weights)
            series.append(BernsteinTerm(basis, coefficients, k))
            self.context.counters['terms'] += 1

            if self.verbose:
                print(f"  u_{k}: max |c| = {coefficients.abs().max().item():.4e}")

        return series

    def solve(self, params: SolverParameters) -> SolutionCurve:
        params = self.check(params)
        series = self.build_series(params)
        grid = uniform_grid(params.time_end, params.time_steps)

        y = evaluate_callable(params.initial_condition, grid, term_index=0)
        terms = series.terms[1:]
        if terms:
            total = torch.stack([term.coefficients for term in terms]).sum(dim=0)
            y = y + terms[0].basis.evaluate(total, grid).numpy()

        return SolutionCurve(grid, y, metadata={
            'method': self.name,
            'alpha': params.alpha,
            'fractal_dimension': params.fractal_dimension,
            'terms': len(series),
        })


class ADMSolver(DecompositionSolver):
    """Adomian decomposition with the integration operational matrix."""

    name = 'ADM'

    def integrate(self, params, basis, coefficients, nodes, weights):
        matrix = self.context.matrices.integral(
            't', params.alpha, params.fractal_dimension, basis.degree, params.time_end)
        return matrix.apply(coefficients)


class TransformDecompositionSolver(DecompositionSolver):
    """
    Decomposition with the integral applied in a transform domain.

    The projected Adomian polynomial is continued as a constant beyond
    ``time_end`` (the basis clamps its argument); I^{α,δ} is causal, so values
    on [0, time_end] do not depend on that continuation.
    """

    def make_transform(self) -> IntegralTransform:
        raise NotImplementedError

    def integrate(self, params, basis, coefficients, nodes, weights):
        transform = self.make_transform()
        delta = params.gamma
        order = params.alpha

        def source(tau):
            return tau ** (delta - 1.0) * basis.evaluate(coefficients, tau).numpy()

        forward = transform.forward(source, vectorized=True)

        def image(s):
            return delta * transform.fractional_integral_factor(s, order) * forward(s)

        image.quadrature_backed = True
        inverse = transform.inverse(image, scheme=self.context.inversion())
        values = self.context.dispatch(inverse, nodes)
        return basis.project_samples(values, weights, nodes)


class LADMSolver(TransformDecompositionSolver):
    """Laplace-Adomian decomposition."""

    name = 'LADM'

    def make_transform(self):
        return LaplaceTransform()


class STADMSolver(TransformDecompositionSolver):
    """
    Shehu-transform Adomian decomposition.

    Parameters
    ----------
    context : SolverContext, optional
    v : float, optional
        Second Shehu variable (default: 1.0)
    """

    name = 'STADM'

    def __init__(self, context: Optional[SolverContext] = None, v: float = 1.0):
        super().__init__(context)
        self.v = v

    def make_transform(self):
        return ShehuTransform(self.v)
