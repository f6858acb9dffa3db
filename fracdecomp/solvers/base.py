"""
Common solver interface.

Every method solves the Volterra form of the fractal-fractional problem

    D^{α,δ} u(t) + N(u(t)) = 0,   u(0) = g(0)

on [0, time_end] and returns a ``SolutionCurve`` sampled at
``time_steps + 1`` uniform points.
"""

from typing import Optional

from ..context import SolverContext
from ..core.bernstein import BernsteinBasis
from ..params import SolverParameters
from ..utils import SolutionCurve


class Solver:
    """
    Base class: ``solve(params) -> SolutionCurve``.

    Parameters
    ----------
    context : SolverContext, optional
        Request context (a fresh one is created if not given)
    """

    name = 'solver'
    min_degree = 0

    def __init__(self, context: Optional[SolverContext] = None):
        self.context = context if context is not None else SolverContext()

    @property
    def verbose(self) -> bool:
        return self.context.verbose

    def check(self, params: SolverParameters) -> SolverParameters:
        """Method-specific validation on top of ``SolverParameters.validate``."""
        return params.validate()

    def basis(self, params: SolverParameters) -> BernsteinBasis:
        table = self.context.combinatorial_table(
            max(2 * params.polynomial_degree, params.max_terms))
        return BernsteinBasis(params.polynomial_degree, domain=(0.0, params.time_end),
                              table=table, verbose=self.verbose)

    def solve(self, params: SolverParameters) -> SolutionCurve:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
