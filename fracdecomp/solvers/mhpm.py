"""
Modified Homotopy Perturbation Method (MHPM)

Collocation iteration for

    Σ_j w_j D^{α_j,δ} y(t) + N(y(t)) = 0,   y(0) = g(0)

with y(t) = Σ_k c_k B_k(t) on [0, T]. Each iteration assembles

    A_ik = Σ_j w_j (M_j B(t_i))_k,   b_i = -N(y_old(t_i)),   t_i = T i / n

(M_j the derivative operational matrices), overwrites row 0 with the
initial condition y(0) = g(0), solves A c_new = b by LU and measures
error = ||c_new - c_old||_2.

State machine:
    initialized -> iterating -> converged | exhausted | failed
"""

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import torch

from ..context import SolverContext
from ..core.solver import solve_dense
from ..errors import ComputationError, ConvergenceExhausted, LinearSolveError, ParameterRangeError
from ..params import SolverParameters
from ..utils import SolutionCurve, uniform_grid
from .base import Solver


INITIALIZED = 'initialized'
ITERATING = 'iterating'
CONVERGED = 'converged'
EXHAUSTED = 'exhausted'
FAILED = 'failed'


@dataclass
class ConvergenceState:
    """
    Mutable state of one MHPM run; discarded when the loop exits.

    Attributes
    ----------
    coefficients : torch.Tensor
        Current Bernstein coefficients (zero vector initially)
    iteration : int
        Completed iterations
    error : float
        ||c_new - c_old||_2 of the last iteration
    status : str
        One of 'initialized', 'iterating', 'converged', 'exhausted', 'failed'
    history : list of float
        Error after each iteration
    """

    coefficients: torch.Tensor
    iteration: int = 0
    error: float = float('inf')
    status: str = INITIALIZED
    history: List[float] = field(default_factory=list)

    @classmethod
    def initial(cls, size: int) -> 'ConvergenceState':
        return cls(coefficients=torch.zeros(size, dtype=torch.float64))

    @property
    def finished(self) -> bool:
        return self.status in (CONVERGED, EXHAUSTED, FAILED)

    def snapshot(self) -> 'ConvergenceState':
        return ConvergenceState(self.coefficients.clone(), self.iteration, self.error,
                                self.status, list(self.history))


# (weight, order) pairs of the linear operator; a single term by default
OperatorTerms = Sequence[Tuple[float, float]]


class MHPMSolver(Solver):
    """
    Iterative perturbation solver on Bernstein collocation.

    Parameters
    ----------
    context : SolverContext, optional
        Request context
    operator_terms : sequence of (weight, order), optional
        Linear operator Σ_j w_j D^{order_j,δ}. ``None`` means a single term
        D^{α,δ} with the order taken from the parameters. An order given as
        the string 'alpha' or 'beta' is read from the parameters.

    Examples
    --------
    >>> params = SolverParameters(alpha=1.0, polynomial_degree=4, time_end=0.5,
    ...                           time_steps=50, max_iterations=100,
    ...                           initial_condition=lambda t: 1.0,
    ...                           nonlinear_term=lambda y: y)
    >>> curve = MHPMSolver().solve(params)     # y' = -y, y(0) = 1
    >>> abs(curve.y[-1] - math.exp(-0.5)) < 1e-3
    True
    """

    name = 'MHPM'
    min_degree = 1

    def __init__(self, context: Optional[SolverContext] = None,
                 operator_terms: Optional[OperatorTerms] = None):
        super().__init__(context)
        self.operator_terms = list(operator_terms) if operator_terms else [(1.0, 'alpha')]

    def check(self, params: SolverParameters) -> SolverParameters:
        params = super().check(params)
        if params.polynomial_degree < self.min_degree:
            raise ParameterRangeError('polynomial_degree', params.polynomial_degree,
                                      f"an integer ≥ {self.min_degree} for collocation")
        return params

    def _orders(self, params: SolverParameters) -> List[Tuple[float, float]]:
        terms = []
        for weight, order in self.operator_terms:
            if isinstance(order, str):
                order = getattr(params, order)
            terms.append((float(weight), order))
        return terms

    def operator_matrix(self, params: SolverParameters) -> torch.Tensor:
        """Σ_j w_j M_j for the configured operator terms (cached per order)."""
        total = torch.zeros((params.polynomial_degree + 1,) * 2, dtype=torch.float64)
        for weight, order in self._orders(params):
            matrix = self.context.matrices.derivative(
                't', order, params.fractal_dimension, params.polynomial_degree,
                params.time_end)
            total = total + weight * matrix.matrix
        return total

    def iterate(self, params: SolverParameters) -> Iterator[ConvergenceState]:
        """
        Run the iteration, yielding a snapshot after every step.

        The final snapshot has status 'converged' or 'exhausted'. A singular
        system raises ``LinearSolveError`` (status 'failed').
        """
        params = self.check(params)
        basis = self.basis(params)
        n = basis.degree
        operator = self.operator_matrix(params)
        points = [params.time_end * i / n for i in range(n + 1)]
        phi = basis(points)
        nonlinear = params.nonlinear_term

        try:
            y0 = float(params.initial_condition(0.0))
        except Exception as exc:
            raise ComputationError(f"Initial condition raised {type(exc).__name__}: {exc}",
                                   sample=0.0) from exc

        state = ConvergenceState.initial(n + 1)
        yield state.snapshot()
        state.status = ITERATING

        if self.verbose:
            print(f"\nMHPM: α={params.alpha}, fractal dimension={params.fractal_dimension}, "
                  f"degree={n}, T={params.time_end}, tolerance={params.tolerance:.1e}")

        while True:
            iteration = state.iteration + 1
            c_old = state.coefficients.clone()

            def assemble(i, c_old=c_old, iteration=iteration):
                row = operator @ phi[i]
                t_i = points[i]
                y_i = float(phi[i] @ c_old)
                try:
                    value = float(nonlinear(y_i))
                except Exception as exc:
                    raise ComputationError(
                        f"Nonlinear term raised {type(exc).__name__}: {exc}",
                        term_index=iteration, sample=t_i) from exc
                if not math.isfinite(value):
                    raise ComputationError("Nonlinear term produced a non-finite value",
                                           term_index=iteration, sample=t_i)
                return row, -value

            rows = self.context.dispatch(assemble, range(n + 1))
            A = torch.stack([row for row, _ in rows])
            b = torch.tensor([rhs for _, rhs in rows], dtype=torch.float64)

            A[0] = phi[0]    # B(0) = e_0
            b[0] = y0

            try:
                c_new = solve_dense(A, b, iteration=iteration, verbose=self.verbose)
            except LinearSolveError:
                state.status = FAILED
                raise

            state.error = torch.norm(c_new - c_old).item()
            state.coefficients = c_new
            state.iteration = iteration
            state.history.append(state.error)
            self.context.counters['iterations'] += 1

            if self.verbose:
                print(f"  Iteration {iteration}: error = {state.error:.4e}")

            if state.error <= params.tolerance:
                state.status = CONVERGED
            elif iteration >= params.max_iterations:
                state.status = EXHAUSTED
            yield state.snapshot()
            if state.finished:
                return

    def solve(self, params: SolverParameters) -> SolutionCurve:
        params = self.check(params)
        final = None
        for final in self.iterate(params):
            pass

        if final.status == EXHAUSTED:
            raise ConvergenceExhausted(final.iteration, final.error, params.tolerance,
                                       history=final.history)

        grid = uniform_grid(params.time_end, params.time_steps)
        y = self.basis(params).evaluate(final.coefficients, grid).numpy()
        return SolutionCurve(grid, y, metadata={
            'method': self.name,
            'alpha': params.alpha,
            'fractal_dimension': params.fractal_dimension,
            'iterations': final.iteration,
            'error': final.error,
        })
