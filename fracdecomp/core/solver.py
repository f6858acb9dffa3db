"""
Dense Linear Solves

The MHPM iteration solves one square system per iteration:
    A @ c = b

where:
- A: Collocation matrix built from the operational matrices (n+1, n+1)
- c: Bernstein coefficients of the new iterate (n+1,)
- b: Negated nonlinear term at the collocation points, with the initial
     condition in entry 0
"""

import warnings
from typing import Optional, Tuple

import torch

from .. import config
from ..errors import LinearSolveError


def condition_number(A: torch.Tensor) -> float:
    """
    Condition number κ(A) = σ_max / σ_min.

    Examples
    --------
    >>> A = torch.eye(4, dtype=torch.float64)
    >>> condition_number(A)
    1.0
    """
    return torch.linalg.cond(A).item()


def compute_residual(A: torch.Tensor,
                     c: torch.Tensor,
                     b: torch.Tensor) -> Tuple[float, float]:
    """
    Absolute and relative residual ||A c - b||.

    Returns
    -------
    residual : float
    rel_residual : float
        Zero when ``b`` is the zero vector
    """
    residual = torch.norm(A @ c - b).item()
    norm_b = torch.norm(b).item()
    rel_residual = residual / norm_b if norm_b > 0 else 0.0
    return residual, rel_residual


def solve_dense(A: torch.Tensor,
                b: torch.Tensor,
                iteration: Optional[int] = None,
                verbose: bool = False) -> torch.Tensor:
    """
    Solve a square system by LU factorization.

    Parameters
    ----------
    A : torch.Tensor, shape (n, n)
        System matrix
    b : torch.Tensor, shape (n,)
        Right-hand side
    iteration : int, optional
        Iteration index reported in errors and diagnostics
    verbose : bool, optional
        Print conditioning and residual (default: False)

    Returns
    -------
    c : torch.Tensor, shape (n,)

    Raises
    ------
    LinearSolveError
        If ``A`` or ``b`` is non-finite, ``A`` is singular or its condition
        number exceeds ``config.SINGULAR``, or the solution is non-finite

    Notes
    -----
    Condition numbers between ``config.ILL_CONDITIONED`` and
    ``config.SINGULAR`` only raise a warning.
    """
    if not (torch.isfinite(A).all() and torch.isfinite(b).all()):
        raise LinearSolveError("Non-finite entries in linear system", iteration=iteration)

    cond = condition_number(A)
    if not cond <= config.SINGULAR:
        raise LinearSolveError(f"Ill-conditioned linear system (condition number {cond:.2e})",
                               iteration=iteration, condition=cond)
    if cond > config.ILL_CONDITIONED:
        warnings.warn(f"Large condition number ({cond:.2e}) in iteration {iteration}.")

    try:
        c = torch.linalg.solve(A, b)
    except RuntimeError as exc:  # torch.linalg.LinAlgError subclasses RuntimeError
        raise LinearSolveError(f"Singular linear system: {exc}", iteration=iteration) from exc

    if not torch.isfinite(c).all():
        raise LinearSolveError("Linear solve produced non-finite coefficients",
                               iteration=iteration)

    if verbose:
        residual, rel_residual = compute_residual(A, c, b)
        print(f"  Condition number: {cond:.2e}, residual: {residual:.4e} "
              f"(relative: {rel_residual:.4e})")

    return c
