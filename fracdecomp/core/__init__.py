"""
Core components for fracdecomp

- combinatorics: memoized factorial / binomial table
- bernstein: Bernstein polynomial basis and projection
- operational: fractal-fractional derivative / integral operational matrices
- solver: dense linear solves and conditioning diagnostics
"""

from .combinatorics import CombinatorialTable
from .bernstein import BernsteinBasis, generate_basis, gauss_legendre
from .operational import (
    OperationalMatrix,
    OperationalMatrixCache,
    generate_operational_matrix,
    generate_integration_matrix,
)
from .solver import solve_dense, condition_number, compute_residual

__all__ = [
    'CombinatorialTable',
    'BernsteinBasis',
    'generate_basis',
    'gauss_legendre',
    'OperationalMatrix',
    'OperationalMatrixCache',
    'generate_operational_matrix',
    'generate_integration_matrix',
    'solve_dense',
    'condition_number',
    'compute_residual',
]
