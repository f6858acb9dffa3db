"""
Solvers for fracdecomp

- adomian: Adomian polynomials and the append-only decomposition series
- decomposition: ADM / LADM / STADM decomposition solvers
- mhpm: iterative perturbation (MHPM) collocation solver
"""

from .base import Solver
from .adomian import DecompositionSeries, AdomianTerm, next_term, adomian_polynomial
from .decomposition import (
    BernsteinTerm,
    DecompositionSolver,
    ADMSolver,
    LADMSolver,
    STADMSolver,
)
from .mhpm import ConvergenceState, MHPMSolver

__all__ = [
    'Solver',
    'DecompositionSeries',
    'AdomianTerm',
    'next_term',
    'adomian_polynomial',
    'BernsteinTerm',
    'DecompositionSolver',
    'ADMSolver',
    'LADMSolver',
    'STADMSolver',
    'ConvergenceState',
    'MHPMSolver',
]
