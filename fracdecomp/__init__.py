"""
fracdecomp: Fractional Decomposition Solver Engine

Semi-analytic solvers for nonlinear fractal-fractional differential equations
built on a Bernstein polynomial basis.

Main components:
- BernsteinBasis / operational matrices: basis and fractional operators
- next_term / DecompositionSeries: Adomian decomposition series
- LaplaceTransform / ShehuTransform: forward transforms and numerical inversion
- ADMSolver, LADMSolver, STADMSolver, MHPMSolver: solvers
- TaskExecutor: order-preserving, fail-fast worker pool
- solve / run: request and typed entry points
"""

__version__ = "0.1.0"

from .errors import (
    FracDecompError,
    ParameterRangeError,
    UnsupportedSelectionError,
    ComputationError,
    TransformInversionError,
    ConvergenceExhausted,
    LinearSolveError,
    ExecutorAggregateError,
    TaskCancelledError,
)
from .params import SolverParameters
from .executor import TaskExecutor, CancellationToken, get_default_executor
from .context import SolverContext
from .utils import SolutionCurve
from .core import (
    BernsteinBasis,
    generate_basis,
    OperationalMatrix,
    generate_operational_matrix,
    generate_integration_matrix,
)
from .transforms import LaplaceTransform, ShehuTransform, forward_transform, inverse_transform
from .solvers import (
    DecompositionSeries,
    next_term,
    ADMSolver,
    LADMSolver,
    STADMSolver,
    MHPMSolver,
    ConvergenceState,
)
from .models import Model, Method, available_models, available_methods, build_solver
from .engine import run, solve
from . import core
from . import transforms
from . import solvers
from . import utils

__all__ = [
    'FracDecompError',
    'ParameterRangeError',
    'UnsupportedSelectionError',
    'ComputationError',
    'TransformInversionError',
    'ConvergenceExhausted',
    'LinearSolveError',
    'ExecutorAggregateError',
    'TaskCancelledError',
    'SolverParameters',
    'TaskExecutor',
    'CancellationToken',
    'get_default_executor',
    'SolverContext',
    'SolutionCurve',
    'BernsteinBasis',
    'generate_basis',
    'OperationalMatrix',
    'generate_operational_matrix',
    'generate_integration_matrix',
    'LaplaceTransform',
    'ShehuTransform',
    'forward_transform',
    'inverse_transform',
    'DecompositionSeries',
    'next_term',
    'ADMSolver',
    'LADMSolver',
    'STADMSolver',
    'MHPMSolver',
    'ConvergenceState',
    'Model',
    'Method',
    'available_models',
    'available_methods',
    'build_solver',
    'run',
    'solve',
    'core',
    'transforms',
    'solvers',
    'utils',
]
