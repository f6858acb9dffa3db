"""fracdecomp defaults loaded from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# ============================================================================
# Executor
# ============================================================================

# 0 means "one worker per available core"
MAX_WORKERS = int(os.getenv('FRACDECOMP_MAX_WORKERS', '0'))

# ============================================================================
# Basis / operational matrices
# ============================================================================

# The Bernstein Gram matrix condition grows like 4**degree
MAX_DEGREE = int(os.getenv('FRACDECOMP_MAX_DEGREE', '20'))

# Minimum Gauss-Legendre nodes used when projecting onto the basis
PROJECTION_NODES = int(os.getenv('FRACDECOMP_PROJECTION_NODES', '16'))

# ============================================================================
# Integral transforms
# ============================================================================

INVERSION_SCHEME = os.getenv('FRACDECOMP_INVERSION_SCHEME', 'euler').lower()
INVERSION_NODES = int(os.getenv('FRACDECOMP_INVERSION_NODES', '0'))  # 0: scheme default

# Forward integral is truncated where exp(-(Re s + decay) t) drops to exp(-cutoff)
QUADRATURE_CUTOFF = float(os.getenv('FRACDECOMP_QUADRATURE_CUTOFF', '40.0'))
PANEL_NODES = int(os.getenv('FRACDECOMP_PANEL_NODES', '32'))
MAX_PANELS = int(os.getenv('FRACDECOMP_MAX_PANELS', '400'))

# ============================================================================
# Solvers
# ============================================================================

DEFAULT_TOLERANCE = float(os.getenv('FRACDECOMP_TOLERANCE', '1e-6'))
ILL_CONDITIONED = float(os.getenv('FRACDECOMP_ILL_CONDITIONED', '1e12'))  # warn
SINGULAR = float(os.getenv('FRACDECOMP_SINGULAR', '1e14'))  # fail

VERBOSE = bool(int(os.getenv('FRACDECOMP_VERBOSE', '0')))
