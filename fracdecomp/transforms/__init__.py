"""
Integral transform pair

- integral: forward Laplace / Shehu transforms by composite Gauss-Legendre quadrature
- inversion: Gaver-Stehfest, fixed Talbot and Euler numerical inversion
"""

from .inversion import (
    InversionScheme,
    GaverStehfest,
    FixedTalbot,
    EulerInversion,
    get_scheme,
)
from .integral import (
    IntegralTransform,
    LaplaceTransform,
    ShehuTransform,
    TransformedFunction,
    InverseFunction,
    forward_transform,
    inverse_transform,
)

__all__ = [
    'InversionScheme',
    'GaverStehfest',
    'FixedTalbot',
    'EulerInversion',
    'get_scheme',
    'IntegralTransform',
    'LaplaceTransform',
    'ShehuTransform',
    'TransformedFunction',
    'InverseFunction',
    'forward_transform',
    'inverse_transform',
]
