"""
Utility Functions for fracdecomp

Solution curves, uniform time grids, error metrics and xarray export.
"""

from typing import Any, Callable, Dict, List, Optional

import numpy as np
import torch
import xarray as xr

from .errors import ComputationError


def uniform_grid(time_end: float, time_steps: int) -> np.ndarray:
    """
    ``time_steps + 1`` uniform samples of [0, time_end].

    The last sample is exactly ``time_end``.
    """
    grid = np.arange(time_steps + 1, dtype=np.float64) * (time_end / time_steps)
    grid[-1] = time_end
    return grid


def evaluate_callable(f: Callable[[float], float], times: np.ndarray,
                      term_index: Optional[int] = None) -> np.ndarray:
    """
    Evaluate a scalar user callback on every sample.

    Raises
    ------
    ComputationError
        If ``f`` raises or returns a non-finite value
    """
    values = np.empty(len(times), dtype=np.float64)
    for i, t in enumerate(times):
        try:
            values[i] = float(f(float(t)))
        except Exception as exc:
            raise ComputationError(f"Callback raised {type(exc).__name__}: {exc}",
                                   term_index=term_index, sample=float(t)) from exc
        if not np.isfinite(values[i]):
            raise ComputationError("Callback returned a non-finite value",
                                   term_index=term_index, sample=float(t))
    return values


class SolutionCurve:
    """
    Ordered samples (x, y) of a solution.

    Construction checks that ``x`` is strictly increasing and that every ``y``
    is finite; a curve that exists is always JSON-safe.

    Parameters
    ----------
    x : array-like, shape (N,)
        Sample times, strictly increasing
    y : array-like, shape (N,)
        Solution values
    metadata : dict, optional
        Free-form attributes carried into ``to_xarray``

    Examples
    --------
    >>> curve = SolutionCurve([0.0, 0.5, 1.0], [1.0, 0.6, 0.4])
    >>> curve.points()[1]
    {'x': 0.5, 'y': 0.6}
    """

    def __init__(self, x, y, metadata: Optional[Dict[str, Any]] = None):
        x = np.asarray(x, dtype=np.float64).reshape(-1)
        y = np.asarray(y, dtype=np.float64).reshape(-1)
        if x.shape != y.shape:
            raise ValueError(f"x and y differ in length: {x.shape[0]} vs {y.shape[0]}")
        if x.shape[0] < 2:
            raise ValueError("A solution curve needs at least two samples")
        if not np.all(np.diff(x) > 0):
            raise ValueError("Solution curve samples must be strictly increasing in x")
        if not np.all(np.isfinite(y)):
            bad = int(np.flatnonzero(~np.isfinite(y))[0])
            raise ComputationError("Solution is not finite", sample=float(x[bad]))
        self.x = x
        self.y = y
        self.metadata = dict(metadata or {})

    def __len__(self) -> int:
        return self.x.shape[0]

    def __iter__(self):
        return iter(self.points())

    def __repr__(self) -> str:
        return (f"SolutionCurve(n={len(self)}, x=[{self.x[0]:.4g}, {self.x[-1]:.4g}], "
                f"y=[{self.y.min():.4g}, {self.y.max():.4g}])")

    def points(self) -> List[Dict[str, float]]:
        """JSON-serializable ``[{'x': ..., 'y': ...}, ...]``."""
        return [{'x': float(a), 'y': float(b)} for a, b in zip(self.x, self.y)]

    def to_xarray(self, name: str = 'u') -> xr.DataArray:
        """
        Curve as a labelled DataArray with dimension ``t``.

        Examples
        --------
        >>> da = SolutionCurve([0.0, 1.0], [1.0, 2.0]).to_xarray()
        >>> da.dims
        ('t',)
        """
        return xr.DataArray(self.y, coords={'t': self.x}, dims=['t'], name=name,
                            attrs=dict(self.metadata))

    @classmethod
    def from_xarray(cls, data: xr.DataArray) -> 'SolutionCurve':
        return cls(data['t'].values, data.values, metadata=dict(data.attrs))


def compute_relative_error(pred, target, eps: float = 1e-10) -> float:
    """
    Compute relative L2 error.

    Error = ||pred - target|| / ||target||

    Parameters
    ----------
    pred, target : array or tensor
        Predicted and reference values
    eps : float, optional
        Small value to avoid division by zero

    Returns
    -------
    error : float
    """
    pred = torch.as_tensor(np.asarray(pred, dtype=np.float64))
    target = torch.as_tensor(np.asarray(target, dtype=np.float64))
    numerator = torch.norm(pred - target)
    denominator = torch.norm(target) + eps
    return (numerator / denominator).item()


def compute_max_error(pred, target) -> float:
    """Maximum absolute deviation."""
    return float(np.max(np.abs(np.asarray(pred, dtype=np.float64) -
                                np.asarray(target, dtype=np.float64))))
