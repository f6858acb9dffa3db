"""
Memoized factorial / binomial table.

Built once per solve, sized to the largest index needed (decomposition terms,
polynomial degree), and passed down to the basis, the operational matrices
and the Adomian recurrence instead of recomputing factorials per call.
"""

import torch
from typing import Dict


class CombinatorialTable:
    """
    Factorials and binomial coefficients up to ``size``.

    Binomial rows are computed in log space with ``torch.lgamma`` and rounded
    back to integers, so entries stay exact while below 2**53.

    Parameters
    ----------
    size : int
        Largest ``n`` for which ``n!`` and ``C(n, k)`` are needed

    Examples
    --------
    >>> table = CombinatorialTable(10)
    >>> table.binomial(5, 2)
    10.0
    >>> table.factorial(4)
    24.0
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Table size must be non-negative, got {size}")
        self.size = int(size)
        n = torch.arange(self.size + 1, dtype=torch.float64)
        self.log_factorials = torch.lgamma(n + 1)
        self.factorials = torch.cat([
            torch.ones(1, dtype=torch.float64),
            torch.cumprod(n[1:], dim=0),
        ])
        self._rows: Dict[int, torch.Tensor] = {}
        self.row_builds = 0

    def _check(self, n: int):
        if n > self.size:
            raise IndexError(f"Combinatorial table of size {self.size} cannot serve n={n}")

    def factorial(self, n: int) -> float:
        self._check(n)
        return self.factorials[n].item()

    def binomial_row(self, n: int) -> torch.Tensor:
        """All C(n, k) for k = 0..n as a float64 tensor (memoized)."""
        self._check(n)
        row = self._rows.get(n)
        if row is None:
            k = torch.arange(n + 1, dtype=torch.float64)
            log_binom = self.log_factorials[n] - self.log_factorials[:n + 1] - \
                torch.lgamma(n - k + 1)
            row = torch.round(torch.exp(log_binom))
            self._rows[n] = row
            self.row_builds += 1
        return row

    def binomial(self, n: int, k: int) -> float:
        if k < 0 or k > n:
            return 0.0
        return self.binomial_row(n)[k].item()

    def ensure(self, size: int) -> 'CombinatorialTable':
        """Return self if large enough, otherwise a larger table."""
        if size <= self.size:
            return self
        return CombinatorialTable(size)
