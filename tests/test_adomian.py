"""
Test Suite: Adomian Polynomials and the Decomposition Series

Tests for:
- Closed-form low-order Adomian polynomials
- Terms read only earlier entries of the series
- Error reporting for failing nonlinear terms

Run with: python -m pytest tests/test_adomian.py -v
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import math

import numpy as np
import pytest

from fracdecomp.core import CombinatorialTable
from fracdecomp.errors import ComputationError, ParameterRangeError
from fracdecomp.solvers import DecompositionSeries, adomian_polynomial, next_term
from fracdecomp.solvers.adomian import taylor_coefficients


class RecordingTerm:
    """Term function that logs every read."""

    def __init__(self, index, value, log):
        self.index = index
        self.value = value
        self.log = log

    def __call__(self, t):
        self.log.append(self.index)
        return self.value * (1.0 + t)


def constant_series(*values):
    return DecompositionSeries([lambda t, v=v: v for v in values])


class TestAdomianPolynomials:
    """Low-order polynomials against their closed forms."""

    def test_first_polynomial_of_square(self):
        """N(u) = u^2: A_1 = 2 u_0 u_1."""
        series = constant_series(0.7, -0.3)
        term = next_term(series, lambda u: u * u, 2)

        assert term(0.4) == pytest.approx(2 * 0.7 * -0.3, abs=1e-10)

    def test_second_polynomial_of_square(self):
        """N(u) = u^2: A_2 = 2 u_0 u_2 + u_1^2."""
        series = constant_series(0.7, -0.3, 0.2)
        term = next_term(series, lambda u: u * u, 3)

        assert term(0.0) == pytest.approx(2 * 0.7 * 0.2 + 0.09, abs=1e-10)

    def test_sine_polynomials(self):
        """N(u) = sin u: A_2 = u_2 cos u_0 - u_1^2 sin(u_0) / 2."""
        u0, u1, u2 = 0.3, 0.2, -0.1
        series = constant_series(u0, u1, u2)

        A0 = next_term(series, math.sin, 1)(0.5)
        A1 = next_term(series, math.sin, 2)(0.5)
        A2 = next_term(series, math.sin, 3)(0.5)

        assert A0 == pytest.approx(math.sin(u0), abs=1e-14)
        assert A1 == pytest.approx(u1 * math.cos(u0), abs=1e-9)
        assert A2 == pytest.approx(u2 * math.cos(u0) - 0.5 * u1 ** 2 * math.sin(u0), abs=1e-9)

    def test_third_polynomial_of_cube(self):
        """N(u) = u^3: A_3 = 3 u_0^2 u_3 + 6 u_0 u_1 u_2 + u_1^3."""
        u = (1.1, 0.4, -0.2, 0.3)
        series = constant_series(*u)
        term = next_term(series, lambda v: v ** 3, 4)

        expected = 3 * u[0] ** 2 * u[3] + 6 * u[0] * u[1] * u[2] + u[1] ** 3
        assert term(0.0) == pytest.approx(expected, abs=1e-9)

    def test_linear_term_passes_through(self):
        """N(u) = u gives A_m = u_m."""
        series = constant_series(2.0, -1.0, 0.5, 0.25, -0.125)
        for n in range(2, 6):
            value = next_term(series, lambda v: v, n)(0.0)
            assert value == pytest.approx(series[n - 1](0.0), abs=1e-10)

    def test_recurrence_with_exact_derivatives(self):
        """adomian_polynomial with N = exp: every derivative equals e^{u_0}."""
        values = [0.0, 0.5, 0.1]
        derivatives = [1.0, 1.0]
        # A_2 = e^{u0} (u_2 + u_1^2 / 2)
        assert adomian_polynomial(values, derivatives) == pytest.approx(0.1 + 0.125)

    def test_taylor_coefficients(self):
        """Taylor coefficients of exp around 0.5."""
        a = taylor_coefficients(math.exp, 0.5, 4)
        expected = [math.exp(0.5) / math.factorial(k) for k in range(5)]
        assert np.allclose(a, expected, atol=1e-10)


class TestSeriesOrdering:
    """A term of index n reads u_0..u_{n-1} and nothing else."""

    def test_reads_only_prior_terms(self):
        log = []
        series = DecompositionSeries([RecordingTerm(k, 0.1 * (k + 1), log) for k in range(5)])
        term = next_term(series, math.sin, 3)

        term(0.25)

        assert set(log) == {0, 1, 2}, f"Term 3 read entries {sorted(set(log))}"

    def test_later_appends_are_invisible(self):
        """Appending to the series does not change an existing term."""
        log = []
        series = DecompositionSeries([RecordingTerm(k, 0.2, log) for k in range(2)])
        term = next_term(series, lambda u: u * u, 2)
        before = term(0.5)

        series.append(RecordingTerm(2, 100.0, log))
        series.append(RecordingTerm(3, -100.0, log))
        log.clear()
        after = term(0.5)

        assert after == before
        assert set(log) == {0, 1}
        assert len(term.prior) == 2

    def test_series_is_append_only(self):
        series = DecompositionSeries([lambda t: 1.0])
        with pytest.raises(TypeError):
            series[0] = lambda t: 2.0
        with pytest.raises(TypeError):
            series.append(3.0)

    def test_partial_sum(self):
        series = DecompositionSeries([lambda t: 1.0, lambda t: -t, lambda t: t * t / 2])
        assert series.evaluate(0.5) == pytest.approx(0.625)
        assert len(series) == 3


class TestErrors:
    """Failures surface as engine errors with context."""

    def test_index_below_one(self):
        with pytest.raises(ParameterRangeError):
            next_term(constant_series(1.0), math.sin, 0)

    def test_missing_prior_terms(self):
        with pytest.raises(ParameterRangeError):
            next_term(constant_series(1.0, 2.0), math.sin, 3)

    def test_nonlinear_term_raises(self):
        """ComputationError names the term index and the sample."""
        def failing(u):
            raise ValueError("domain error")

        term = next_term(constant_series(1.0), failing, 1)

        with pytest.raises(ComputationError) as excinfo:
            term(0.75)
        assert excinfo.value.term_index == 1
        assert excinfo.value.sample == 0.75
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_non_finite_value(self):
        term = next_term(constant_series(0.0), lambda u: math.inf, 1)
        with pytest.raises(ComputationError):
            term(0.1)

    def test_failing_prior_term(self):
        def broken(t):
            raise ZeroDivisionError("bad term")

        series = DecompositionSeries([lambda t: 1.0, broken])
        term = next_term(series, math.sin, 2)

        with pytest.raises(ComputationError) as excinfo:
            term(0.2)
        assert excinfo.value.term_index == 2

    def test_shared_table_is_grown(self):
        """A table smaller than the term index is replaced, not indexed past its end."""
        series = constant_series(0.1, 0.2, 0.3, 0.4)
        term = next_term(series, math.sin, 4, table=CombinatorialTable(1))
        assert term.table.size >= 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
