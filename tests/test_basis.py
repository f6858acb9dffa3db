"""
Test Suite: Bernstein Polynomial Basis

Tests for:
- Partition of unity and non-negativity
- Endpoint interpolation
- Sequence protocol (scalar basis functions)
- Closed-form Gram matrix and L2 projection
- Analytical derivatives
- Combinatorial table

Run with: python -m pytest tests/test_basis.py -v
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import math

import torch
import numpy as np
import pytest

from fracdecomp import config
from fracdecomp.core import BernsteinBasis, CombinatorialTable, generate_basis, gauss_legendre
from fracdecomp.errors import ParameterRangeError


class TestBernsteinBasis:
    """Test Bernstein polynomial basis functions."""

    def test_initialization(self):
        """Test basis initialization."""
        basis = BernsteinBasis(degree=5, domain=(0.0, 10.0))

        assert basis.degree == 5
        assert basis.n_features == 6
        assert len(basis) == 6
        assert basis.domain == (0.0, 10.0)

    def test_partition_of_unity(self):
        """Σ_k B_k(x) = 1 to 1e-9 for every supported degree."""
        x = torch.linspace(0.0, 1.0, 201, dtype=torch.float64)
        for degree in range(0, config.MAX_DEGREE + 1):
            phi = BernsteinBasis(degree)(x)
            max_error = torch.abs(phi.sum(dim=1) - 1.0).max().item()
            assert max_error < 1e-9, \
                f"Degree {degree}: partition of unity error {max_error:.2e}"

    def test_non_negative(self):
        """All basis values are non-negative on the domain."""
        x = torch.linspace(0.0, 3.0, 101, dtype=torch.float64)
        for degree in (0, 1, 4, 10, 20):
            phi = BernsteinBasis(degree, domain=(0.0, 3.0))(x)
            assert (phi >= 0).all(), f"Negative basis value at degree {degree}"

    def test_verify_partition_of_unity(self):
        """Built-in check passes for a well-formed basis."""
        basis = BernsteinBasis(8, domain=(0.0, 2.0))
        assert basis.verify_partition_of_unity(n_test=50)

    def test_endpoint_interpolation(self):
        """B_0(a) = 1 and B_n(b) = 1; all other functions vanish there."""
        basis = BernsteinBasis(6, domain=(0.0, 4.0))
        phi = basis([0.0, 4.0])

        expected_left = torch.zeros(7, dtype=torch.float64)
        expected_left[0] = 1.0
        expected_right = torch.zeros(7, dtype=torch.float64)
        expected_right[-1] = 1.0

        assert torch.allclose(phi[0], expected_left)
        assert torch.allclose(phi[1], expected_right)

    def test_outside_domain_is_clamped(self):
        """Points beyond the domain evaluate as the nearest endpoint."""
        basis = BernsteinBasis(4, domain=(0.0, 1.0))
        phi = basis([1.5, -0.5])
        assert torch.allclose(phi[0], basis([1.0])[0])
        assert torch.allclose(phi[1], basis([0.0])[0])

    def test_evaluation_shape(self):
        """Test output shape of basis evaluation."""
        basis = BernsteinBasis(7, domain=(0.0, 10.0))
        x = torch.rand(50, dtype=torch.float64) * 10.0

        phi = basis(x)

        assert phi.shape == (50, 8), f"Expected shape (50, 8), got {phi.shape}"
        assert phi.dtype == torch.float64

    def test_sequence_protocol(self):
        """basis[k](x) agrees with column k of the evaluation matrix."""
        basis = BernsteinBasis(5, domain=(0.0, 2.0))
        points = [0.0, 0.3, 1.1, 2.0]
        phi = basis(points)

        for k, function in enumerate(basis):
            for i, x in enumerate(points):
                assert abs(function(x) - phi[i, k].item()) < 1e-14
        assert basis[-1](2.0) == pytest.approx(1.0)

        with pytest.raises(IndexError):
            basis[6]

    def test_invalid_degree(self):
        """Degrees outside [0, MAX_DEGREE] are rejected."""
        with pytest.raises(ParameterRangeError):
            BernsteinBasis(-1)
        with pytest.raises(ParameterRangeError):
            BernsteinBasis(config.MAX_DEGREE + 1)
        with pytest.raises(ParameterRangeError):
            generate_basis(2.5)

    def test_empty_domain(self):
        with pytest.raises(ValueError):
            BernsteinBasis(3, domain=(1.0, 1.0))

    def test_evaluate_coefficient_count(self):
        """evaluate() rejects coefficient vectors of the wrong length."""
        basis = BernsteinBasis(3)
        with pytest.raises(ValueError):
            basis.evaluate(torch.ones(5, dtype=torch.float64), [0.5])


class TestProjection:
    """Gram matrix and L2 projection."""

    def test_gram_matches_quadrature(self):
        """Closed-form Gram matrix equals ∫ B_i B_j by Gauss-Legendre."""
        basis = BernsteinBasis(6)
        x, w = gauss_legendre(20)
        phi = basis(x)
        gram_quad = phi.T @ (torch.as_tensor(w)[:, None] * phi)

        assert torch.allclose(basis.gram_matrix(), gram_quad, atol=1e-13), \
            "Gram matrix does not match quadrature"

    def test_gram_is_symmetric(self):
        gram = BernsteinBasis(9).gram_matrix()
        assert torch.allclose(gram, gram.T)

    def test_projection_reproduces_polynomials(self):
        """Polynomials of degree ≤ n are reproduced exactly."""
        basis = BernsteinBasis(6, domain=(0.0, 3.0))

        def f(t):
            return 1.0 - 2.0 * t + 0.5 * t ** 3 - 0.01 * t ** 6

        c = basis.project(f)
        x = np.linspace(0.0, 3.0, 31)
        approx = basis.evaluate(c, x).numpy()
        exact = np.array([f(t) for t in x])

        assert np.max(np.abs(approx - exact)) < 1e-9, \
            f"Projection error {np.max(np.abs(approx - exact)):.2e}"

    def test_projection_of_constant(self):
        """A constant projects onto equal coefficients."""
        basis = BernsteinBasis(4)
        c = basis.project(lambda t: 2.5)
        assert torch.allclose(c, torch.full((5,), 2.5, dtype=torch.float64), atol=1e-12)

    def test_project_samples_batched(self):
        """Several functions project at once column by column."""
        basis = BernsteinBasis(3)
        nodes, weights = basis.quadrature()
        values = np.stack([nodes, nodes ** 2], axis=1)

        c = basis.project_samples(values, weights, nodes)

        assert c.shape == (4, 2)
        assert torch.allclose(c[:, 0], basis.project(lambda t: t), atol=1e-12)
        assert torch.allclose(c[:, 1], basis.project(lambda t: t ** 2), atol=1e-12)

    def test_quadrature_nodes(self):
        """Projection rule has at least 2n+2 nodes inside the domain."""
        basis = BernsteinBasis(12, domain=(0.0, 5.0))
        nodes, weights = basis.quadrature()

        assert len(nodes) >= 26
        assert np.all((nodes > 0.0) & (nodes < 5.0))
        assert abs(weights.sum() - 1.0) < 1e-13

    def test_monomial_matrix(self):
        """Rows of the change of basis reproduce each B_i as a polynomial."""
        basis = BernsteinBasis(5)
        A = basis.monomial_matrix()
        x = torch.linspace(0.0, 1.0, 11, dtype=torch.float64)
        powers = torch.stack([x ** j for j in range(6)], dim=1)

        assert torch.allclose(powers @ A.T, basis(x), atol=1e-12)


class TestDerivatives:
    """Analytical derivatives."""

    def test_derivative_vs_finite_difference(self):
        """Test analytical derivatives against central differences."""
        basis = BernsteinBasis(7, domain=(0.0, 2.0))
        x = torch.linspace(0.1, 1.9, 19, dtype=torch.float64)
        h = 1e-6

        analytic = basis.derivative(x)
        numeric = (basis(x + h) - basis(x - h)) / (2 * h)

        error = (analytic - numeric).abs().max().item()
        assert error < 1e-6, f"Derivative error too large: {error:.2e}"

    def test_derivative_of_partition_is_zero(self):
        """Σ_k B_k' = 0 since Σ_k B_k = 1."""
        d_phi = BernsteinBasis(9, domain=(0.0, 3.0)).derivative(
            torch.linspace(0.0, 3.0, 13, dtype=torch.float64))
        assert d_phi.sum(dim=1).abs().max().item() < 1e-10

    def test_degree_zero_derivative(self):
        d_phi = BernsteinBasis(0).derivative([0.2, 0.7])
        assert torch.equal(d_phi, torch.zeros((2, 1), dtype=torch.float64))


class TestCombinatorialTable:
    """Memoized factorials and binomial coefficients."""

    def test_factorials(self):
        table = CombinatorialTable(20)
        for n in range(21):
            assert table.factorial(n) == float(math.factorial(n))

    def test_binomials_are_exact(self):
        table = CombinatorialTable(40)
        for n in (0, 1, 7, 20, 40):
            for k in range(n + 1):
                assert table.binomial(n, k) == float(math.comb(n, k))
        assert table.binomial(5, 7) == 0.0

    def test_rows_are_memoized(self):
        table = CombinatorialTable(10)
        row = table.binomial_row(8)
        assert table.binomial_row(8) is row
        assert table.row_builds == 1

    def test_size_limit(self):
        table = CombinatorialTable(4)
        with pytest.raises(IndexError):
            table.factorial(5)
        assert table.ensure(3) is table
        assert table.ensure(9).size == 9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
