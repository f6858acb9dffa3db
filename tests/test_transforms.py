"""
Test Suite: Integral Transforms and Numerical Inversion

Tests for:
- Forward Laplace / Shehu transforms against closed forms
- Round trips through the Euler, Gaver-Stehfest and Talbot inversions
- Scheme restrictions and convergence checks

Run with: python -m pytest tests/test_transforms.py -v
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import math

import numpy as np
import pytest

from fracdecomp.errors import ComputationError, ParameterRangeError, TransformInversionError
from fracdecomp.executor import TaskExecutor
from fracdecomp.transforms import (
    EulerInversion,
    FixedTalbot,
    GaverStehfest,
    LaplaceTransform,
    ShehuTransform,
    forward_transform,
    get_scheme,
    inverse_transform,
)


TIMES = np.linspace(0.5, 5.0, 10)

SIGNALS = {
    'exp': (lambda t: np.exp(-t), lambda s: 1.0 / (s + 1.0)),
    'ramp': (lambda t: t, lambda s: 1.0 / s ** 2),
    'sine': (lambda t: np.sin(t), lambda s: 1.0 / (s ** 2 + 1.0)),
}


class TestForwardTransform:
    """Quadrature of the forward integrals."""

    @pytest.mark.parametrize("name", sorted(SIGNALS))
    def test_laplace_closed_form(self, name):
        f, F = SIGNALS[name]
        transform = LaplaceTransform()
        for s in (0.5, 2.0, 3.0 + 4.0j):
            value = transform.evaluate(f, s, vectorized=True)
            assert abs(value - F(s)) < 1e-10, f"{name} at s={s}: {value} vs {F(s)}"

    def test_scalar_callback(self):
        """Scalar callbacks are evaluated node by node."""
        F = LaplaceTransform().forward(lambda t: math.exp(-2.0 * t))
        assert abs(F(1.0) - 1.0 / 3.0) < 1e-10

    def test_shehu_closed_form(self):
        """S[e^{-t}](s, v) = v / (s + v)."""
        transform = ShehuTransform(v=2.0)
        value = transform.evaluate(lambda t: np.exp(-t), 2.0, vectorized=True)
        assert abs(value - 0.5) < 1e-10

    def test_decay_rate_extends_domain(self):
        """A known decay rate lets the integral converge for Re(s) ≤ 0."""
        transform = LaplaceTransform()
        value = transform.evaluate(lambda t: np.exp(-2.0 * t), -1.0,
                                   decay_rate=2.0, vectorized=True)
        assert abs(value - 1.0) < 1e-10

    def test_divergent_integral(self):
        with pytest.raises(TransformInversionError):
            LaplaceTransform().evaluate(lambda t: np.ones_like(t), -1.0, vectorized=True)
        with pytest.raises(TransformInversionError):
            LaplaceTransform().evaluate(lambda t: np.ones_like(t), 0.0, vectorized=True)

    def test_failing_integrand(self):
        def failing(t):
            raise RuntimeError("sensor offline")

        with pytest.raises(ComputationError):
            LaplaceTransform().evaluate(failing, 1.0)

    def test_non_finite_integrand(self):
        with pytest.raises(ComputationError):
            LaplaceTransform().evaluate(lambda t: np.full_like(t, np.nan), 1.0, vectorized=True)

    def test_weak_singularity_at_origin(self):
        """L[t^{-1/2}](s) = sqrt(π / s)."""
        value = LaplaceTransform().evaluate(lambda t: t ** -0.5, 2.0, vectorized=True)
        assert abs(value - math.sqrt(math.pi / 2.0)) < 1e-8

    def test_invalid_shehu_variable(self):
        with pytest.raises(ParameterRangeError):
            ShehuTransform(v=0.0)

    def test_functional_entry(self):
        F = forward_transform(lambda t: np.exp(-t), kind='shehu', vectorized=True)
        assert abs(F(1.0) - 0.5) < 1e-10


class TestRoundTrip:
    """forward then inverse recovers f on [0.5, 5]."""

    @pytest.mark.parametrize("name", sorted(SIGNALS))
    def test_euler(self, name):
        f, _ = SIGNALS[name]
        transform = LaplaceTransform()
        F = transform.forward(f, vectorized=True)
        recovered = transform.inverse(F, scheme='euler').many(TIMES)

        error = np.max(np.abs(recovered - f(TIMES)))
        assert error < 1e-3, f"Euler round trip of {name}: max error {error:.2e}"

    @pytest.mark.parametrize("name", ['exp', 'ramp'])
    def test_stehfest(self, name):
        f, _ = SIGNALS[name]
        transform = LaplaceTransform()
        F = transform.forward(f, vectorized=True)
        recovered = transform.inverse(F, scheme='stehfest').many(TIMES)

        error = np.max(np.abs(recovered - f(TIMES)))
        assert error < 1e-3, f"Stehfest round trip of {name}: max error {error:.2e}"

    def test_shehu(self):
        f, _ = SIGNALS['exp']
        transform = ShehuTransform(v=2.0)
        F = transform.forward(f, vectorized=True)
        recovered = transform.inverse(F).many(TIMES)

        error = np.max(np.abs(recovered - f(TIMES)))
        assert error < 1e-3, f"Shehu round trip: max error {error:.2e}"

    def test_with_executor(self):
        """Dispatching node evaluations gives the same values as inline."""
        f, _ = SIGNALS['sine']
        transform = LaplaceTransform()
        F = transform.forward(f, vectorized=True)
        inline = transform.inverse(F).many(TIMES[:3])
        with TaskExecutor(max_workers=2) as executor:
            dispatched = transform.inverse(F, executor=executor).many(TIMES[:3])

        assert np.allclose(inline, dispatched, rtol=0, atol=1e-14)


class TestInversionSchemes:
    """Scheme construction and restrictions."""

    @pytest.mark.parametrize("name", sorted(SIGNALS))
    def test_talbot_closed_form(self, name):
        f, F = SIGNALS[name]
        inverse = inverse_transform(F, scheme='talbot')
        error = np.max(np.abs(inverse.many(TIMES) - f(TIMES)))
        assert error < 1e-6, f"Talbot inversion of {name}: max error {error:.2e}"

    def test_talbot_rejects_quadrature_backed(self):
        """Talbot nodes leave the half-plane where the quadrature exists."""
        transform = LaplaceTransform()
        F = transform.forward(lambda t: np.exp(-t), vectorized=True)
        inverse = transform.inverse(F, scheme='talbot')

        with pytest.raises(TransformInversionError) as excinfo:
            inverse(1.0)
        assert excinfo.value.scheme == 'talbot'

    def test_euler_nodes_have_positive_real_part(self):
        scheme = EulerInversion()
        assert np.all(scheme.points(2.0).real > 0)
        assert len(scheme) == 2 * scheme.M + 1

    def test_stehfest_weights_sum_to_zero(self):
        """Σ V_k = 0 so that constants invert exactly."""
        scheme = GaverStehfest()
        assert abs(np.sum(scheme.etas.real)) < 1e-6 * np.max(np.abs(scheme.etas.real))

    @pytest.mark.parametrize("nodes", [10, 13, 0])
    def test_invalid_node_count(self, nodes):
        with pytest.raises(ParameterRangeError):
            EulerInversion(nodes)

    def test_unknown_scheme(self):
        with pytest.raises(ParameterRangeError):
            get_scheme('post-widder')

    def test_scheme_lookup(self):
        assert isinstance(get_scheme('Talbot'), FixedTalbot)
        assert isinstance(get_scheme('gaver-stehfest', 16), GaverStehfest)
        assert get_scheme('euler', 20).M == 20

    def test_non_positive_time(self):
        inverse = inverse_transform(lambda s: 1.0 / s, scheme='euler')
        with pytest.raises(TransformInversionError):
            inverse(0.0)

    def test_non_finite_image(self):
        inverse = inverse_transform(lambda s: complex('nan'), scheme='euler')
        with pytest.raises(TransformInversionError):
            inverse(1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
