"""Unit tests for constraint point records."""

from __future__ import annotations

import math

import numpy as np
import pytest

from pysurfe.core.exceptions import ConstraintError
from pysurfe.core.points import (
    EvaluationPoint,
    Inequality,
    Interface,
    Planar,
    Point,
    Tangent,
    normal_from_strike_dip,
    strike_dip_from_normal,
)


class TestPoint:
    """Tests for the Point base record."""

    def test_fields_start_unset(self):
        """Test scalar field and gradient start as None."""
        p = Point(1.0, 2.0, 3.0)
        assert p.scalar_field is None
        assert p.gradient is None
        assert p.c == 0.0

    def test_coordinates(self):
        """Test coordinates array."""
        p = EvaluationPoint(1.0, 2.0, 3.0)
        np.testing.assert_array_equal(p.coordinates, [1.0, 2.0, 3.0])

    def test_set_fields(self):
        """Test writing the scalar and vector fields."""
        p = Point(0.0, 0.0, 0.0)
        p.set_scalar_field(2.5)
        p.set_vector_field(0.0, 1.0, 0.0)
        assert p.scalar_field == 2.5
        np.testing.assert_array_equal(p.gradient, [0.0, 1.0, 0.0])

    def test_copy_is_independent(self):
        """Test copies do not share state."""
        p = Interface(0.0, 0.0, 0.0, 1.0)
        p.field_history.append(1.0)
        q = p.copy()
        q.field_history.append(2.0)
        q.x = 5.0
        assert p.field_history == [1.0]
        assert p.x == 0.0
        assert isinstance(q, Interface)


class TestInterface:
    """Tests for Interface."""

    def test_defaults(self):
        itf = Interface(0.0, 0.0, 0.0, 2.0)
        assert itf.level == 2.0
        assert itf.residual == 0.0
        assert itf.level_bounds == (0.0, 0.0)

    def test_set_level_bounds(self):
        """Test bounds are a symmetric band relative to the level."""
        itf = Interface(0.0, 0.0, 0.0, 2.0)
        itf.set_level_bounds(0.5)
        assert itf.level_lower_bound == -0.5
        assert itf.level_upper_bound == 0.5

    def test_negative_uncertainty_raises(self):
        itf = Interface(0.0, 0.0, 0.0, 2.0)
        with pytest.raises(ConstraintError, match="non-negative"):
            itf.set_level_bounds(-1.0)


class TestInequality:
    """Tests for Inequality."""

    def test_starts_violated(self):
        ie = Inequality(0.0, 0.0, 0.0, 1.0)
        assert ie.residual is True
        assert ie.level == 1.0


class TestStrikeDip:
    """Tests for strike/dip/polarity conversions."""

    def test_horizontal_upright(self):
        n = normal_from_strike_dip(0.0, 0.0, 1)
        np.testing.assert_allclose(n, [0.0, 0.0, 1.0], atol=1e-12)

    def test_overturned_flips_normal(self):
        np.testing.assert_allclose(
            normal_from_strike_dip(0.0, 0.0, 0), [0.0, 0.0, -1.0], atol=1e-12
        )

    def test_dip_direction_is_strike_plus_90(self):
        """Test a north-striking vertical plane dips east."""
        n = normal_from_strike_dip(90.0, 0.0, 1)
        np.testing.assert_allclose(n, [1.0, 0.0, 0.0], atol=1e-12)

    @pytest.mark.parametrize(
        "dip,strike,polarity",
        [(30.0, 45.0, 1), (60.0, 200.0, 1), (10.0, 300.0, 0), (75.0, 10.0, 0)],
    )
    def test_round_trip(self, dip, strike, polarity):
        """Test conversion to a normal and back recovers the measurement."""
        n = normal_from_strike_dip(dip, strike, polarity)
        d, s, p = strike_dip_from_normal(n)
        assert d == pytest.approx(dip)
        assert s == pytest.approx(strike)
        assert p == polarity

    def test_zero_normal_raises(self):
        with pytest.raises(ConstraintError):
            strike_dip_from_normal(np.zeros(3))


class TestPlanar:
    """Tests for Planar."""

    def test_derives_strike_dip_from_normal(self):
        p = Planar(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)
        assert p.dip == pytest.approx(0.0)
        assert p.polarity == 1

    def test_from_dip_strike(self):
        p = Planar.from_dip_strike(0.0, 0.0, 0.0, 90.0, 0.0, 1)
        np.testing.assert_allclose(p.normal, [1.0, 0.0, 0.0], atol=1e-12)
        assert p.dip == 90.0
        assert p.strike == 0.0

    def test_set_dip_strike_updates_normal(self):
        p = Planar(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)
        p.set_dip_strike(90.0, 0.0, 1)
        np.testing.assert_allclose(p.normal, [1.0, 0.0, 0.0], atol=1e-12)

    def test_set_normal_updates_strike_dip(self):
        p = Planar(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)
        p.set_normal(0.0, 0.0, -2.0)
        assert p.polarity == 0
        assert p.normal_length == pytest.approx(2.0)

    def test_dip_and_strike_vectors_are_in_plane(self):
        p = Planar.from_dip_strike(0.0, 0.0, 0.0, 35.0, 120.0, 1)
        assert np.dot(p.get_dip_vector(), p.normal) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(p.get_strike_vector(), p.normal) == pytest.approx(0.0, abs=1e-12)
        assert p.get_dip_vector()[2] < 0.0

    def test_normal_bounds_zero_uncertainty(self):
        """Test zero uncertainty collapses the bounds onto the normal."""
        p = Planar.from_dip_strike(0.0, 0.0, 0.0, 30.0, 45.0, 1)
        p.set_normal_bounds(0.0, 0.0)
        np.testing.assert_allclose(p.normal_bounds[:, 0], p.normal, atol=1e-12)
        np.testing.assert_allclose(p.normal_bounds[:, 1], p.normal, atol=1e-12)

    def test_normal_bounds_contain_normal(self):
        p = Planar.from_dip_strike(0.0, 0.0, 0.0, 30.0, 45.0, 1)
        p.set_normal_bounds(10.0, 10.0)
        assert p.nx_lower_bound <= p.nx <= p.nx_upper_bound
        assert p.ny_lower_bound <= p.ny <= p.ny_upper_bound
        assert p.nz_lower_bound <= p.nz <= p.nz_upper_bound
        assert p.nz_lower_bound < p.nz_upper_bound

    def test_normal_bounds_scale_with_length(self):
        p = Planar(0.0, 0.0, 0.0, 0.0, 0.0, 3.0)
        p.set_normal_bounds(0.0, 0.0)
        assert p.nz_upper_bound == pytest.approx(3.0)


class TestTangent:
    """Tests for Tangent."""

    def test_tangent_vector(self):
        t = Tangent(0.0, 0.0, 0.0, 1.0, 0.0, 0.0)
        np.testing.assert_array_equal(t.tangent, [1.0, 0.0, 0.0])
        assert t.inner_product_constraint == 0.0

    @pytest.mark.parametrize(
        "angle,expected",
        [
            (0.0, (0.0, 0.0)),
            (30.0, (0.0, 1.0)),
            (90.0, (0.0, 2.0)),
            (-90.0, (-2.0, 0.0)),
        ],
    )
    def test_angle_bounds(self, angle, expected):
        t = Tangent(0.0, 0.0, 0.0, 1.0, 0.0, 0.0)
        t.set_angle_bounds(angle)
        assert t.angle_lower_bound == pytest.approx(expected[0], abs=1e-12)
        assert t.angle_upper_bound == pytest.approx(expected[1], abs=1e-12)

    def test_angle_bounds_formula(self):
        t = Tangent(0.0, 0.0, 0.0, 1.0, 0.0, 0.0)
        t.set_angle_bounds(10.0)
        assert t.angle_upper_bound == pytest.approx(2.0 * math.cos(math.radians(80.0)))
