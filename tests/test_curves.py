"""
Unit tests for curves module.
"""

from datetime import date, datetime, timedelta
import math
import numpy as np
import pytest

from curvecal.conventions import DayCount, Frequency
from curvecal.curves import (
    Curve,
    LinearInterpolator,
    Overlay,
    WeightedInterpolator,
    create_flat_curve,
)
from curvecal.errors import CurveError, InvalidCurvePointError


class TestCurve:
    """Tests for Curve class."""

    @pytest.fixture
    def as_of(self):
        return date(2016, 6, 20)

    @pytest.fixture
    def zero_coupon_curve(self, as_of):
        """Discount curve from two zero-coupon points."""
        curve = Curve(as_of, name="ZC")
        curve.add(date(2018, 6, 20), 1 / (1 + 2 * 0.01))
        curve.add(date(2020, 6, 22), 1 / (1 + 4 * 0.02))
        return curve

    def test_knots_reproduced_exactly(self, zero_coupon_curve):
        """Interpolating at point dates returns the stored values."""
        assert abs(zero_coupon_curve.interpolate(date(2018, 6, 20)) - 1 / 1.02) < 1e-15
        assert abs(zero_coupon_curve.interpolate(date(2020, 6, 22)) - 1 / 1.08) < 1e-15
        for i, (d, value) in enumerate(zero_coupon_curve):
            assert zero_coupon_curve.interpolate(d) == value
            assert zero_coupon_curve.get_val(i) == value

    def test_count_and_clear(self, zero_coupon_curve):
        assert zero_coupon_curve.count == 2
        assert len(zero_coupon_curve) == 2
        zero_coupon_curve.clear()
        assert zero_coupon_curve.count == 0
        with pytest.raises(CurveError):
            zero_coupon_curve.interpolate(date(2018, 1, 1))

    def test_add_rejects_bad_points(self, zero_coupon_curve, as_of):
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add(as_of, 1.0)
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add(date(2019, 1, 1), 0.95)
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add(date(2020, 6, 22), 0.9)
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add(date(2025, 1, 1), float("nan"))
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add("2025-01-01", 0.8)
        assert zero_coupon_curve.count == 2

    def test_datetime_points_rejected(self, zero_coupon_curve):
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.add(datetime(2025, 1, 1, 12, 0), 0.8)
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.set_dt(1, datetime(2020, 6, 22))
        assert zero_coupon_curve.count == 2
        assert zero_coupon_curve.get_dt(1) == date(2020, 6, 22)

    def test_invalid_point_error_is_value_error(self, zero_coupon_curve, as_of):
        with pytest.raises(ValueError):
            zero_coupon_curve.add(as_of - timedelta(days=1), 1.0)

    def test_as_of_must_be_date(self):
        with pytest.raises(CurveError):
            Curve(None)
        with pytest.raises(CurveError):
            Curve(datetime(2016, 6, 20))

    def test_day_count_frozen_once_points_exist(self, zero_coupon_curve):
        with pytest.raises(CurveError):
            zero_coupon_curve.day_count = DayCount.ACT_360
        with pytest.raises(CurveError):
            zero_coupon_curve.frequency = Frequency.ANNUAL
        zero_coupon_curve.clear()
        zero_coupon_curve.day_count = DayCount.ACT_360
        zero_coupon_curve.frequency = Frequency.ANNUAL
        assert zero_coupon_curve.day_count == DayCount.ACT_360

    def test_set_dt_keeps_order(self, zero_coupon_curve):
        zero_coupon_curve.set_dt(0, date(2018, 7, 20))
        assert zero_coupon_curve.get_dt(0) == date(2018, 7, 20)
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.set_dt(0, date(2021, 1, 1))
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.get_val(5)

    def test_spread_changes_values_not_points(self, as_of):
        """Spread adds to the rate implied by day count and frequency."""
        curve = Curve(as_of, day_count=DayCount.ACT_365, frequency=Frequency.CONTINUOUS)
        d = as_of + timedelta(days=365)
        curve.add(d, math.exp(-0.05))
        curve.spread = 0.01

        assert curve.get_val(0) == pytest.approx(math.exp(-0.06), abs=1e-15)
        assert curve.interpolate(d) == pytest.approx(math.exp(-0.06), abs=1e-15)
        assert curve.values()[0] == math.exp(-0.05)
        assert curve.zero_rate(d) == pytest.approx(0.06, abs=1e-12)

    def test_spread_under_annual_compounding(self, as_of):
        curve = Curve(as_of, day_count=DayCount.ACT_365, frequency=Frequency.ANNUAL)
        d = as_of + timedelta(days=730)
        curve.add(d, 1.03 ** -2)
        curve.spread = 0.01
        assert curve.interpolate(d) == pytest.approx(1.04 ** -2, abs=1e-14)

    def test_set_decouples(self, zero_coupon_curve, as_of):
        """Set copies state; later mutation of either side is independent."""
        copy = Curve(as_of)
        copy.set(zero_coupon_curve)
        zero_coupon_curve.set_val(0, 0.5)
        zero_coupon_curve.add(date(2030, 1, 1), 0.4)

        assert copy.get_val(0) == 1 / 1.02
        assert copy.count == 2
        assert copy.interpolator is not zero_coupon_curve.interpolator

    def test_clone(self, zero_coupon_curve):
        clone = zero_coupon_curve.clone()
        assert clone is not zero_coupon_curve
        assert clone.interpolator is not zero_coupon_curve.interpolator
        assert type(clone.interpolator) is type(zero_coupon_curve.interpolator)
        mid = date(2019, 6, 20)
        assert clone.interpolate(mid) == zero_coupon_curve.interpolate(mid)
        clone.set_val(1, 0.8)
        assert zero_coupon_curve.get_val(1) == 1 / 1.08

    def test_snapshot_restore(self, zero_coupon_curve):
        before = zero_coupon_curve.snapshot()
        zero_coupon_curve.set_val(0, 0.9)
        zero_coupon_curve.spread = 0.02
        zero_coupon_curve.add_overlay(Overlay("x", lambda t: 0.001))
        zero_coupon_curve.add(date(2030, 1, 1), 0.7)

        zero_coupon_curve.restore(before)
        assert zero_coupon_curve.snapshot() == before
        assert zero_coupon_curve.interpolate(date(2018, 6, 20)) == 1 / 1.02

    def test_set_points_rolls_back_on_error(self, zero_coupon_curve):
        before = zero_coupon_curve.snapshot()
        with pytest.raises(InvalidCurvePointError):
            zero_coupon_curve.set_points([date(2019, 1, 1), date(2018, 1, 1)], [0.99, 0.98])
        assert zero_coupon_curve.snapshot() == before

    def test_index_after(self, zero_coupon_curve):
        assert zero_coupon_curve.index_after(date(2017, 1, 1)) == 0
        assert zero_coupon_curve.index_after(date(2018, 6, 20)) == 1
        assert zero_coupon_curve.index_after(date(2030, 1, 1)) == 2


class TestCurveEvaluation:
    """Rates, extrapolation and inverse lookup."""

    @pytest.fixture
    def flat_curve(self):
        return create_flat_curve(date(2024, 1, 15), 0.05, name="FLAT")

    def test_flat_zero_rate(self, flat_curve):
        for years in (0.5, 2, 7, 25):
            d = flat_curve.as_of + timedelta(days=int(365 * years))
            assert flat_curve.zero_rate(d) == pytest.approx(0.05, abs=1e-12)

    def test_forward_rate(self, flat_curve):
        start = flat_curve.as_of + timedelta(days=365)
        end = flat_curve.as_of + timedelta(days=730)
        assert flat_curve.forward_rate(start, end) == pytest.approx(math.exp(0.05) - 1.0, abs=1e-12)
        with pytest.raises(ValueError):
            flat_curve.forward_rate(end, start)

    def test_weighted_const_extrapolation_keeps_zero_rate(self, flat_curve):
        last = flat_curve.dates()[-1]
        far = last + timedelta(days=3650)
        assert flat_curve.zero_rate(far) == pytest.approx(flat_curve.zero_rate(last), abs=1e-12)

    def test_linear_const_extrapolation_keeps_last_value(self):
        as_of = date(2024, 1, 15)
        curve = Curve(as_of, LinearInterpolator())
        curve.add(date(2025, 1, 15), 0.9)
        curve.add(date(2026, 1, 15), 0.8)
        assert curve.interpolate(date(2035, 1, 15)) == 0.8

    def test_solve(self, flat_curve):
        target_date = flat_curve.as_of + timedelta(days=1000)
        target = math.exp(-0.05 * 1000 / 365)
        assert flat_curve.solve(target) == target_date
        knot = flat_curve.dates()[3]
        assert flat_curve.solve(flat_curve.interpolate(knot)) == knot

    def test_solve_unreachable(self, flat_curve):
        with pytest.raises(CurveError):
            flat_curve.solve(2.0)

    def test_flat_curve_points(self, flat_curve):
        assert flat_curve.count == 8
        assert flat_curve.dates()[-1] == date(2054, 1, 15)
        assert isinstance(flat_curve.interpolator, WeightedInterpolator)


class TestOverlays:
    """Overlay chain on a curve."""

    @pytest.fixture
    def curve(self):
        return create_flat_curve(date(2024, 1, 15), 0.04, max_tenor_years=10)

    def test_overlay_adds_in_working_space(self, curve):
        d = date(2027, 3, 1)
        base = curve.interpolate(d)
        curve.add_overlay(Overlay("shift", lambda t: -0.01))
        assert curve.interpolate(d) == pytest.approx(base * math.exp(-0.01), rel=1e-14)
        assert curve.evaluate_base((d - curve.as_of).days) == base

    def test_composition_is_order_independent(self, curve):
        d = date(2029, 7, 9)
        first = Overlay("a", lambda t: 1e-3 * t / 365)
        second = Overlay("b", lambda t: -2e-4)

        curve.add_overlay(first)
        curve.add_overlay(second)
        forward_order = curve.interpolate(d)

        curve.clear_overlays()
        curve.add_overlay(second)
        curve.add_overlay(first)
        assert curve.interpolate(d) == forward_order

    def test_remove_overlay(self, curve):
        curve.add_overlay(Overlay("bump", lambda t: 0.0))
        curve.add_overlay(Overlay("bump", lambda t: 0.0))
        curve.add_overlay(Overlay("other", lambda t: 0.0))
        assert curve.remove_overlay("bump") == 2
        assert [o.label for o in curve.overlays] == ["other"]
        assert curve.remove_overlay("missing") == 0

    def test_overlays_copied_on_clone(self, curve):
        curve.add_overlay(Overlay("x", lambda t: 0.0))
        clone = curve.clone()
        clone.clear_overlays()
        assert len(curve.overlays) == 1
        assert np.array_equal(clone.values(), curve.values())
