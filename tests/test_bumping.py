"""
Unit tests for the bump engine.
"""

from datetime import date
import pytest

from curvecal.calibrators import discount_curve_from_quotes, projection_curve_from_quotes
from curvecal.errors import CalibrationError
from curvecal.risk import BUMP_OVERLAY, BumpEngine, BumpFlags


AS_OF = date(2024, 1, 15)

OIS_QUOTES = [
    {"instrument_type": "DEPOSIT", "tenor": "3M", "quote": 0.0530},
    {"instrument_type": "OIS", "tenor": "1Y", "quote": 0.0500},
    {"instrument_type": "OIS", "tenor": "2Y", "quote": 0.0470},
    {"instrument_type": "OIS", "tenor": "5Y", "quote": 0.0430},
    {"instrument_type": "OIS", "tenor": "10Y", "quote": 0.0410},
]

LIBOR_QUOTES = [
    {"instrument_type": "DEPOSIT", "tenor": "3M", "quote": 0.0560},
    {"instrument_type": "SWAP", "tenor": "2Y", "quote": 0.0510},
    {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.0470},
]

SAMPLE_DATES = [date(2024, 3, 1), date(2025, 6, 30), date(2027, 2, 14), date(2031, 9, 9), date(2040, 1, 1)]


@pytest.fixture
def ois():
    return discount_curve_from_quotes(AS_OF, OIS_QUOTES, name="OIS")


@pytest.fixture
def libor(ois):
    return projection_curve_from_quotes(AS_OF, LIBOR_QUOTES, ois, name="LIBOR")


@pytest.fixture
def engine(ois, libor):
    return BumpEngine([libor])


def _members(curve, *names):
    return [(curve, curve.tenors[name]) for name in names]


def _evaluate(curves):
    return [[c.interpolate(d) for d in SAMPLE_DATES] for c in curves]


class TestBumpEngine:
    """Tests for bump, refit and restore."""

    def test_manages_parents(self, engine, ois, libor):
        assert engine.curves == [ois, libor]
        assert not engine.is_bumped

    def test_overlay_matches_in_place(self, engine, ois, libor):
        engine.bump(_members(ois, "2Y"), 1.0)
        with_overlay = _evaluate([ois, libor])
        assert [o.label for o in ois.overlays] == [BUMP_OVERLAY]
        engine.restore_base_curves()

        engine.bump(_members(ois, "2Y"), 1.0, BumpFlags.BUMP_IN_PLACE)
        in_place = _evaluate([ois, libor])
        assert ois.overlays == ()
        engine.restore_base_curves()

        for row_overlay, row_in_place in zip(with_overlay, in_place):
            assert row_overlay == pytest.approx(row_in_place, rel=1e-10)

    def test_overlay_keeps_base_points(self, engine, ois):
        base_values = ois.values().tolist()
        before = ois.interpolate(date(2026, 1, 15))
        engine.bump(_members(ois, "2Y"), 10.0)
        assert ois.values().tolist() == base_values
        assert ois.interpolate(date(2026, 1, 15)) < before

    def test_restore_is_exact(self, engine, ois, libor):
        before = engine.snapshot()
        values = _evaluate([ois, libor])

        engine.bump(_members(ois, "1Y", "5Y"), 5.0)
        assert engine.is_bumped
        assert engine.snapshot() != before
        engine.restore_base_curves()

        assert engine.snapshot() == before
        assert _evaluate([ois, libor]) == values
        assert not engine.is_bumped

    def test_restore_after_in_place(self, engine, ois, libor):
        before = engine.snapshot()
        engine.bump(_members(ois, "10Y"), 25.0, BumpFlags.BUMP_IN_PLACE | BumpFlags.BUMP_DOWN)
        engine.restore_base_curves()
        assert engine.snapshot() == before

    def test_points_before_bumped_tenor_unchanged(self, engine, ois):
        base_values = ois.values().tolist()
        index = ois.dates().index(ois.tenors["5Y"].curve_date)
        engine.bump(_members(ois, "5Y"), 1.0, BumpFlags.BUMP_IN_PLACE)
        assert ois.values().tolist()[:index] == base_values[:index]
        assert ois.values()[index] < base_values[index]

    def test_dependents_refitted(self, engine, ois, libor):
        result = engine.bump(_members(ois, "2Y"), 1.0)
        assert result.curves == ["OIS", "LIBOR"]
        assert result.bumps == pytest.approx([1.0])
        assert result.average_bump == pytest.approx(1.0)
        assert [o.label for o in libor.overlays] == [BUMP_OVERLAY]

    def test_child_bump_leaves_parent(self, engine, ois, libor):
        before = ois.snapshot()
        result = engine.bump(_members(libor, "5Y"), 1.0)
        assert result.curves == ["LIBOR"]
        assert ois.snapshot() == before

    def test_bumped_quotes_reprice(self, engine, ois):
        engine.bump(_members(ois, "5Y"), 3.0)
        ctx = ois.pricing_curves()
        for tenor in ois.tenors:
            assert abs(tenor.product.calibration_error(ctx)) < 1e-8

    def test_rebump_replaces_overlay(self, engine, ois):
        engine.bump(_members(ois, "2Y"), 1.0)
        engine.bump(_members(ois, "5Y"), 1.0)
        assert len(ois.overlays) == 1
        ctx = ois.pricing_curves()
        assert abs(ois.tenors["2Y"].product.calibration_error(ctx)) < 1e-8
        assert abs(ois.tenors["5Y"].product.calibration_error(ctx)) < 1e-8
        engine.restore_base_curves()
        assert ois.tenors["2Y"].quote_change == 0.0

    def test_failed_refit_raises_calibration_error(self, engine, ois):
        before = engine.snapshot()
        with pytest.raises(CalibrationError) as excinfo:
            engine.bump(_members(ois, "10Y"), 500000.0)
        assert excinfo.value.tenor_name == "10Y"
        engine.restore_base_curves()
        assert engine.snapshot() == before

    def test_bumped_context_manager(self, engine, ois):
        with engine.bumped(_members(ois, "1Y"), 2.0) as result:
            assert result.bumps == pytest.approx([2.0])
            assert ois.tenors["1Y"].quote_change == pytest.approx(0.0002)
        assert ois.tenors["1Y"].quote_change == 0.0
        assert not engine.is_bumped

    def test_context_manager_restores_on_error(self, engine, ois):
        before = engine.snapshot()
        with pytest.raises(KeyError):
            with engine.bumped(_members(ois, "1Y"), 2.0):
                raise KeyError("pricing failed")
        assert engine.snapshot() == before


class TestUniformAndState:
    """Tests for spread shifts and replaying bumped states."""

    def test_uniform_shift(self, engine, ois):
        d = date(2029, 1, 15)
        base_rate = ois.zero_rate(d)
        result = engine.bump_uniform([ois], 0.0001)
        assert ois.zero_rate(d) == pytest.approx(base_rate + 0.0001, abs=1e-12)
        assert result.bumps == [pytest.approx(1.0)]
        engine.restore_base_curves()
        assert ois.spread == 0.0

    def test_relative_uniform_shift(self, engine, ois, libor):
        d = date(2029, 1, 15)
        base_rate = ois.zero_rate(d)
        level = ois.zero_rate(ois.get_dt(len(ois) - 1))
        result = engine.bump_uniform([ois, libor], 0.1, relative=True)
        assert ois.zero_rate(d) == pytest.approx(base_rate + 0.1 * level, abs=1e-12)
        assert result.bumps[0] == pytest.approx(0.1 * level * 10000.0)
        assert result.bumps[1] > 0.0
        engine.restore_base_curves()
        assert ois.spread == 0.0 and libor.spread == 0.0

    def test_apply_state_replays_bump(self, engine, ois, libor):
        base = _evaluate([ois, libor])
        engine.bump(_members(ois, "2Y"), 1.0)
        bumped = _evaluate([ois, libor])
        state = engine.bumped_state()
        engine.restore_base_curves()

        engine.apply_state(state)
        assert _evaluate([ois, libor]) == bumped
        assert ois.tenors["2Y"].quote_change == pytest.approx(0.0001)
        engine.restore_base_curves()
        assert _evaluate([ois, libor]) == base

    def test_apply_state_length_mismatch(self, engine):
        with pytest.raises(ValueError):
            engine.apply_state(engine.snapshot()[:1])
