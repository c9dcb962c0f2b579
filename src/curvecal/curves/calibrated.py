"""
Calibrated curves: curves whose points come from fitting tenor quotes.

- CalibratedCurve: a Curve with a calibrator and an ordered tenor collection
- DiscountCurve: discount factors; ProjectionCurve: pseudo discount factors
  of a floating index
- SurvivalCurve: survival probabilities with hazard rate and implied
  default date lookups
"""

from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional, Union

from ..conventions import DayCount, Frequency, rate_from_price, year_fraction
from ..errors import CalibrationError
from .curve import Curve, CurveSnapshot
from .instruments import PricingCurves, curve_value
from .interpolation import Interpolator
from .tenor import CurveTenor, CurveTenorCollection


class CalibratedCurve(Curve):
    """
    Curve re-populated by its calibrator from tenor quotes.

    The calibrator is shared by clones (see ``clone_curve_set`` for copies
    wired to cloned parents); tenors are copied so that bumping a
    clone's quotes leaves the original untouched.
    """

    def __init__(
        self,
        as_of: date,
        calibrator=None,
        tenors: Optional[Union[CurveTenorCollection, Iterable[CurveTenor]]] = None,
        interpolator: Optional[Interpolator] = None,
        day_count: DayCount = DayCount.ACT_365,
        frequency: Frequency = Frequency.CONTINUOUS,
        spread: float = 0.0,
        name: Optional[str] = None
    ):
        super().__init__(as_of, interpolator, day_count, frequency, spread, name)
        self.calibrator = calibrator
        if isinstance(tenors, CurveTenorCollection):
            self.tenors = tenors
            if self.tenors.curve_name is None:
                self.tenors.curve_name = name
        else:
            self.tenors = CurveTenorCollection(tenors or (), curve_name=name)

    def fit(self):
        """Calibrate all points; returns the calibrator's FitResult."""
        return self._require_calibrator().fit(self)

    def refit(self, from_index: int = 0):
        """Re-solve points from ``from_index`` on, keeping earlier points."""
        return self._require_calibrator().refit(self, from_index)

    def enumerate_parent_curves(self) -> List[Curve]:
        """Curves this curve's calibrator reads."""
        if self.calibrator is None:
            return []
        return list(self.calibrator.parent_curves())

    def pricing_curves(self) -> PricingCurves:
        return self._require_calibrator().pricing_curves(self)

    def tenor_after(self, d: date) -> Optional[CurveTenor]:
        return self.tenors.after(d)

    def clone(self) -> "CalibratedCurve":
        new_curve = super().clone()
        new_curve.tenors = self.tenors.clone()
        return new_curve

    def set(self, other: Curve) -> None:
        super().set(other)
        if isinstance(other, CalibratedCurve):
            self.calibrator = other.calibrator
            self.tenors = other.tenors.clone()

    def snapshot(self) -> CurveSnapshot:
        return replace(super().snapshot(), quotes=self.tenors.quotes())

    def restore(self, snapshot: CurveSnapshot) -> None:
        super().restore(snapshot)
        if snapshot.quotes:
            self.tenors.restore_quotes(snapshot.quotes)

    def _require_calibrator(self):
        if self.calibrator is None:
            raise CalibrationError(self.name, "curve has no calibrator")
        return self.calibrator


class DiscountCurve(CalibratedCurve):
    """Discount factors P(0, t)."""

    def discount_factor(self, d: date) -> float:
        return curve_value(self, d)


class ProjectionCurve(DiscountCurve):
    """Pseudo discount factors of a floating index, used for forwards."""


class SurvivalCurve(CalibratedCurve):
    """Survival probabilities Q(0, t) of a credit name."""

    def survival_probability(self, d: date) -> float:
        return curve_value(self, d)

    def hazard_rate(self, d: date) -> float:
        """Average continuously compounded hazard rate to ``d``."""
        t = year_fraction(self.as_of, d, self.day_count)
        if t <= 0:
            return 0.0
        return rate_from_price(self.survival_probability(d), t, Frequency.CONTINUOUS)

    def default_date(self, probability: float) -> date:
        """Date by which the name has defaulted with ``probability``."""
        if not 0.0 < probability < 1.0:
            raise ValueError("probability must be in (0, 1)")
        return self.solve(1.0 - probability)


__all__ = [
    "CalibratedCurve",
    "DiscountCurve",
    "ProjectionCurve",
    "SurvivalCurve",
]
