"""
Curve instruments for calibration.

Defines the products whose quotes curves are fitted to:
- Deposit / Note: simple-interest money market instruments
- Future: short-rate futures quoted as price = 1 - rate
- FRA: forward rate agreements
- Swap: fixed vs floating swap, float projected off a projection curve
- BasisSwap: floating vs floating, spread on the first leg
- SwapLeg: a par fixed leg quoted by its coupon
- CDS: single-name credit default swap quoted by premium
- Bond: fixed coupon bond quoted by price
- CurvePoint: a curve value quoted directly

Each instrument knows how to:
1. Report its maturity and the curve date it pins down
2. Compute its model quote against a set of curves
3. Value itself per unit notional (used for hedge deltas)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..conventions import BusinessDayConvention, DayCount, year_fraction
from ..dates import ScheduleInfo, generate_accrual_schedule
from ..errors import CurveError, MissingFixingError
from .resets import RateResets


@dataclass
class PricingCurves:
    """
    Curves an instrument prices against.

    Attributes:
        discount: Discounting curve (discount factors)
        projection: Curve projecting the floating index; defaults to discount
        reference: Second projection curve (pay leg of a basis swap)
        survival: Survival probability curve for credit instruments
        resets: Historical fixings of the projected index
    """
    discount: object
    projection: Optional[object] = None
    reference: Optional[object] = None
    survival: Optional[object] = None
    resets: Optional[RateResets] = None

    def projection_curve(self):
        return self.projection if self.projection is not None else self.discount


def curve_value(curve, d: date) -> float:
    """Curve value with the as-of date and earlier pinned to 1.0."""
    if d <= curve.as_of:
        return 1.0
    return curve.interpolate(d)


@dataclass
class CurveInstrument(ABC):
    """
    Abstract base for calibration instruments.

    Attributes:
        start: Accrual start (effective) date
        maturity: Final payment date
        quote: Market quote in the instrument's natural unit (decimal rate,
            spread or price)
        day_count: Day count convention for accruals
    """
    start: date
    maturity: date
    quote: float
    day_count: DayCount = DayCount.ACT_360

    family = None

    def __post_init__(self):
        if self.maturity <= self.start:
            raise ValueError(f"{type(self).__name__} maturity {self.maturity} must be after start {self.start}")

    @property
    def curve_date(self) -> date:
        """Date of the curve point this instrument determines."""
        return self.maturity

    @abstractmethod
    def model_quote(self, curves: PricingCurves) -> float:
        """Quote implied by ``curves``."""

    @abstractmethod
    def pv(self, curves: PricingCurves) -> float:
        """Value per unit notional."""

    def calibration_error(self, curves: PricingCurves) -> float:
        """Model quote minus market quote."""
        return self.model_quote(curves) - self.quote

    def implied_value(self, curve, curves: PricingCurves) -> Optional[float]:
        """
        Closed-form value of ``curve`` at ``curve_date`` when it depends only
        on points already solved; None when a root search is needed.
        """
        return None


@dataclass
class Deposit(CurveInstrument):
    """
    Money market deposit.

    Simple interest: P(end) = P(start) / (1 + R * tau) on the projection curve.
    """
    family = "DEPOSIT"

    def accrual(self) -> float:
        return year_fraction(self.start, self.maturity, self.day_count)

    def model_quote(self, curves: PricingCurves) -> float:
        proj = curves.projection_curve()
        return (curve_value(proj, self.start) / curve_value(proj, self.maturity) - 1.0) / self.accrual()

    def pv(self, curves: PricingCurves) -> float:
        """Lender's value; on a self-discounted curve P(end) * (1 + R * tau) - P(start)."""
        return ((self.quote - self.model_quote(curves)) * self.accrual()
                * curve_value(curves.discount, self.maturity))

    def implied_value(self, curve, curves: PricingCurves) -> Optional[float]:
        if curves.projection_curve() is not curve or curve.spread != 0.0 or curve.overlays:
            return None
        if self.start > curve.as_of and (not len(curve) or self.start > curve.get_dt(len(curve) - 1)):
            return None
        return curve_value(curve, self.start) / (1.0 + self.quote * self.accrual())


@dataclass
class Note(Deposit):
    """Coupon-bearing money market note; priced like a deposit."""
    family = "NOTE"


@dataclass
class Future(CurveInstrument):
    """
    Short-rate future over [start, maturity].

    Quote is a price, 1 - rate. The implied rate is the projected forward
    plus an optional convexity adjustment.
    """
    convexity: float = 0.0

    family = "FUTURE"

    def implied_rate(self) -> float:
        return 1.0 - self.quote

    def forward(self, curves: PricingCurves) -> float:
        proj = curves.projection_curve()
        tau = year_fraction(self.start, self.maturity, self.day_count)
        return (curve_value(proj, self.start) / curve_value(proj, self.maturity) - 1.0) / tau

    def model_quote(self, curves: PricingCurves) -> float:
        return 1.0 - (self.forward(curves) + self.convexity)

    def pv(self, curves: PricingCurves) -> float:
        return self.model_quote(curves) - self.quote


@dataclass
class FRA(CurveInstrument):
    """
    Forward Rate Agreement quoted by its strike.

    Forward: F = (P(T1)/P(T2) - 1) / tau on the projection curve.
    """
    family = "FRA"

    def accrual(self) -> float:
        return year_fraction(self.start, self.maturity, self.day_count)

    def model_quote(self, curves: PricingCurves) -> float:
        proj = curves.projection_curve()
        return (curve_value(proj, self.start) / curve_value(proj, self.maturity) - 1.0) / self.accrual()

    def pv(self, curves: PricingCurves) -> float:
        fwd = self.model_quote(curves)
        return (fwd - self.quote) * self.accrual() * curve_value(curves.discount, self.maturity)


@dataclass
class _Leg:
    """Accrual schedule shared by the swap style instruments."""
    schedule: ScheduleInfo

    def annuity(self, discount) -> float:
        return sum(tau * curve_value(discount, pay)
                   for pay, tau in zip(self.schedule.payment_dates, self.schedule.year_fractions))

    def float_pv(self, projection, discount, resets: Optional[RateResets]) -> float:
        total = 0.0
        for start, end, tau in self.schedule.periods():
            if tau <= 0:
                continue
            if start < projection.as_of:
                rate = _historical_fixing(resets, start)
            else:
                rate = (curve_value(projection, start) / curve_value(projection, end) - 1.0) / tau
            total += tau * rate * curve_value(discount, end)
        return total


def _historical_fixing(resets: Optional[RateResets], fixing_date: date) -> float:
    if resets is None:
        raise MissingFixingError(None, fixing_date)
    return resets.fixing(fixing_date)


def _leg(start: date, maturity: date, frequency: int, day_count: DayCount) -> _Leg:
    return _Leg(generate_accrual_schedule(
        start, maturity, frequency, day_count, BusinessDayConvention.UNADJUSTED
    ))


@dataclass
class Swap(CurveInstrument):
    """
    Fixed vs floating interest rate swap quoted by its par fixed rate.

    The floating leg projects off the projection curve (which is the
    discount curve for a self-discounted OIS swap).
    """
    fixed_frequency: int = 1
    float_frequency: int = 4
    float_day_count: DayCount = DayCount.ACT_360
    _fixed_leg: _Leg = field(init=False, repr=False)
    _float_leg: _Leg = field(init=False, repr=False)

    family = "SWAP"
    floating_quote = False

    def __post_init__(self):
        super().__post_init__()
        self._fixed_leg = _leg(self.start, self.maturity, self.fixed_frequency, self.day_count)
        self._float_leg = _leg(self.start, self.maturity, self.float_frequency, self.float_day_count)

    def annuity(self, curves: PricingCurves) -> float:
        return self._fixed_leg.annuity(curves.discount)

    def float_leg_pv(self, curves: PricingCurves) -> float:
        return self._float_leg.float_pv(curves.projection_curve(), curves.discount, curves.resets)

    def model_quote(self, curves: PricingCurves) -> float:
        return self.float_leg_pv(curves) / self.annuity(curves)

    def pv(self, curves: PricingCurves) -> float:
        """Receiver swap value."""
        return self.quote * self.annuity(curves) - self.float_leg_pv(curves)


@dataclass
class BasisSwap(CurveInstrument):
    """
    Floating vs floating swap quoted by the spread on the first leg.

    Leg one projects off the projection curve, leg two off the reference
    curve; both discount on the discount curve.
    """
    frequency: int = 4
    reference_frequency: int = 4
    _leg1: _Leg = field(init=False, repr=False)
    _leg2: _Leg = field(init=False, repr=False)

    family = "SWAP"
    floating_quote = True

    def __post_init__(self):
        super().__post_init__()
        self._leg1 = _leg(self.start, self.maturity, self.frequency, self.day_count)
        self._leg2 = _leg(self.start, self.maturity, self.reference_frequency, self.day_count)

    def _reference(self, curves: PricingCurves):
        if curves.reference is None:
            raise CurveError("BasisSwap needs a reference projection curve")
        return curves.reference

    def model_quote(self, curves: PricingCurves) -> float:
        leg1 = self._leg1.float_pv(curves.projection_curve(), curves.discount, curves.resets)
        leg2 = self._leg2.float_pv(self._reference(curves), curves.discount, curves.resets)
        return (leg2 - leg1) / self._leg1.annuity(curves.discount)

    def pv(self, curves: PricingCurves) -> float:
        leg1 = self._leg1.float_pv(curves.projection_curve(), curves.discount, curves.resets)
        leg2 = self._leg2.float_pv(self._reference(curves), curves.discount, curves.resets)
        return leg1 + self.quote * self._leg1.annuity(curves.discount) - leg2


@dataclass
class SwapLeg(CurveInstrument):
    """
    Fixed leg exchanged against par, quoted by its coupon.

    Par coupon: (P(start) - P(end)) / annuity on the discount curve.
    """
    frequency: int = 1
    _leg: _Leg = field(init=False, repr=False)

    family = "SWAP_LEG"

    def __post_init__(self):
        super().__post_init__()
        self._leg = _leg(self.start, self.maturity, self.frequency, self.day_count)

    def model_quote(self, curves: PricingCurves) -> float:
        disc = curves.discount
        return ((curve_value(disc, self.start) - curve_value(disc, self.maturity))
                / self._leg.annuity(disc))

    def pv(self, curves: PricingCurves) -> float:
        disc = curves.discount
        return (self.quote * self._leg.annuity(disc) + curve_value(disc, self.maturity)
                - curve_value(disc, self.start))


@dataclass
class CDS(CurveInstrument):
    """
    Single-name credit default swap quoted by its running premium.

    Premium leg RPV01 uses the average survival over each accrual period;
    protection pays (1 - recovery) at the end of the period of default.
    """
    recovery: float = 0.4
    frequency: int = 4
    _leg: _Leg = field(init=False, repr=False)

    family = "CDS"

    def __post_init__(self):
        super().__post_init__()
        self._leg = _leg(self.start, self.maturity, self.frequency, self.day_count)

    def _survival(self, curves: PricingCurves):
        if curves.survival is None:
            raise CurveError("CDS needs a survival curve")
        return curves.survival

    def rpv01(self, curves: PricingCurves) -> float:
        surv = self._survival(curves)
        total = 0.0
        for start, end, tau in self._leg.schedule.periods():
            avg = 0.5 * (curve_value(surv, start) + curve_value(surv, end))
            total += tau * avg * curve_value(curves.discount, end)
        return total

    def protection_pv(self, curves: PricingCurves) -> float:
        surv = self._survival(curves)
        total = 0.0
        for start, end, _ in self._leg.schedule.periods():
            default_prob = curve_value(surv, start) - curve_value(surv, end)
            total += default_prob * curve_value(curves.discount, end)
        return (1.0 - self.recovery) * total

    def model_quote(self, curves: PricingCurves) -> float:
        return self.protection_pv(curves) / self.rpv01(curves)

    def pv(self, curves: PricingCurves) -> float:
        """Protection buyer value."""
        return self.protection_pv(curves) - self.quote * self.rpv01(curves)


@dataclass
class Bond(CurveInstrument):
    """
    Fixed coupon bond quoted by price per unit face.

    Model price is the discounted coupons plus redemption.
    """
    coupon: float = 0.0
    frequency: int = 2
    _leg: _Leg = field(init=False, repr=False)

    family = "BOND"

    def __post_init__(self):
        super().__post_init__()
        self._leg = _leg(self.start, self.maturity, self.frequency, self.day_count)

    def model_quote(self, curves: PricingCurves) -> float:
        disc = curves.discount
        coupons = sum(self.coupon * tau * curve_value(disc, pay)
                      for pay, tau in zip(self._leg.schedule.payment_dates, self._leg.schedule.year_fractions)
                      if pay > disc.as_of)
        return coupons + curve_value(disc, self.maturity)

    def pv(self, curves: PricingCurves) -> float:
        return self.model_quote(curves)


@dataclass
class CurvePoint(CurveInstrument):
    """A curve value quoted directly at ``maturity``."""
    family = "GENERIC"

    def model_quote(self, curves: PricingCurves) -> float:
        return curve_value(curves.projection_curve(), self.maturity)

    def pv(self, curves: PricingCurves) -> float:
        return self.model_quote(curves)

    def implied_value(self, curve, curves: PricingCurves) -> Optional[float]:
        if curves.projection_curve() is not curve or curve.spread != 0.0 or curve.overlays:
            return None
        return self.quote


__all__ = [
    "PricingCurves",
    "CurveInstrument",
    "Deposit",
    "Note",
    "Future",
    "FRA",
    "Swap",
    "BasisSwap",
    "SwapLeg",
    "CDS",
    "Bond",
    "CurvePoint",
    "curve_value",
]
