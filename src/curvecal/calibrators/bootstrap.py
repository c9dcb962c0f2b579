"""
Sequential bootstrap calibration.

Implements the bootstrap shared by discount, projection and survival
curves:
1. Select the calibration tenors (overlap treatment) in curve date order
2. Solve each curve point in turn, closed form where the instrument allows
   it, otherwise by Brent's method on the point's continuous zero rate
3. Re-sweep when later points move earlier fits (non-local interpolation)
4. Verify that every tenor reprices to its quote
"""

from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import copy
import logging
import math

import pandas as pd
from scipy.optimize import brentq

from ..config import CurveFitSettings
from ..conventions import year_fraction
from ..curves.calibrated import DiscountCurve, ProjectionCurve, SurvivalCurve
from ..curves.curve import Curve
from ..curves.instruments import PricingCurves
from ..curves.interpolation import Interpolator
from ..curves.resets import RateResets
from ..curves.tenor import CurveTenor, InstrumentType, is_credit_tenor, is_rate_tenor
from ..curves.tenor_factory import tenors_from_quotes
from ..errors import CalibrationError
from .base import Calibrator

logger = logging.getLogger(__name__)

# Largest |r * t| whose exp() stays a normal float.
_MAX_EXPONENT = 700.0


def apply_overlap_order(
    tenors: Iterable[CurveTenor],
    order: Sequence[InstrumentType],
    curve_name: Optional[str] = None
) -> List[CurveTenor]:
    """
    Resolve tenors of different families that cover the same dates.

    Families earlier in ``order`` keep all their tenors. A tenor of a later
    family is dropped when its curve date is on or before the latest curve
    date kept so far. Families missing from ``order`` are kept as they are.
    """
    tenors = list(tenors)
    kept = [t for t in tenors if t.family not in order]
    latest: Optional[date] = None

    for family in order:
        cutoff = latest
        for tenor in sorted((t for t in tenors if t.family == family), key=lambda t: t.curve_date):
            if cutoff is not None and tenor.curve_date <= cutoff:
                logger.debug("Overlap treatment drops %s %s on %s (covered to %s)",
                             family.value, tenor.name, curve_name, cutoff)
                continue
            kept.append(tenor)
            if latest is None or tenor.curve_date > latest:
                latest = tenor.curve_date

    return sorted(kept, key=lambda t: t.curve_date)


def _quoted_rate(tenor: CurveTenor) -> Optional[float]:
    if not is_rate_tenor(tenor) or tenor.family == InstrumentType.BOND:
        return None
    if tenor.family == InstrumentType.FUTURE:
        return 1.0 - tenor.current_quote
    return tenor.current_quote


class BootstrapCalibrator(Calibrator):
    """
    Point-by-point bootstrap.

    Each new point is parameterised by its continuous zero rate r, with
    value exp(-r * t), and solved so the tenor's model quote matches its
    market quote. Subclasses supply the pricing context and the degenerate
    shortcut.
    """

    def calibration_tenors(self, curve) -> List[CurveTenor]:
        """
        Raises:
            CalibrationError: If two kept tenors pin down the same curve date
        """
        tenors = list(curve.tenors)
        if self.settings.overlap_treatment_order:
            tenors = apply_overlap_order(tenors, self.settings.overlap_treatment_order, curve.name)
        else:
            tenors.sort(key=lambda t: t.curve_date)

        for prev, nxt in zip(tenors, tenors[1:]):
            if nxt.curve_date <= prev.curve_date:
                raise CalibrationError(
                    curve.name,
                    f"tenors {prev.name} and {nxt.name} share curve date {nxt.curve_date}; "
                    f"set an overlap treatment order",
                    nxt.name,
                )
        return tenors

    def _degenerate_value(self, tenors: Sequence[CurveTenor]) -> Optional[float]:
        """Value of every point when the quotes make the curve trivially flat, else None."""
        return None

    def _solve(self, scratch: Curve, tenors: Sequence[CurveTenor], from_index: int) -> int:
        curve_dates = [t.curve_date for t in tenors]

        flat = self._degenerate_value(tenors)
        if flat is not None:
            scratch.set_points(curve_dates, [flat] * len(curve_dates))
            logger.debug("%s: degenerate quotes, %d points set to %g", scratch.name, len(tenors), flat)
            return 0

        keep = min(max(from_index, 0), len(tenors))
        if scratch.dates()[:keep] != curve_dates[:keep]:
            keep = 0
        scratch.set_points(curve_dates[:keep], scratch.values()[:keep])

        ctx = self.pricing_curves(scratch)
        iterations = 0
        for i in range(keep, len(tenors)):
            iterations += self._solve_point(scratch, i, tenors[i], ctx, append=True)

        # Non-local interpolators let later points move earlier fits.
        for sweep in range(self.settings.max_sweeps):
            errors = self.repricing_errors(scratch, tenors)
            worst = max((abs(e) for e in errors.values()), default=0.0)
            if worst <= self.settings.repricing_tolerance:
                break
            logger.debug("%s: sweep %d, worst repricing error %.3e", scratch.name, sweep + 1, worst)
            for i in range(len(tenors)):
                iterations += self._solve_point(scratch, i, tenors[i], ctx, append=False)

        return iterations

    def _solve_point(self, scratch: Curve, index: int, tenor: CurveTenor,
                     ctx: PricingCurves, append: bool) -> int:
        product = tenor.product
        d = tenor.curve_date

        if append:
            value = product.implied_value(scratch, ctx)
            if value is not None:
                scratch.add(d, value)
                logger.debug("%s %s: closed form value %.15g", scratch.name, tenor.name, value)
                return 0
            scratch.add(d, 1.0)

        t = year_fraction(scratch.as_of, d, scratch.day_count)

        def objective(rate: float) -> float:
            # Out-of-range rates read as no value so the bracket keeps widening.
            if abs(rate * t) > _MAX_EXPONENT:
                return math.nan
            scratch.set_val(index, math.exp(-rate * t))
            try:
                return product.calibration_error(ctx)
            except OverflowError:
                return math.nan

        low, high = self._bracket(objective, scratch.name, tenor.name)
        try:
            root, info = brentq(
                objective, low, high,
                xtol=self.settings.tolerance,
                maxiter=self.settings.max_iterations,
                full_output=True,
            )
        except (RuntimeError, ValueError, OverflowError) as exc:
            raise CalibrationError(scratch.name, f"root finder failed: {exc}", tenor.name) from exc

        scratch.set_val(index, math.exp(-root * t))
        logger.debug("%s %s: rate %.10f after %d iterations", scratch.name, tenor.name, root, info.iterations)
        return info.iterations

    def _bracket(self, objective, curve_name: Optional[str], tenor_name: str) -> Tuple[float, float]:
        low, high = self.settings.rate_bracket
        for _ in range(self.settings.bracket_expansions + 1):
            f_low, f_high = objective(low), objective(high)
            if math.isfinite(f_low) and math.isfinite(f_high) and f_low * f_high <= 0.0:
                return low, high
            width = high - low
            low, high = low - width, high + width
        raise CalibrationError(curve_name, f"no root in rate bracket [{low:g}, {high:g}]", tenor_name)


class DiscountCalibrator(BootstrapCalibrator):
    """
    Self-discounting curve (e.g. OIS): the curve both projects and
    discounts its own instruments.
    """

    def __init__(
        self,
        as_of: date,
        settings: Optional[CurveFitSettings] = None,
        resets: Optional[RateResets] = None
    ):
        super().__init__(as_of, settings)
        self.resets = resets

    def pricing_curves(self, curve: Curve) -> PricingCurves:
        return PricingCurves(discount=curve, resets=self.resets)

    def _degenerate_value(self, tenors: Sequence[CurveTenor]) -> Optional[float]:
        rates = [_quoted_rate(t) for t in tenors]
        if rates and all(r == 0.0 for r in rates):
            return 1.0
        return None


class ProjectionCalibrator(DiscountCalibrator):
    """
    Forward projection curve of a floating index, discounted on a parent
    curve. Basis swaps also read a reference projection curve.
    """

    def __init__(
        self,
        as_of: date,
        discount_curve: Curve,
        reference_curve: Optional[Curve] = None,
        settings: Optional[CurveFitSettings] = None,
        resets: Optional[RateResets] = None
    ):
        super().__init__(as_of, settings, resets)
        self.discount_curve = discount_curve
        self.reference_curve = reference_curve

    def parent_curves(self) -> List[Curve]:
        parents = [self.discount_curve]
        if self.reference_curve is not None:
            parents.append(self.reference_curve)
        return parents

    def with_parents(self, parents: Mapping[int, Curve]) -> "ProjectionCalibrator":
        new = copy.copy(self)
        new.discount_curve = parents.get(id(self.discount_curve), self.discount_curve)
        if self.reference_curve is not None:
            new.reference_curve = parents.get(id(self.reference_curve), self.reference_curve)
        return new

    def pricing_curves(self, curve: Curve) -> PricingCurves:
        return PricingCurves(
            discount=self.discount_curve,
            projection=curve,
            reference=self.reference_curve,
            resets=self.resets,
        )


class SurvivalCalibrator(BootstrapCalibrator):
    """Survival curve of a credit name from CDS premiums."""

    def __init__(
        self,
        as_of: date,
        discount_curve: Curve,
        settings: Optional[CurveFitSettings] = None
    ):
        super().__init__(as_of, settings)
        self.discount_curve = discount_curve

    def parent_curves(self) -> List[Curve]:
        return [self.discount_curve]

    def with_parents(self, parents: Mapping[int, Curve]) -> "SurvivalCalibrator":
        new = copy.copy(self)
        new.discount_curve = parents.get(id(self.discount_curve), self.discount_curve)
        return new

    def pricing_curves(self, curve: Curve) -> PricingCurves:
        return PricingCurves(discount=self.discount_curve, survival=curve)

    def _degenerate_value(self, tenors: Sequence[CurveTenor]) -> Optional[float]:
        if tenors and all(is_credit_tenor(t) and t.current_quote == 0.0 for t in tenors):
            return 1.0
        return None


def discount_curve_from_quotes(
    as_of: date,
    quotes: Union[Iterable[Mapping], pd.DataFrame],
    name: str = "DISCOUNT",
    settings: Optional[CurveFitSettings] = None,
    interpolator: Optional[Interpolator] = None
) -> DiscountCurve:
    """
    Build and fit a self-discounting curve from quote rows.

    Example quote format:
        {"instrument_type": "DEPOSIT", "tenor": "1M", "quote": 0.053}
        {"instrument_type": "OIS", "tenor": "2Y", "quote": "4.85%"}
    """
    settings = settings if settings is not None else CurveFitSettings()
    curve = DiscountCurve(
        as_of,
        calibrator=DiscountCalibrator(as_of, settings),
        tenors=tenors_from_quotes(as_of, quotes, name),
        interpolator=interpolator if interpolator is not None else settings.create_interpolator(),
        name=name,
    )
    curve.fit()
    return curve


def projection_curve_from_quotes(
    as_of: date,
    quotes: Union[Iterable[Mapping], pd.DataFrame],
    discount_curve: Curve,
    name: str = "PROJECTION",
    settings: Optional[CurveFitSettings] = None,
    reference_curve: Optional[Curve] = None,
    resets: Optional[RateResets] = None
) -> ProjectionCurve:
    """Build and fit a projection curve on top of ``discount_curve``."""
    settings = settings if settings is not None else CurveFitSettings()
    curve = ProjectionCurve(
        as_of,
        calibrator=ProjectionCalibrator(as_of, discount_curve, reference_curve, settings, resets),
        tenors=tenors_from_quotes(as_of, quotes, name),
        interpolator=settings.create_interpolator(),
        name=name,
    )
    curve.fit()
    return curve


def survival_curve_from_quotes(
    as_of: date,
    quotes: Union[Iterable[Mapping], pd.DataFrame],
    discount_curve: Curve,
    name: str = "CREDIT",
    settings: Optional[CurveFitSettings] = None
) -> SurvivalCurve:
    """Build and fit a survival curve from CDS premium rows."""
    settings = settings if settings is not None else CurveFitSettings()
    curve = SurvivalCurve(
        as_of,
        calibrator=SurvivalCalibrator(as_of, discount_curve, settings),
        tenors=tenors_from_quotes(as_of, quotes, name),
        interpolator=settings.create_interpolator(),
        name=name,
    )
    curve.fit()
    return curve


__all__ = [
    "BootstrapCalibrator",
    "DiscountCalibrator",
    "ProjectionCalibrator",
    "SurvivalCalibrator",
    "apply_overlap_order",
    "discount_curve_from_quotes",
    "projection_curve_from_quotes",
    "survival_curve_from_quotes",
]
