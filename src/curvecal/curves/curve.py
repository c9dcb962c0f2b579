"""
Curve representation and operations.

The Curve class provides:
- Ordered (date, value) points, dates strictly increasing after the as-of date
- Interpolated evaluation through a pluggable interpolator
- A rate spread applied at evaluation time without touching stored points
- Inverse lookup (solve for the date at which the curve hits a value)
- Overlays: non-destructive corrections used by the bump engine
- Value-typed snapshots for exact restore

Time inside the curve is measured in days from the as-of date; rates use
the curve's day count and compounding frequency.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional, Tuple
import bisect
import copy
import math

import numpy as np
from scipy.optimize import brentq

from ..conventions import (
    DayCount,
    Frequency,
    day_fraction,
    price_from_rate,
    rate_from_price,
    year_fraction,
)
from ..dates import add_months
from ..errors import CurveError, InvalidCurvePointError
from .interpolation import Interpolator, WeightedInterpolator, create_interpolator
from .overlay import Overlay


@dataclass(frozen=True)
class CurveSnapshot:
    """Immutable copy of everything a bump can change on a curve."""
    dates: Tuple[date, ...]
    values: Tuple[float, ...]
    spread: float
    overlays: Tuple[Overlay, ...]
    quotes: Tuple[float, ...] = ()


class Curve:
    """
    Curve of values (discount factors, survival probabilities, prices...)
    against dates.

    Attributes:
        as_of: Origin of time
        name: Optional label used in logs and result tables
        spread: Additive adjustment to the rate implied by day_count/frequency
    """

    def __init__(
        self,
        as_of: date,
        interpolator: Optional[Interpolator] = None,
        day_count: DayCount = DayCount.ACT_365,
        frequency: Frequency = Frequency.CONTINUOUS,
        spread: float = 0.0,
        name: Optional[str] = None
    ):
        if not isinstance(as_of, date) or isinstance(as_of, datetime):
            raise CurveError(f"Curve as-of must be a date, got {as_of!r}")
        self._as_of = as_of
        self.name = name
        self._interpolator = interpolator if interpolator is not None else WeightedInterpolator()
        self._day_count = day_count
        self._frequency = frequency
        self.spread = spread

        self._dates: List[date] = []
        self._values: List[float] = []
        self._times: List[float] = []
        self._overlays: List[Overlay] = []
        self._is_initialized = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def as_of(self) -> date:
        return self._as_of

    @property
    def day_count(self) -> DayCount:
        return self._day_count

    @day_count.setter
    def day_count(self, value: DayCount) -> None:
        if self._dates and value != self._day_count:
            raise CurveError(f"Cannot change day count of {self._label()} once points are added")
        self._day_count = value

    @property
    def frequency(self) -> Frequency:
        return self._frequency

    @frequency.setter
    def frequency(self, value: Frequency) -> None:
        if self._dates and value != self._frequency:
            raise CurveError(f"Cannot change frequency of {self._label()} once points are added")
        self._frequency = value

    @property
    def interpolator(self) -> Interpolator:
        return self._interpolator

    @interpolator.setter
    def interpolator(self, value: Interpolator) -> None:
        self._interpolator = value
        self._is_initialized = False

    @property
    def count(self) -> int:
        return len(self._dates)

    def __len__(self) -> int:
        return len(self._dates)

    def __iter__(self) -> Iterator[Tuple[date, float]]:
        return iter(list(zip(self._dates, self._values)))

    # ------------------------------------------------------------------
    # Point access
    # ------------------------------------------------------------------

    def add(self, d: date, value: float) -> None:
        """
        Append a point.

        Raises:
            InvalidCurvePointError: If the date is not a date, is not after
                the as-of date or the last point, or the value is not finite
        """
        self._check_date(d)
        if d <= self._as_of:
            raise InvalidCurvePointError(self.name, f"Point date {d} must be after as-of {self._as_of}")
        if self._dates and d <= self._dates[-1]:
            raise InvalidCurvePointError(
                self.name, f"Point date {d} must be after last point {self._dates[-1]}"
            )
        value = self._check_value(value)

        self._dates.append(d)
        self._values.append(value)
        self._times.append(float((d - self._as_of).days))
        self._is_initialized = False

    def set_val(self, index: int, value: float) -> None:
        self._check_index(index)
        self._values[index] = self._check_value(value)
        self._is_initialized = False

    def set_dt(self, index: int, d: date) -> None:
        """Move point ``index`` to date ``d`` keeping dates strictly increasing."""
        self._check_index(index)
        self._check_date(d)
        lower = self._dates[index - 1] if index > 0 else self._as_of
        if d <= lower:
            raise InvalidCurvePointError(self.name, f"Point date {d} must be after {lower}")
        if index + 1 < len(self._dates) and d >= self._dates[index + 1]:
            raise InvalidCurvePointError(
                self.name, f"Point date {d} must be before {self._dates[index + 1]}"
            )
        self._dates[index] = d
        self._times[index] = float((d - self._as_of).days)
        self._is_initialized = False

    def get_dt(self, index: int) -> date:
        self._check_index(index)
        return self._dates[index]

    def get_val(self, index: int) -> float:
        """Value of point ``index`` with spread applied."""
        self._check_index(index)
        return self._apply_spread(self._times[index], self._values[index])

    def clear(self) -> None:
        """Remove all points; day count and frequency become mutable again."""
        self._dates = []
        self._values = []
        self._times = []
        self._is_initialized = False

    def dates(self) -> List[date]:
        return list(self._dates)

    def values(self) -> np.ndarray:
        """Stored point values (no spread, no overlays)."""
        return np.array(self._values, dtype=np.float64)

    def times(self) -> np.ndarray:
        """Point times in days from the as-of date."""
        return np.array(self._times, dtype=np.float64)

    def index_after(self, d: date) -> int:
        """Index of the first point strictly after ``d``."""
        return bisect.bisect_right(self._dates, d)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def interpolate(self, d: date) -> float:
        """
        Evaluate the curve at a date.

        Exact point dates return the stored value; otherwise the interpolator
        (or its extrapolation rule) decides. Overlays and spread apply on top.
        """
        return self.evaluate(float((d - self._as_of).days))

    def evaluate(self, t: float) -> float:
        """Evaluate at ``t`` days from the as-of date."""
        value = self.evaluate_base(t)
        if self._overlays:
            interp = self._interpolator
            y = interp.to_space(t, value) + sum(overlay(t) for overlay in self._overlays)
            value = float(interp.from_space(t, y))
        return self._apply_spread(t, value)

    def evaluate_base(self, t: float) -> float:
        """Evaluate the stored points only: no overlays, no spread."""
        if not self._dates and self._interpolator.needs_points:
            raise CurveError(f"{self._label()} has no points")
        idx = bisect.bisect_right(self._times, t)
        if idx > 0 and self._times[idx - 1] == t:
            return self._values[idx - 1]
        self._ensure_initialized()
        return float(self._interpolator.evaluate(self, t, idx))

    def zero_rate(self, d: date) -> float:
        """Rate implied by the value at ``d`` under the curve's conventions."""
        t = year_fraction(self._as_of, d, self._day_count)
        return rate_from_price(self.interpolate(d), t, self._frequency)

    def forward_rate(self, start: date, end: date) -> float:
        """
        Simple forward rate between two dates, accrued with the curve day count.

        Raises:
            ValueError: If ``end`` is not after ``start``
        """
        if end <= start:
            raise ValueError("end must be after start")
        tau = year_fraction(start, end, self._day_count)
        return (self.interpolate(start) / self.interpolate(end) - 1.0) / tau

    def solve(self, target: float, max_years: float = 100.0) -> date:
        """
        Find the date at which the curve evaluates to ``target``.

        Scans the point dates (and the extrapolated region out to
        ``max_years``) for the first bracket, then refines with Brent's
        method and rounds to the nearest day.

        Raises:
            CurveError: If the curve never reaches ``target``
        """
        if not self._dates:
            raise CurveError(f"{self._label()} has no points")

        grid = [0.0] + list(self._times) + [self._times[-1] + 365.0 * max_years]
        diffs = [self.evaluate(t) - target for t in grid]

        for t0, t1, f0, f1 in zip(grid[:-1], grid[1:], diffs[:-1], diffs[1:]):
            if f0 == 0.0:
                return self._as_of + timedelta(days=int(round(t0)))
            if f0 * f1 < 0.0:
                root = brentq(lambda t: self.evaluate(t) - target, t0, t1, xtol=1e-9)
                return self._as_of + timedelta(days=int(round(root)))
        if diffs[-1] == 0.0:
            return self._as_of + timedelta(days=int(round(grid[-1])))

        raise CurveError(f"{self._label()} never reaches value {target}")

    # ------------------------------------------------------------------
    # Copying and state
    # ------------------------------------------------------------------

    def clone(self) -> "Curve":
        """Deep copy including the interpolator object."""
        new_curve = copy.copy(self)
        new_curve._copy_state_from(self)
        return new_curve

    def set(self, other: "Curve") -> None:
        """Copy all state from ``other``; later mutation of either is independent."""
        self._as_of = other._as_of
        self.name = other.name
        self._copy_state_from(other)

    def _copy_state_from(self, other: "Curve") -> None:
        self._interpolator = copy.deepcopy(other._interpolator)
        self._day_count = other._day_count
        self._frequency = other._frequency
        self.spread = other.spread
        self._dates = list(other._dates)
        self._values = list(other._values)
        self._times = list(other._times)
        self._overlays = list(other._overlays)
        self._is_initialized = False

    def snapshot(self) -> CurveSnapshot:
        return CurveSnapshot(
            dates=tuple(self._dates),
            values=tuple(self._values),
            spread=self.spread,
            overlays=tuple(self._overlays),
        )

    def restore(self, snapshot: CurveSnapshot) -> None:
        """Swap a snapshot's points, spread and overlays back in."""
        self._dates = list(snapshot.dates)
        self._values = list(snapshot.values)
        self._times = [float((d - self._as_of).days) for d in snapshot.dates]
        self.spread = snapshot.spread
        self._overlays = list(snapshot.overlays)
        self._is_initialized = False

    def set_points(self, dates: List[date], values: List[float]) -> None:
        """Replace all points at once (validated like repeated ``add``)."""
        old = self.snapshot()
        self.clear()
        try:
            for d, v in zip(dates, values):
                self.add(d, v)
        except InvalidCurvePointError:
            self.restore(old)
            raise

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    @property
    def overlays(self) -> Tuple[Overlay, ...]:
        return tuple(self._overlays)

    def add_overlay(self, overlay: Overlay) -> None:
        self._overlays.append(overlay)

    def remove_overlay(self, label: str) -> int:
        """Detach every overlay with ``label``; returns how many were removed."""
        before = len(self._overlays)
        self._overlays = [o for o in self._overlays if o.label != label]
        return before - len(self._overlays)

    def clear_overlays(self) -> None:
        self._overlays = []

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if not self._is_initialized:
            self._interpolator.initialize(self)
            self._is_initialized = True

    def _apply_spread(self, t: float, value: float) -> float:
        if self.spread == 0.0 or t <= 0:
            return value
        yf = day_fraction(self._as_of, t, self._day_count)
        rate = rate_from_price(value, yf, self._frequency)
        return price_from_rate(rate + self.spread, yf, self._frequency)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._dates):
            raise InvalidCurvePointError(self.name, f"Point index {index} out of range [0, {len(self._dates)})")

    def _check_date(self, d: date) -> None:
        # datetime subclasses date but does not compare with it
        if not isinstance(d, date) or isinstance(d, datetime):
            raise InvalidCurvePointError(self.name, f"Invalid point date {d!r}")

    def _check_value(self, value: float) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidCurvePointError(self.name, f"Invalid point value {value!r}") from exc
        if not math.isfinite(value):
            raise InvalidCurvePointError(self.name, f"Point value must be finite, got {value}")
        return value

    def _label(self) -> str:
        return f"curve {self.name}" if self.name else "curve"

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(name={self.name!r}, as_of={self._as_of}, "
                f"points={len(self._dates)}, interpolator={self._interpolator!r})")


def create_flat_curve(
    as_of: date,
    rate: float,
    max_tenor_years: int = 30,
    day_count: DayCount = DayCount.ACT_365,
    frequency: Frequency = Frequency.CONTINUOUS,
    interpolation: str = "weighted",
    name: Optional[str] = None
) -> Curve:
    """
    Create a flat curve of discount-factor style values.

    Args:
        as_of: Valuation date
        rate: Flat rate under ``frequency`` compounding
        max_tenor_years: Last point in years
        day_count: Day count for rate conversion
        frequency: Compounding frequency of ``rate``
        interpolation: Interpolation method name
        name: Curve label

    Returns:
        Flat curve
    """
    curve = Curve(as_of, create_interpolator(interpolation), day_count, frequency, name=name)
    last = 12 * max_tenor_years
    for months in sorted({m for m in (3, 6, 12, 24, 60, 120, 240) if m < last} | {last}):
        d = add_months(as_of, months)
        t = year_fraction(as_of, d, day_count)
        curve.add(d, price_from_rate(rate, t, frequency))
    return curve


__all__ = [
    "Curve",
    "CurveSnapshot",
    "create_flat_curve",
]
