"""
Historical rate fixings for floating legs.
"""

from datetime import date
from typing import Dict, Iterator, Mapping, Optional, Tuple

from ..conventions import DayCount, year_fraction
from ..errors import MissingFixingError


class RateResets:
    """
    Fixings of one floating index keyed by fixing date.

    Periods that fix on or after a projection curve's as-of date project
    their rate from the curve; earlier periods must find a stored fixing.
    """

    def __init__(self, index_name: Optional[str] = None, fixings: Optional[Mapping[date, float]] = None):
        self.index_name = index_name
        self._fixings: Dict[date, float] = dict(fixings or {})

    def add(self, fixing_date: date, rate: float) -> None:
        self._fixings[fixing_date] = float(rate)

    def __contains__(self, fixing_date: date) -> bool:
        return fixing_date in self._fixings

    def __len__(self) -> int:
        return len(self._fixings)

    def __iter__(self) -> Iterator[Tuple[date, float]]:
        return iter(sorted(self._fixings.items()))

    def fixing(
        self,
        fixing_date: date,
        projection=None,
        end: Optional[date] = None,
        day_count: DayCount = DayCount.ACT_360
    ) -> float:
        """
        Rate for a period fixing on ``fixing_date``.

        Args:
            fixing_date: Fixing (period start) date
            projection: Curve to project from when the date is not in the past
            end: Period end, required for projection
            day_count: Accrual convention of the projected period

        Raises:
            MissingFixingError: If the fixing is neither stored nor projectable
        """
        if fixing_date in self._fixings:
            return self._fixings[fixing_date]
        if projection is not None and end is not None and fixing_date >= projection.as_of:
            tau = year_fraction(fixing_date, end, day_count)
            p_start = 1.0 if fixing_date == projection.as_of else projection.interpolate(fixing_date)
            return (p_start / projection.interpolate(end) - 1.0) / tau
        raise MissingFixingError(self.index_name, fixing_date)

    def __repr__(self) -> str:
        return f"RateResets(index={self.index_name!r}, fixings={len(self._fixings)})"


__all__ = ["RateResets"]
