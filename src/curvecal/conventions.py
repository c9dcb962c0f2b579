"""
Day count, compounding frequency and business day conventions.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, OIS)
- ACT/365: Actual days / 365
- ACT/ACT: Actual days / actual days in year (ISDA split by calendar year)
- 30/360: 30 days per month / 360 (fixed swap legs, bonds)

Frequencies describe how a curve value (a price such as a discount factor
or survival probability) converts into a rate. ``Frequency.NONE`` means
simple interest; ``Frequency.CONTINUOUS`` means continuous compounding.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Optional
import calendar

import numpy as np


def _normalise(text: str, *drop: str) -> str:
    key = text.upper()
    for ch in (" ",) + drop:
        key = key.replace(ch, "")
    return key


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse ``"ACT/360"``, ``"act360"``, ``"ACT/365F"``, ``"30/360"`` etc."""
        key = _normalise(s, "/")
        if key == "ACT365F":
            key = "ACT365"
        for member in cls:
            if _normalise(member.value, "/") == key:
                return member
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


class Frequency(Enum):
    """Compounding frequency used to turn curve values into rates."""
    NONE = "None"
    ANNUAL = "Annual"
    SEMI_ANNUAL = "SemiAnnual"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    CONTINUOUS = "Continuous"

    @property
    def periods_per_year(self) -> int:
        """Compounding periods per year (0 for simple and continuous)."""
        return _PERIODS.get(self, 0)

    @classmethod
    def from_string(cls, s: str) -> "Frequency":
        key = _normalise(s, "-", "_")
        if key == "SIMPLE":
            return cls.NONE
        for member in cls:
            if member.value.upper() == key:
                return member
        raise ValueError(f"Unknown frequency: {s}")


_PERIODS = {
    Frequency.ANNUAL: 1,
    Frequency.SEMI_ANNUAL: 2,
    Frequency.QUARTERLY: 4,
    Frequency.MONTHLY: 12,
}


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def _act_act(start: date, end: date) -> float:
    # ISDA: each calendar year's days over that year's length
    total = 0.0
    cursor = start
    while cursor < end:
        year_end = min(date(cursor.year + 1, 1, 1), end)
        total += (year_end - cursor).days / _days_in_year(cursor.year)
        cursor = year_end
    return total


def _thirty_360(start: date, end: date) -> float:
    d1 = min(start.day, 30)
    d2 = 30 if (end.day == 31 and d1 == 30) else end.day
    days = 360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)
    return days / 360.0


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float, 0.0 when ``end`` is not after ``start``
    """
    if start >= end:
        return 0.0

    if day_count == DayCount.ACT_360:
        return (end - start).days / 360.0
    if day_count == DayCount.ACT_365:
        return (end - start).days / 365.0
    if day_count == DayCount.ACT_ACT:
        return _act_act(start, end)
    if day_count == DayCount.THIRTY_360:
        return _thirty_360(start, end)
    raise ValueError(f"Unknown day count: {day_count}")


def day_fraction(origin: date, days: float, day_count: DayCount) -> float:
    """
    Year fraction for a (possibly fractional) number of days after ``origin``.

    Used where curves are evaluated on a continuous day axis, e.g. while
    root-finding for a date.
    """
    if days <= 0:
        return 0.0
    if day_count == DayCount.ACT_360:
        return days / 360.0
    if day_count == DayCount.ACT_365:
        return days / 365.0
    whole = int(np.floor(days))
    base = year_fraction(origin, origin + timedelta(days=whole), day_count)
    return base + (days - whole) / 365.0


def rate_from_price(price: float, t: float, frequency: Frequency) -> float:
    """
    Rate implied by a price (discount factor style value) over ``t`` years.

    Args:
        price: Value in (0, inf), 1.0 meaning zero rate
        t: Year fraction from the curve origin
        frequency: Compounding convention

    Returns:
        Rate as decimal; 0.0 at the origin where the rate is undefined
    """
    if t <= 0:
        return 0.0
    if frequency == Frequency.CONTINUOUS:
        return float(-np.log(price) / t)
    if frequency == Frequency.NONE:
        return (1.0 / price - 1.0) / t
    m = frequency.periods_per_year
    return float(m * (price ** (-1.0 / (m * t)) - 1.0))


def price_from_rate(rate: float, t: float, frequency: Frequency) -> float:
    """Inverse of :func:`rate_from_price`."""
    if t <= 0:
        return 1.0
    if frequency == Frequency.CONTINUOUS:
        return float(np.exp(-rate * t))
    if frequency == Frequency.NONE:
        return 1.0 / (1.0 + rate * t)
    m = frequency.periods_per_year
    return float((1.0 + rate / m) ** (-m * t))


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """Weekdays that are not in ``holidays``."""
    return d.weekday() < 5 and not (holidays and d in holidays)


def _roll(d: date, step: int, holidays: Optional[set]) -> date:
    while not is_business_day(d, holidays):
        d += timedelta(days=step)
    return d


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Modified following rolls forward unless that crosses into the next
    month, in which case it rolls back.
    """
    if convention == BusinessDayConvention.UNADJUSTED:
        return d
    if convention == BusinessDayConvention.PRECEDING:
        return _roll(d, -1, holidays)

    adjusted = _roll(d, 1, holidays)
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        return _roll(d, -1, holidays)
    return adjusted


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "Frequency",
    "year_fraction",
    "day_fraction",
    "rate_from_price",
    "price_from_rate",
    "is_business_day",
    "adjust_business_day",
]
