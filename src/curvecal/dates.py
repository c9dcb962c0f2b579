"""
Date utilities for curve construction.

Provides:
- Tenor parsing and date arithmetic ("3M", "2Y", forward "3Mx6M")
- Accrual schedule generation for swap legs, bonds and CDS premium legs
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import calendar
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Tenor and schedule arithmetic."""

    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.strip())
        if match is None:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")
        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def split_forward_tenor(tenor: str) -> Tuple[Optional[str], str]:
        """
        Split ``"3Mx6M"`` into ``("3M", "6M")``; a spot tenor gives ``(None, tenor)``.

        Both parts are validated.
        """
        parts = tenor.strip().upper().split("X")
        if len(parts) == 1:
            DateUtils.parse_tenor(parts[0])
            return None, parts[0]
        if len(parts) != 2:
            raise ValueError(f"Invalid forward tenor: {tenor}")
        for part in parts:
            DateUtils.parse_tenor(part)
        return parts[0], parts[1]

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Add a tenor to a date.

        Day tenors count business days; week, month and year tenors are
        calendar based, clipping the day of month at month end.
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            result = start
            for _ in range(amount):
                result += timedelta(days=1)
                while not is_business_day(result, holidays):
                    result += timedelta(days=1)
            return result
        if unit == 'W':
            return start + timedelta(weeks=amount)
        return add_months(start, amount if unit == 'M' else 12 * amount)

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ) -> List[date]:
        """
        Generate a payment schedule between start and end dates.

        Dates are rolled backward from ``end`` so any stub sits at the front.

        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            frequency: Payments per year (1=annual, 2=semi, 4=quarterly, 12=monthly)
            convention: Business day adjustment
            holidays: Holiday calendar

        Returns:
            List of payment dates (adjusted for business days)
        """
        if frequency <= 0:
            raise ValueError("Frequency must be positive")

        step = 12 // frequency
        unadjusted = []
        n = 0
        while True:
            d = add_months(end, -step * n)
            if n > 0 and d <= start:
                break
            unadjusted.append(d)
            n += 1
        unadjusted.reverse()

        return [adjust_business_day(d, convention, holidays) for d in unadjusted]


@dataclass
class ScheduleInfo:
    """Payment dates with their accrual periods."""
    payment_dates: List[date]
    accrual_starts: List[date]
    year_fractions: List[float]
    day_count: DayCount

    @property
    def accrual_ends(self) -> List[date]:
        return self.payment_dates

    def __len__(self) -> int:
        return len(self.payment_dates)

    def periods(self):
        """Iterate (accrual_start, accrual_end, year_fraction) triples."""
        return zip(self.accrual_starts, self.payment_dates, self.year_fractions)


def generate_accrual_schedule(
    start: date,
    maturity: date,
    frequency: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    holidays: Optional[set] = None
) -> ScheduleInfo:
    """
    Coupon schedule from ``start`` to ``maturity``.

    Payment dates on or before ``start`` are dropped; if none remain the
    schedule is a single period ending at ``maturity``.
    """
    payments = [
        d for d in DateUtils.generate_schedule(start, maturity, frequency, convention, holidays)
        if d > start
    ] or [maturity]
    starts = [start] + payments[:-1]

    return ScheduleInfo(
        payment_dates=payments,
        accrual_starts=starts,
        year_fractions=[year_fraction(s, e, day_count) for s, e in zip(starts, payments)],
        day_count=day_count
    )


def add_months(start: date, months: int) -> date:
    """Add (or subtract) calendar months, clipping to month end."""
    year, month = divmod(start.year * 12 + start.month - 1 + months, 12)
    month += 1
    return date(year, month, min(start.day, calendar.monthrange(year, month)[1]))


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_accrual_schedule",
    "add_months",
]
