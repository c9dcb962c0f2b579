"""
Unit tests for dates module.
"""

from datetime import date
import pytest

from curvecal.conventions import BusinessDayConvention, DayCount
from curvecal.dates import DateUtils, ScheduleInfo, add_months, generate_accrual_schedule


class TestDateUtils:
    """Tests for DateUtils class."""

    def test_parse_tenor(self):
        """Test parsing tenors of every unit."""
        assert DateUtils.parse_tenor("3M") == (3, 'M')
        assert DateUtils.parse_tenor("10Y") == (10, 'Y')
        assert DateUtils.parse_tenor("2W") == (2, 'W')
        assert DateUtils.parse_tenor("30D") == (30, 'D')
        assert DateUtils.parse_tenor("5y") == (5, 'Y')

    def test_parse_tenor_invalid(self):
        """Test invalid tenor raises error."""
        with pytest.raises(ValueError):
            DateUtils.parse_tenor("invalid")
        with pytest.raises(ValueError):
            DateUtils.parse_tenor("3X")
        with pytest.raises(ValueError):
            DateUtils.parse_tenor("3M6M")

    def test_add_tenor_months_and_years(self):
        base = date(2024, 1, 15)
        assert DateUtils.add_tenor(base, "3M") == date(2024, 4, 15)
        assert DateUtils.add_tenor(base, "1Y") == date(2025, 1, 15)
        assert DateUtils.add_tenor(base, "5Y") == date(2029, 1, 15)

    def test_add_tenor_weeks(self):
        assert DateUtils.add_tenor(date(2024, 1, 15), "2W") == date(2024, 1, 29)

    def test_add_tenor_days_are_business_days(self):
        """Day tenors skip weekends."""
        friday = date(2024, 1, 12)
        assert DateUtils.add_tenor(friday, "2D") == date(2024, 1, 16)

    def test_add_tenor_end_of_month(self):
        """Test adding tenor at end of month."""
        assert DateUtils.add_tenor(date(2024, 1, 31), "1M") == date(2024, 2, 29)

    def test_split_forward_tenor(self):
        assert DateUtils.split_forward_tenor("3Mx6M") == ("3M", "6M")
        assert DateUtils.split_forward_tenor("1yx1y") == ("1Y", "1Y")
        assert DateUtils.split_forward_tenor("5Y") == (None, "5Y")

    def test_split_forward_tenor_invalid(self):
        with pytest.raises(ValueError):
            DateUtils.split_forward_tenor("3Mx6Mx9M")
        with pytest.raises(ValueError):
            DateUtils.split_forward_tenor("3Mx")


class TestScheduleGeneration:
    """Tests for schedule generation."""

    def test_annual_schedule(self):
        dates = DateUtils.generate_schedule(
            date(2024, 1, 15), date(2027, 1, 15), 1, BusinessDayConvention.UNADJUSTED
        )
        assert dates == [date(2025, 1, 15), date(2026, 1, 15), date(2027, 1, 15)]

    def test_invalid_frequency(self):
        with pytest.raises(ValueError):
            DateUtils.generate_schedule(date(2024, 1, 15), date(2025, 1, 15), 0)

    def test_accrual_schedule(self):
        schedule = generate_accrual_schedule(
            date(2024, 1, 15), date(2026, 1, 15), 2, DayCount.ACT_360, BusinessDayConvention.UNADJUSTED
        )
        assert isinstance(schedule, ScheduleInfo)
        assert len(schedule) == 4
        assert schedule.accrual_starts[0] == date(2024, 1, 15)
        assert schedule.payment_dates[-1] == date(2026, 1, 15)
        assert schedule.accrual_ends == schedule.payment_dates
        assert schedule.year_fractions[0] == pytest.approx(182 / 360)

    def test_front_stub(self):
        """Dates roll back from maturity, leaving a short first period."""
        schedule = generate_accrual_schedule(
            date(2024, 3, 1), date(2025, 1, 15), 2, DayCount.ACT_360, BusinessDayConvention.UNADJUSTED
        )
        assert schedule.payment_dates == [date(2024, 7, 15), date(2025, 1, 15)]
        assert schedule.accrual_starts[0] == date(2024, 3, 1)

    def test_add_months(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
