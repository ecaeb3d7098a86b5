# backend/tests/utils/test_date_utils.py
"""
Tests for date helpers.
"""

from datetime import date, datetime, timezone

import pytest

from portfolio_tracker.utils.date_utils import (
    subtract_months,
    subtract_years,
    to_date,
    zero_based_month,
)


class TestToDate:
    def test_date_unchanged(self):
        assert to_date(date(2025, 1, 2)) == date(2025, 1, 2)

    def test_datetime_uses_its_own_day(self):
        assert to_date(datetime(2025, 1, 2, 23, 59, tzinfo=timezone.utc)) == date(2025, 1, 2)


class TestSubtractMonths:
    @pytest.mark.parametrize("start,months,expected", [
        (date(2025, 3, 15), 1, date(2025, 2, 15)),
        (date(2025, 3, 31), 1, date(2025, 2, 28)),
        (date(2024, 3, 31), 1, date(2024, 2, 29)),
        (date(2025, 1, 10), 1, date(2024, 12, 10)),
        (date(2025, 1, 10), 13, date(2023, 12, 10)),
        (date(2025, 5, 31), 0, date(2025, 5, 31)),
    ])
    def test_subtract_months(self, start, months, expected):
        assert subtract_months(start, months) == expected

    def test_subtract_years_from_leap_day(self):
        assert subtract_years(date(2024, 2, 29), 1) == date(2023, 2, 28)
        assert subtract_years(date(2025, 6, 1), 5) == date(2020, 6, 1)


class TestZeroBasedMonth:
    def test_january_and_december(self):
        assert zero_based_month(date(2025, 1, 1)) == 0
        assert zero_based_month(datetime(2025, 12, 31, 23, 0)) == 11
