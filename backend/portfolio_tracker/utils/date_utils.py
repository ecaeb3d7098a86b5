# backend/portfolio_tracker/utils/date_utils.py
"""
Date utility functions for the Portfolio Tracker.

Usage:
    from portfolio_tracker.utils.date_utils import subtract_months, to_date

    start = subtract_months(date(2025, 3, 31), 1)  # 2025-02-28
"""

import calendar
from datetime import date, datetime


def to_date(value: date | datetime) -> date:
    """
    Calendar day of a date or datetime.

    A datetime counts for the day it falls on in its own timezone, so a
    transaction at 23:59 on D belongs to D.
    """
    if isinstance(value, datetime):
        return value.date()
    return value


def subtract_months(d: date, months: int) -> date:
    """
    Move a date back by whole months, clamping the day to the month length.

    Example:
        >>> subtract_months(date(2024, 3, 31), 1)
        date(2024, 2, 29)
    """
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def subtract_years(d: date, years: int) -> date:
    """Move a date back by whole years (Feb 29 becomes Feb 28)."""
    return subtract_months(d, years * 12)


def zero_based_month(d: date | datetime) -> int:
    """Month number 0-11 as stored on income records."""
    return d.month - 1
