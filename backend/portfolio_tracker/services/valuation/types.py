# backend/portfolio_tracker/services/valuation/types.py
"""
Internal data types for valuation and history.

These dataclasses are used by the valuation calculators and the replay
engine. They are NOT Pydantic schemas - those are defined in
portfolio_tracker/schemas/valuation.py for API serialization.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for history points
- Warnings accumulate for data quality tracking

Type Hierarchy:
    ValuedItem          - One holding priced at a quote
    CategorySummary     - Subtotals for one asset category
    PortfolioSummary    - Local-currency totals across categories
    PortfolioValuation  - Items + summary + allocation
    TimeSeries          - Dated close prices with prior-date lookup
    HistoryPoint        - Single point in time series
    PortfolioHistory    - Time series result
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from portfolio_tracker.models import AssetCategory


# =============================================================================
# POINT-IN-TIME VALUATION
# =============================================================================

@dataclass(frozen=True)
class ValuedItem:
    """
    One holding valued at the current price, in its native currency.

    Attributes:
        current_price: Quote used, or average cost when no quote exists
        price_is_fallback: True when average cost stood in for the quote
        current_value: quantity * current_price (native currency)
        profit: current_value - total_cost + cash_dividends
        profit_percentage: profit / total_cost * 100 (0 without cost)
        current_value_local: current_value in the local currency
    """

    symbol: str
    name: str
    category: AssetCategory
    currency: str
    quantity: Decimal
    average_cost: Decimal
    total_cost: Decimal
    current_price: Decimal
    price_is_fallback: bool
    current_value: Decimal
    profit: Decimal
    profit_percentage: Decimal
    total_dividends: Decimal
    cash_dividends: Decimal
    reinvested_dividends: Decimal
    current_value_local: Decimal


@dataclass(frozen=True)
class CategorySummary:
    """
    Subtotals for one asset category.

    Native amounts are in `currency`; *_local amounts are FX-converted
    for the foreign category and equal to the native ones otherwise.
    """

    category: AssetCategory
    currency: str
    item_count: int
    total_value: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_percentage: Decimal
    total_value_local: Decimal
    total_cost_local: Decimal
    total_profit_local: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Portfolio totals in the local currency.

    Foreign value AND cost are converted at `fx_rate`, so
    total_profit == total_value - total_cost + converted cash dividends.
    """

    local_currency: str
    fx_rate: Decimal
    total_value: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_percentage: Decimal
    categories: dict[AssetCategory, CategorySummary] = field(default_factory=dict)


@dataclass
class PortfolioValuation:
    """
    Complete valuation of the current holdings.

    Attributes:
        items: One ValuedItem per holding
        summary: Aggregated totals
        allocation: Category -> share of total local value in percent
        fx_rate_is_fallback: True if the configured fallback FX rate was used
        warnings: Data quality notes (missing quotes, fallback FX)
    """

    items: list[ValuedItem]
    summary: PortfolioSummary
    allocation: dict[AssetCategory, Decimal] = field(default_factory=dict)
    fx_rate_is_fallback: bool = False
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# TIME SERIES
# =============================================================================

class TimeSeries:
    """
    Dated values with "exact date, else most recent prior date" lookup.

    Dates are kept sorted so lookups are O(log n) via bisect. Duplicate
    dates keep the last value given.

    Example:
        series = TimeSeries([(date(2025, 1, 3), Decimal("10"))])
        series.value_at(date(2025, 1, 5))  # Decimal("10") (weekend fallback)
        series.value_at(date(2025, 1, 1))  # None (no prior data)
    """

    def __init__(self, points: Iterable[tuple[date, Decimal]] = ()) -> None:
        by_date: dict[date, Decimal] = {}
        for point_date, value in points:
            by_date[point_date] = value
        self._dates: list[date] = sorted(by_date)
        self._values: list[Decimal] = [by_date[d] for d in self._dates]

    @classmethod
    def from_price_points(cls, points: Iterable) -> TimeSeries:
        """Build from objects with .date and .close (e.g. PricePoint)."""
        return cls((p.date, p.close) for p in points)

    def value_at(self, target: date) -> Decimal | None:
        """Value on `target`, else on the latest earlier date, else None."""
        index = bisect.bisect_right(self._dates, target)
        if index == 0:
            return None
        return self._values[index - 1]

    def __len__(self) -> int:
        return len(self._dates)

    def __bool__(self) -> bool:
        return bool(self._dates)


@dataclass(frozen=True)
class HistoryPoint:
    """
    Portfolio value on one date, in the local currency.

    Attributes:
        date: Valuation date
        total: Sum over all categories
        per_category: Value per asset category (every category present)
    """

    date: date
    total: Decimal
    per_category: dict[AssetCategory, Decimal]


@dataclass
class PortfolioHistory:
    """
    Time series of portfolio value.

    Attributes:
        start_date: First date requested
        end_date: Last date requested
        interval: daily, weekly or monthly
        data: Points in ascending date order
        missing_symbols: Held symbols without any price data (valued at 0)
        fx_rate_is_fallback: True if no FX data existed and the fallback
            rate was used for foreign holdings
        warnings: Human-readable data quality notes
    """

    start_date: date
    end_date: date
    interval: str
    data: list[HistoryPoint] = field(default_factory=list)
    missing_symbols: list[str] = field(default_factory=list)
    fx_rate_is_fallback: bool = False
    warnings: list[str] = field(default_factory=list)
