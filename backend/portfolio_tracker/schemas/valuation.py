# backend/portfolio_tracker/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Current valuation (items, category summaries, allocation)
- Valuation history (time series)

Money is rounded to cents and percentages to 2 places by the router
mappers; native amounts are in the item's `currency`, *_local amounts in
the local currency.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from portfolio_tracker.models import AssetCategory


# =============================================================================
# CURRENT VALUATION
# =============================================================================

class ValuedItemResponse(BaseModel):
    """One holding valued at its current price."""

    symbol: str
    name: str
    category: AssetCategory
    currency: str = Field(..., description="Currency of price, cost and value")
    quantity: Decimal
    average_cost: Decimal
    total_cost: Decimal
    current_price: Decimal = Field(..., description="Quote, or average cost when no quote is available")
    price_is_fallback: bool = Field(..., description="True when average cost stood in for the quote")
    current_value: Decimal
    profit: Decimal = Field(..., description="current_value - total_cost + cash_dividends")
    profit_percentage: Decimal
    total_dividends: Decimal
    cash_dividends: Decimal
    reinvested_dividends: Decimal
    current_value_local: Decimal


class CategorySummaryResponse(BaseModel):
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


class PortfolioSummaryResponse(BaseModel):
    """Totals in the local currency (foreign value and cost converted at fx_rate)."""

    local_currency: str
    total_value: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_percentage: Decimal
    categories: list[CategorySummaryResponse]


class PortfolioValuationResponse(BaseModel):
    """
    Complete valuation of a user's holdings.

    Attributes:
        allocation: Category -> percentage of total local value
        fx_rate: Local units per foreign unit used
        fx_rate_is_fallback: True if the configured fallback rate was used
        warnings: Data quality notes (missing quotes, fallback FX)
    """

    items: list[ValuedItemResponse]
    summary: PortfolioSummaryResponse
    allocation: dict[AssetCategory, Decimal]
    fx_rate: Decimal
    fx_rate_is_fallback: bool
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# HISTORY
# =============================================================================

class HistoryPointResponse(BaseModel):
    date: dt.date
    total: Decimal = Field(..., description="Portfolio value in the local currency")
    per_category: dict[AssetCategory, Decimal]


class PortfolioHistoryResponse(BaseModel):
    """
    Portfolio value over time.

    Attributes:
        missing_symbols: Held symbols without price data (valued at 0)
        fx_rate_is_fallback: True if the fallback FX rate was used on any date
    """

    start_date: dt.date
    end_date: dt.date
    interval: str
    currency: str
    data: list[HistoryPointResponse]
    missing_symbols: list[str] = Field(default_factory=list)
    fx_rate_is_fallback: bool = False
    warnings: list[str] = Field(default_factory=list)
