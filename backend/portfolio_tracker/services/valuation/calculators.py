# backend/portfolio_tracker/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator does one thing:
- ItemValuationCalculator: Values one holding at a quote
- PortfolioSummaryCalculator: Category subtotals and local-currency totals
- AllocationCalculator: Share of each category in the total value

`valuate()` composes them into a PortfolioValuation.

Design Principles:
- Stateless (no instance state, pure functions)
- Receives all inputs explicitly (holdings, quotes, FX rate)
- Uses Decimal for ALL financial calculations
- Rounding is left to the API layer

Usage:
    valuation = valuate(holdings, quotes={"AAPL": Decimal("190")}, fx_rate=Decimal("34"))
    valuation.summary.total_value   # local currency
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetCategory
from portfolio_tracker.services.ledger.types import HoldingSnapshot
from portfolio_tracker.services.valuation.types import (
    ValuedItem,
    CategorySummary,
    PortfolioSummary,
    PortfolioValuation,
)
from portfolio_tracker.utils.money import ZERO, normalize_quantity, percentage

logger = logging.getLogger(__name__)


def category_currency(category: AssetCategory) -> str:
    """Native currency of a category's prices and costs."""
    return settings.foreign_currency if category.is_foreign else settings.local_currency


def to_local(amount: Decimal, category: AssetCategory, fx_rate: Decimal) -> Decimal:
    """Convert a native amount of `category` to the local currency."""
    return amount * fx_rate if category.is_foreign else amount


# =============================================================================
# ITEM VALUATION
# =============================================================================

class ItemValuationCalculator:
    """
    Values one holding.

    Price selection:
        The quote when present and positive, otherwise the average cost,
        so a missing quote shows break-even instead of a false zero.
    """

    def calculate(
            self,
            holding: HoldingSnapshot,
            quote: Decimal | None,
            fx_rate: Decimal,
    ) -> ValuedItem:
        price_is_fallback = quote is None or quote <= 0
        price = holding.average_cost if price_is_fallback else quote

        quantity = normalize_quantity(holding.category, holding.quantity)
        current_value = quantity * price
        # Cash dividends are realized gains; reinvested ones are already in quantity
        profit = current_value - holding.total_cost + holding.cash_dividends

        return ValuedItem(
            symbol=holding.symbol,
            name=holding.display_name,
            category=holding.category,
            currency=category_currency(holding.category),
            quantity=quantity,
            average_cost=holding.average_cost,
            total_cost=holding.total_cost,
            current_price=price,
            price_is_fallback=price_is_fallback,
            current_value=current_value,
            profit=profit,
            profit_percentage=percentage(profit, holding.total_cost) if holding.total_cost > 0 else ZERO,
            total_dividends=holding.total_dividends,
            cash_dividends=holding.cash_dividends,
            reinvested_dividends=holding.reinvested_dividends,
            current_value_local=to_local(current_value, holding.category, fx_rate),
        )


# =============================================================================
# SUMMARY
# =============================================================================

class PortfolioSummaryCalculator:
    """
    Aggregates valued items per category and in the local currency.

    The current FX rate converts foreign cost as well as foreign value,
    keeping local profit = local value - local cost (+ dividends).
    """

    def calculate(self, items: list[ValuedItem], fx_rate: Decimal) -> PortfolioSummary:
        categories: dict[AssetCategory, CategorySummary] = {}

        for category in AssetCategory:
            members = [item for item in items if item.category == category]
            if not members:
                continue
            categories[category] = self._summarize_category(category, members, fx_rate)

        total_value = sum((c.total_value_local for c in categories.values()), ZERO)
        total_cost = sum((c.total_cost_local for c in categories.values()), ZERO)
        total_profit = sum((c.total_profit_local for c in categories.values()), ZERO)

        return PortfolioSummary(
            local_currency=settings.local_currency,
            fx_rate=fx_rate,
            total_value=total_value,
            total_cost=total_cost,
            total_profit=total_profit,
            profit_percentage=percentage(total_profit, total_cost),
            categories=categories,
        )

    def _summarize_category(
            self,
            category: AssetCategory,
            members: list[ValuedItem],
            fx_rate: Decimal,
    ) -> CategorySummary:
        total_value = sum((item.current_value for item in members), ZERO)
        total_cost = sum((item.total_cost for item in members), ZERO)
        total_profit = sum((item.profit for item in members), ZERO)

        value_local = to_local(total_value, category, fx_rate)
        cost_local = to_local(total_cost, category, fx_rate)
        dividends_local = to_local(sum((item.cash_dividends for item in members), ZERO), category, fx_rate)

        return CategorySummary(
            category=category,
            currency=category_currency(category),
            item_count=len(members),
            total_value=total_value,
            total_cost=total_cost,
            total_profit=total_profit,
            profit_percentage=percentage(total_profit, total_cost),
            total_value_local=value_local,
            total_cost_local=cost_local,
            total_profit_local=value_local - cost_local + dividends_local,
        )


# =============================================================================
# ALLOCATION
# =============================================================================

class AllocationCalculator:
    """
    Share of each category in the portfolio's local-currency value.

    Categories without holdings are omitted; an empty or zero-valued
    portfolio yields an empty mapping.
    """

    def calculate(self, items: list[ValuedItem]) -> dict[AssetCategory, Decimal]:
        total = sum((item.current_value_local for item in items), ZERO)
        if total <= 0:
            return {}

        allocation: dict[AssetCategory, Decimal] = {}
        for item in items:
            allocation[item.category] = allocation.get(item.category, ZERO) + item.current_value_local
        return {category: percentage(value, total) for category, value in allocation.items()}


# =============================================================================
# COMPOSITION
# =============================================================================

def valuate(
        holdings: list[HoldingSnapshot],
        quotes: Mapping[str, Decimal],
        fx_rate: Decimal,
) -> PortfolioValuation:
    """
    Value holdings at the given quotes.

    Args:
        holdings: Current holdings
        quotes: symbol -> current price (native currency); may be partial
        fx_rate: Local currency units per foreign unit

    Returns:
        PortfolioValuation (items, summary, allocation, warnings)
    """
    item_calc = ItemValuationCalculator()
    items = [item_calc.calculate(h, quotes.get(h.symbol), fx_rate) for h in holdings]

    warnings = [
        f"No current price for {item.symbol}; valued at average cost"
        for item in items
        if item.price_is_fallback
    ]
    if warnings:
        logger.debug(f"{len(warnings)} holdings valued at average cost")

    return PortfolioValuation(
        items=items,
        summary=PortfolioSummaryCalculator().calculate(items, fx_rate),
        allocation=AllocationCalculator().calculate(items),
        warnings=warnings,
    )
