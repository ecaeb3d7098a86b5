# backend/portfolio_tracker/services/valuation/__init__.py
"""
Valuation Service Package.

Provides:
- Current valuation (get_valuation)
- Time series for charts (get_history, get_history_for_range)

Usage:
    from portfolio_tracker.services.valuation import ValuationService

    service = ValuationService(market_data)
    result = service.get_valuation(db, "user-1")

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Internal data classes
    ├── calculators.py           # Point-in-time calculators + valuate()
    ├── history_calculator.py    # Replay engine
    └── service.py               # ValuationService (orchestrator)

Data Flow:
    Holdings + Quotes + FX → ItemValuationCalculator → ValuedItem
    ValuedItems → PortfolioSummaryCalculator → PortfolioSummary
    ValuedItems → AllocationCalculator → category percentages
    Transactions + Price series + FX series → HistoryCalculator → PortfolioHistory
"""

from portfolio_tracker.services.valuation.calculators import (
    ItemValuationCalculator,
    PortfolioSummaryCalculator,
    AllocationCalculator,
    valuate,
)
from portfolio_tracker.services.valuation.history_calculator import (
    HistoryCalculator,
    resolve_time_range,
)
from portfolio_tracker.services.valuation.service import ValuationService
from portfolio_tracker.services.valuation.types import (
    ValuedItem,
    CategorySummary,
    PortfolioSummary,
    PortfolioValuation,
    TimeSeries,
    HistoryPoint,
    PortfolioHistory,
)

__all__ = [
    # Service
    "ValuationService",
    # Calculators
    "ItemValuationCalculator",
    "PortfolioSummaryCalculator",
    "AllocationCalculator",
    "HistoryCalculator",
    "valuate",
    "resolve_time_range",
    # Types
    "ValuedItem",
    "CategorySummary",
    "PortfolioSummary",
    "PortfolioValuation",
    "TimeSeries",
    "HistoryPoint",
    "PortfolioHistory",
]
