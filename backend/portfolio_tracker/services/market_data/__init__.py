# backend/portfolio_tracker/services/market_data/__init__.py
"""
Market data package.

Usage:
    from portfolio_tracker.services.market_data import (
        MarketDataService,
        YahooFinanceProvider,
    )

    service = MarketDataService(YahooFinanceProvider())

Architecture:
    market_data/
    ├── base.py     # Abstract provider interface + data classes
    ├── yahoo.py    # Yahoo Finance implementation (yfinance)
    ├── cache.py    # Thread-safe TTL cache with stale reads
    └── service.py  # Cached, best-effort facade used by valuation
"""

from portfolio_tracker.services.market_data.base import (
    GRANULARITIES,
    MarketDataProvider,
    BatchQuoteResult,
    HistoricalPricesResult,
    PricePoint,
    SymbolMatch,
)
from portfolio_tracker.services.market_data.cache import TTLCache
from portfolio_tracker.services.market_data.service import MarketDataService
from portfolio_tracker.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    "GRANULARITIES",
    "MarketDataProvider",
    "BatchQuoteResult",
    "HistoricalPricesResult",
    "PricePoint",
    "SymbolMatch",
    "TTLCache",
    "MarketDataService",
    "YahooFinanceProvider",
]
