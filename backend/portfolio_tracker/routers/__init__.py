# backend/portfolio_tracker/routers/__init__.py
"""
API routers for the Portfolio Tracker.

Each router handles a specific domain:
- transactions: Ledger writes, transaction history, holdings, investment matrix
- valuation: Current valuation and history
- goals: Goal CRUD and progress
- income: Income records and the income matrix
- market_data: Symbol search and quotes
"""

from portfolio_tracker.routers.goals import router as goals_router
from portfolio_tracker.routers.income import router as income_router
from portfolio_tracker.routers.market_data import router as market_data_router
from portfolio_tracker.routers.transactions import router as transactions_router
from portfolio_tracker.routers.valuation import router as valuation_router

__all__ = [
    "transactions_router",
    "valuation_router",
    "goals_router",
    "income_router",
    "market_data_router",
]
