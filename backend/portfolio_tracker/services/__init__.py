# backend/portfolio_tracker/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from portfolio_tracker.services import LedgerService
    from portfolio_tracker.services import ValuationService
    from portfolio_tracker.services import GoalService, IncomeService
    from portfolio_tracker.services import (
        ValidationError,
        InsufficientQuantityError,
        MarketDataError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants and limits
    ├── protocols.py                 # Service interfaces (Protocol classes)
    ├── goals.py                     # Goals and goal progress
    ├── income.py                    # Income records and matrices
    ├── ledger/                      # Transaction recording
    │   ├── types.py                 # Ledger data types
    │   ├── reconciler.py            # Validation + holding state machine
    │   ├── store.py                 # SQLAlchemy unit of work and queries
    │   └── service.py               # Retry orchestration and reads
    ├── market_data/                 # Market data package
    │   ├── base.py                  # Abstract provider interface
    │   ├── yahoo.py                 # Yahoo Finance implementation
    │   ├── cache.py                 # TTL quote cache
    │   └── service.py               # Caching, stale fallback, FX
    └── valuation/                   # Valuation service
        ├── service.py               # Main valuation orchestrator
        ├── types.py                 # Valuation data types
        ├── calculators.py           # Point-in-time calculations
        └── history_calculator.py    # Time series calculations
"""

from portfolio_tracker.services.exceptions import (
    # Base exceptions
    ServiceError,
    # Validation
    ValidationError,
    InvalidIntervalError,
    DuplicateGoalError,
    # Ledger
    LedgerError,
    InsufficientQuantityError,
    ConcurrencyConflictError,
    # Not found
    NotFoundError,
    GoalNotFoundError,
    IncomeNotFoundError,
    # Market data
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    MarketDataUnavailableError,
)
from portfolio_tracker.services.goals import GoalService, GoalProgressAggregator
from portfolio_tracker.services.income import IncomeService, IncomeAggregator
from portfolio_tracker.services.ledger import LedgerService
from portfolio_tracker.services.market_data import MarketDataService
from portfolio_tracker.services.valuation import ValuationService

__all__ = [
    # Services
    "LedgerService",
    "MarketDataService",
    "ValuationService",
    "GoalService",
    "GoalProgressAggregator",
    "IncomeService",
    "IncomeAggregator",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidIntervalError",
    "DuplicateGoalError",
    "LedgerError",
    "InsufficientQuantityError",
    "ConcurrencyConflictError",
    "NotFoundError",
    "GoalNotFoundError",
    "IncomeNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "MarketDataUnavailableError",
]
