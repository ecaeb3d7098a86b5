# backend/portfolio_tracker/dependencies.py
"""
FastAPI dependencies: one lazily built instance of each service, shared by
all requests (the quote cache lives in the market data service).

Usage in routers:
    from portfolio_tracker.dependencies import get_ledger_service, bind_user

    @router.post("/users/{user_id}/transactions")
    def create_transaction(
        user_id: str = Depends(bind_user),
        service: LedgerService = Depends(get_ledger_service),
    ):
        ...
"""

import logging
from functools import lru_cache

from fastapi import Path

from portfolio_tracker.services.goals import GoalService
from portfolio_tracker.services.income import IncomeService
from portfolio_tracker.services.ledger import LedgerService
from portfolio_tracker.services.market_data import MarketDataService, MarketDataProvider
from portfolio_tracker.services.market_data.yahoo import YahooFinanceProvider
from portfolio_tracker.services.valuation import ValuationService
from portfolio_tracker.utils.context import set_user_id

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_market_data_provider (no deps)
# 2. get_market_data_service (depends on provider)
# 3. get_ledger_service (no deps)
# 4. get_valuation_service (depends on market data + ledger)
# 5. get_goal_service, get_income_service


@lru_cache(maxsize=1)
def get_market_data_provider() -> MarketDataProvider:
    """
    Get the singleton market data provider instance.

    Shares the provider across all services so retries and rate limits
    apply globally.
    """
    logger.debug("Initializing singleton YahooFinanceProvider")
    return YahooFinanceProvider()


@lru_cache(maxsize=1)
def get_market_data_service() -> MarketDataService:
    """
    Get the singleton MarketDataService instance.

    Holds the quote and history caches, so it must be shared for the
    stale-on-error fallback to work across requests.
    """
    logger.debug("Initializing singleton MarketDataService")
    return MarketDataService(provider=get_market_data_provider())


@lru_cache(maxsize=1)
def get_ledger_service() -> LedgerService:
    logger.debug("Initializing singleton LedgerService")
    return LedgerService()


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    logger.debug("Initializing singleton ValuationService")
    return ValuationService(
        market_data=get_market_data_service(),
        ledger=get_ledger_service(),
    )


@lru_cache(maxsize=1)
def get_goal_service() -> GoalService:
    logger.debug("Initializing singleton GoalService")
    return GoalService()


@lru_cache(maxsize=1)
def get_income_service() -> IncomeService:
    logger.debug("Initializing singleton IncomeService")
    return IncomeService(ledger=get_ledger_service())


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

def bind_user(
        user_id: str = Path(..., min_length=1, max_length=128, description="Owner of the portfolio"),
) -> str:
    """
    Dependency that puts the path's user_id into the logging context.

    Authentication is out of scope: the user_id in the path selects the
    ledger. The middleware clears the context after the response.
    """
    set_user_id(user_id)
    return user_id
