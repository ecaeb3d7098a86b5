# backend/tests/conftest.py
"""
Shared fixtures: a fresh in-memory SQLite schema per test, a scriptable
market data provider, services built on both, and a TestClient whose
dependencies point at them.
"""

import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_tracker.database import get_db
from portfolio_tracker.dependencies import (
    get_income_service,
    get_ledger_service,
    get_market_data_service,
    get_valuation_service,
)
from portfolio_tracker.main import app
from portfolio_tracker.models import (
    AssetCategory,
    Base,
    Goal,
    GoalCategory,
    IncomeRecord,
    TransactionType,
)
from portfolio_tracker.services.exceptions import TickerNotFoundError
from portfolio_tracker.services.income import IncomeService
from portfolio_tracker.services.ledger import LedgerService, NewTransaction, ReconciliationResult
from portfolio_tracker.services.market_data import (
    HistoricalPricesResult,
    MarketDataProvider,
    MarketDataService,
    PricePoint,
    SymbolMatch,
)
from portfolio_tracker.services.valuation import ValuationService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """In-memory provider: quotes, histories and errors are set per symbol, calls are counted."""

    def __init__(self):
        self._quotes: dict[str, Decimal] = {}
        self._histories: dict[str, list[PricePoint]] = {}
        self._errors: dict[str, Exception] = {}
        self._search_results: list[SymbolMatch] = []
        self._call_count: dict[str, int] = {"quote": 0, "history": 0, "search": 0}

    @property
    def name(self) -> str:
        return "mock"

    def set_quote(self, symbol: str, price: Decimal | str) -> None:
        """Configure a successful quote for a symbol."""
        self._quotes[symbol.upper()] = Decimal(str(price))

    def set_history(self, symbol: str, points: list[tuple[date, Decimal | str]]) -> None:
        """Configure the close series returned for a symbol."""
        self._histories[symbol.upper()] = [
            PricePoint(date=d, close=Decimal(str(close))) for d, close in points
        ]

    def set_search_results(self, matches: list[SymbolMatch]) -> None:
        self._search_results = list(matches)

    def add_error(self, symbol: str, error: Exception) -> None:
        """Configure an error for every request about a symbol."""
        self._errors[symbol.upper()] = error

    def clear_error(self, symbol: str) -> None:
        self._errors.pop(symbol.upper(), None)

    def reset(self) -> None:
        """Reset all configured responses and call counts."""
        self._quotes.clear()
        self._histories.clear()
        self._errors.clear()
        self._search_results = []
        self._call_count = {"quote": 0, "history": 0, "search": 0}

    @property
    def quote_call_count(self) -> int:
        return self._call_count["quote"]

    @property
    def history_call_count(self) -> int:
        return self._call_count["history"]

    def get_quote(self, symbol: str) -> Decimal:
        self._call_count["quote"] += 1
        symbol = symbol.upper()

        if symbol in self._errors:
            raise self._errors[symbol]
        if symbol in self._quotes:
            return self._quotes[symbol]

        # Default: symbol not found
        raise TickerNotFoundError(symbol=symbol, provider=self.name)

    def search(self, query: str) -> list[SymbolMatch]:
        self._call_count["search"] += 1
        if query.upper() in self._errors:
            raise self._errors[query.upper()]
        return list(self._search_results)

    def get_historical_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str = "daily",
    ) -> HistoricalPricesResult:
        self._call_count["history"] += 1
        symbol = symbol.upper()

        if symbol in self._errors:
            raise self._errors[symbol]

        return HistoricalPricesResult(
            symbol=symbol,
            granularity=granularity,
            prices=[
                p for p in self._histories.get(symbol, [])
                if start_date <= p.date <= end_date
            ],
            from_date=start_date,
            to_date=end_date,
        )


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    return MockMarketDataProvider()


@pytest.fixture
def market_data(mock_provider: MockMarketDataProvider) -> MarketDataService:
    """MarketDataService over the mock provider with a fresh cache."""
    return MarketDataService(mock_provider, cache_ttl_seconds=300)


@pytest.fixture
def ledger_service() -> LedgerService:
    """LedgerService without backoff between conflicting attempts."""
    return LedgerService(max_wait=0)


@pytest.fixture
def valuation_service(market_data: MarketDataService, ledger_service: LedgerService) -> ValuationService:
    return ValuationService(market_data=market_data, ledger=ledger_service)


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(
        db: Session,
        market_data: MarketDataService,
        ledger_service: LedgerService,
        valuation_service: ValuationService,
) -> Iterator[TestClient]:
    """
    Create TestClient with database and market data overrides.

    All API calls use the test database and the mock provider.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data_service] = lambda: market_data
    app.dependency_overrides[get_ledger_service] = lambda: ledger_service
    app.dependency_overrides[get_valuation_service] = lambda: valuation_service
    app.dependency_overrides[get_income_service] = lambda: IncomeService(ledger=ledger_service)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_datetime(d: date, hour: int = 12) -> datetime:
    """Aware UTC datetime on a calendar day."""
    return datetime(d.year, d.month, d.day, hour, tzinfo=timezone.utc)


def record_transaction(
        db: Session,
        service: LedgerService,
        symbol: str = "THYAO.IS",
        transaction_type: TransactionType = TransactionType.BUY,
        quantity: Decimal | str = "10",
        price: Decimal | str = "100",
        category: AssetCategory = AssetCategory.LOCAL_EQUITY,
        on: date | None = None,
        total: Decimal | str | None = None,
        is_dividend_reinvested: bool = False,
        total_foreign_currency_value: Decimal | str | None = None,
        name: str | None = None,
        user_id: str = "user-1",
) -> ReconciliationResult:
    """Factory function for recording a transaction through the ledger."""
    return service.record_transaction(
        db,
        user_id,
        NewTransaction(
            symbol=symbol,
            name=name,
            category=category,
            transaction_type=transaction_type,
            quantity=Decimal(str(quantity)),
            price=Decimal(str(price)),
            total=Decimal(str(total)) if total is not None else None,
            date=make_datetime(on or date(2025, 1, 15)),
            is_dividend_reinvested=is_dividend_reinvested,
            total_foreign_currency_value=(
                Decimal(str(total_foreign_currency_value))
                if total_foreign_currency_value is not None
                else None
            ),
        ),
    )


def create_goal(
        db: Session,
        category: GoalCategory = GoalCategory.FOREIGN_EQUITY,
        target_amount: Decimal | str = "1000",
        user_id: str = "user-1",
) -> Goal:
    """Factory function for creating Goal entities in the database."""
    goal = Goal(user_id=user_id, category=category, target_amount=Decimal(str(target_amount)))
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def create_income(
        db: Session,
        year: int = 2025,
        month: int = 0,
        amount: Decimal | str = "1000",
        category: str = "Salary",
        amount_foreign_currency: Decimal | str | None = None,
        user_id: str = "user-1",
) -> IncomeRecord:
    """Factory function for creating IncomeRecord entities in the database."""
    record = IncomeRecord(
        user_id=user_id,
        year=year,
        month=month,
        amount=Decimal(str(amount)),
        amount_foreign_currency=(
            Decimal(str(amount_foreign_currency)) if amount_foreign_currency is not None else None
        ),
        category=category,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def daily_points(start: date, prices: list[str]) -> list[tuple[date, str]]:
    """Consecutive daily closes starting at `start`."""
    return [(start + timedelta(days=i), price) for i, price in enumerate(prices)]
