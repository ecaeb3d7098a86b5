# backend/portfolio_tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- The SQLAlchemy store satisfies the ledger protocols without inheritance
- Test fakes (in-memory stores, canned quote sources) work the same way

The reconciliation flow is written against AtomicUnitOfWork only, so it
never depends on a concrete database client.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Protocol, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_tracker.services.ledger.types import (
        HoldingSnapshot,
        TransactionRecord,
        IncomeEntry,
    )
    from portfolio_tracker.services.market_data.base import PricePoint

T = TypeVar("T")


class LedgerTransaction(Protocol):
    """Operations available inside one atomic unit of work."""

    def get_holding(self, user_id: str, symbol: str) -> HoldingSnapshot | None:
        ...

    def save_holding(self, user_id: str, holding: HoldingSnapshot) -> None:
        ...

    def delete_holding(self, user_id: str, symbol: str) -> None:
        ...

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        ...

    def add_income(self, entry: IncomeEntry) -> IncomeEntry:
        ...


class AtomicUnitOfWork(Protocol):
    """
    All-or-nothing execution of a read-modify-write against the store.

    run_atomic commits when `work` returns and discards every write when
    it raises. A conflicting concurrent write surfaces as
    ConcurrencyConflictError.
    """

    def run_atomic(self, work: Callable[[LedgerTransaction], T]) -> T:
        ...


class QuoteSourceProtocol(Protocol):
    """Interface required by ValuationService for prices and FX."""

    def get_quotes(self, symbols: list[str]) -> dict[str, Decimal]:
        ...

    def get_fx_rate(self) -> tuple[Decimal, bool]:
        ...

    def get_price_history(
        self,
        symbol: str,
        start_date: date,
        end_date: date,
        granularity: str = "daily",
    ) -> list[PricePoint]:
        ...
