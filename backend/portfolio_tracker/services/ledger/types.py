# backend/portfolio_tracker/services/ledger/types.py
"""
Internal data types for the ledger.

These dataclasses are plain data passed into and out of the reconciliation
engine. They are NOT Pydantic schemas (see portfolio_tracker/schemas/) and
NOT ORM models (see portfolio_tracker/models.py): the store converts
between rows and these types so the engine never touches a session.

Design Principles:
- Immutable value objects (frozen=True); the engine returns new snapshots
- Decimal for ALL financial values
- Optional fields use None, not sentinel values

Type Hierarchy:
    NewTransaction        - Input of one ledger write (validated before use)
    HoldingSnapshot       - Current position for one symbol
    TransactionRecord     - Transaction as appended to the ledger
    IncomeEntry           - Income record to be stored
    ReconciliationResult  - Output of applying one transaction
    TransactionPage       - One page of the transaction listing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from portfolio_tracker.models import AssetCategory, TransactionType

_ZERO = Decimal("0")


@dataclass(frozen=True)
class NewTransaction:
    """
    A transaction as submitted by the user.

    `total` may be omitted for BUY/SELL and is then quantity * price.
    `date` may be omitted and then defaults to "now" during validation.
    For DIVIDEND, `total` is the cash amount and `price` is the share
    price used for reinvestment (0 when unknown).
    """

    symbol: str
    category: AssetCategory
    transaction_type: TransactionType
    quantity: Decimal = _ZERO
    price: Decimal = _ZERO
    total: Decimal | None = None
    date: datetime | None = None
    is_dividend_reinvested: bool = False
    total_foreign_currency_value: Decimal | None = None
    name: str | None = None


@dataclass(frozen=True)
class HoldingSnapshot:
    """
    Position in one symbol, derived from the ledger.

    Invariants (maintained by LedgerReconciler):
        quantity >= 0
        average_cost == total_cost / quantity while quantity > 0
        total_dividends == cash_dividends + reinvested_dividends
    """

    symbol: str
    category: AssetCategory
    quantity: Decimal
    average_cost: Decimal
    total_cost: Decimal
    total_dividends: Decimal = _ZERO
    cash_dividends: Decimal = _ZERO
    reinvested_dividends: Decimal = _ZERO
    name: str | None = None
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.symbol


@dataclass(frozen=True)
class TransactionRecord:
    """A transaction as appended to the ledger."""

    user_id: str
    symbol: str
    category: AssetCategory
    transaction_type: TransactionType
    quantity: Decimal
    price: Decimal
    total: Decimal
    date: datetime
    is_dividend_reinvested: bool = False
    total_foreign_currency_value: Decimal | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class IncomeEntry:
    """
    An income record to store. `month` is zero-based (0 = January).
    """

    user_id: str
    year: int
    month: int
    amount: Decimal
    category: str
    description: str | None = None
    company: str | None = None
    amount_foreign_currency: Decimal | None = None
    id: int | None = None


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Output of applying one transaction to a holding.

    Attributes:
        previous_holding: Holding before the transaction (None if new)
        new_holding: Holding after the transaction, None when it was closed
        transaction_record: Ledger entry to append
        side_effects: Income records to store alongside
    """

    previous_holding: HoldingSnapshot | None
    new_holding: HoldingSnapshot | None
    transaction_record: TransactionRecord
    side_effects: list[IncomeEntry] = field(default_factory=list)

    @property
    def closes_holding(self) -> bool:
        """True if the holding existed and must be deleted."""
        return self.previous_holding is not None and self.new_holding is None


@dataclass
class TransactionPage:
    """
    One page of a user's transactions, newest first.

    next_cursor is None on the last page.
    """

    items: list[TransactionRecord]
    next_cursor: str | None = None
