# backend/portfolio_tracker/services/ledger/store.py
"""
SQLAlchemy implementation of the Ledger Store.

Provides:
- SqlAlchemyLedgerStore.run_atomic: the atomic unit of work used by the
  reconciliation flow (one commit per transaction, rollback on failure)
- Read queries: holdings, paginated transactions, full history

Concurrency:
    Holding rows carry a version counter (Holding.version_id). Updating
    or deleting a row that another writer changed since it was read fails
    with StaleDataError; two writers creating the same holding collide on
    the (user_id, symbol) unique constraint. Both are reported as
    ConcurrencyConflictError so the caller can re-read and retry. Any other
    integrity violation is a bug in the write and propagates unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import select, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from portfolio_tracker.models import (
    AssetCategory,
    Holding,
    IncomeRecord,
    Transaction,
    TransactionType,
)
from portfolio_tracker.services.exceptions import ConcurrencyConflictError, ValidationError
from portfolio_tracker.services.ledger.types import (
    HoldingSnapshot,
    TransactionRecord,
    IncomeEntry,
    TransactionPage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HOLDING_UNIQUE_CONSTRAINT = "uq_holding_user_symbol"


def _is_holding_conflict(error: IntegrityError) -> bool:
    """True when the violation is two writers creating the same (user_id, symbol) holding."""
    orig = error.orig
    # PostgreSQL 23505 = unique_violation
    if getattr(orig, "pgcode", None) is not None:
        constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
        return orig.pgcode == "23505" and constraint == HOLDING_UNIQUE_CONSTRAINT
    # SQLite: "UNIQUE constraint failed: holdings.user_id, holdings.symbol"
    message = str(orig).lower()
    return "unique constraint" in message and "holdings.user_id" in message


# =============================================================================
# ROW <-> DATACLASS MAPPING
# =============================================================================

def holding_from_row(row: Holding) -> HoldingSnapshot:
    return HoldingSnapshot(
        symbol=row.symbol,
        name=row.name,
        category=row.category,
        quantity=row.quantity,
        average_cost=row.average_cost,
        total_cost=row.total_cost,
        total_dividends=row.total_dividends,
        cash_dividends=row.cash_dividends,
        reinvested_dividends=row.reinvested_dividends,
        updated_at=row.updated_at,
    )


def transaction_from_row(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        symbol=row.symbol,
        category=row.category,
        transaction_type=row.transaction_type,
        quantity=row.quantity,
        price=row.price,
        total=row.total,
        date=row.date,
        is_dividend_reinvested=row.is_dividend_reinvested,
        total_foreign_currency_value=row.total_foreign_currency_value,
        created_at=row.created_at,
    )


def income_from_row(row: IncomeRecord) -> IncomeEntry:
    return IncomeEntry(
        id=row.id,
        user_id=row.user_id,
        year=row.year,
        month=row.month,
        amount=row.amount,
        amount_foreign_currency=row.amount_foreign_currency,
        category=row.category,
        description=row.description,
        company=row.company,
    )


def income_to_row(entry: IncomeEntry) -> IncomeRecord:
    return IncomeRecord(
        user_id=entry.user_id,
        year=entry.year,
        month=entry.month,
        amount=entry.amount,
        amount_foreign_currency=entry.amount_foreign_currency,
        category=entry.category,
        description=entry.description,
        company=entry.company,
    )


# =============================================================================
# UNIT OF WORK
# =============================================================================

class SqlAlchemyLedgerTransaction:
    """
    LedgerTransaction bound to one session transaction.

    Remembers the Holding rows it read so that save/delete operate on the
    same versioned row, which is what makes the optimistic check work.
    """

    def __init__(self, db: Session) -> None:
        self._db = db
        self._rows: dict[tuple[str, str], Holding] = {}

    def get_holding(self, user_id: str, symbol: str) -> HoldingSnapshot | None:
        row = self._db.scalars(
            select(Holding)
            .where(Holding.user_id == user_id, Holding.symbol == symbol)
            .execution_options(populate_existing=True)
        ).first()
        if row is None:
            return None
        self._rows[(user_id, symbol)] = row
        return holding_from_row(row)

    def save_holding(self, user_id: str, holding: HoldingSnapshot) -> None:
        row = self._rows.get((user_id, holding.symbol))
        if row is None:
            row = Holding(user_id=user_id, symbol=holding.symbol)
            self._db.add(row)
            self._rows[(user_id, holding.symbol)] = row

        row.name = holding.name
        row.category = holding.category
        row.quantity = holding.quantity
        row.average_cost = holding.average_cost
        row.total_cost = holding.total_cost
        row.total_dividends = holding.total_dividends
        row.cash_dividends = holding.cash_dividends
        row.reinvested_dividends = holding.reinvested_dividends

    def delete_holding(self, user_id: str, symbol: str) -> None:
        row = self._rows.pop((user_id, symbol), None)
        if row is None:
            row = self._db.scalars(
                select(Holding).where(Holding.user_id == user_id, Holding.symbol == symbol)
            ).first()
        if row is not None:
            self._db.delete(row)

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        row = Transaction(
            user_id=record.user_id,
            symbol=record.symbol,
            category=record.category,
            transaction_type=record.transaction_type,
            quantity=record.quantity,
            price=record.price,
            total=record.total,
            date=record.date,
            is_dividend_reinvested=record.is_dividend_reinvested,
            total_foreign_currency_value=record.total_foreign_currency_value,
        )
        self._db.add(row)
        self._db.flush()
        return replace(record, id=row.id, created_at=row.created_at)

    def add_income(self, entry: IncomeEntry) -> IncomeEntry:
        row = income_to_row(entry)
        self._db.add(row)
        self._db.flush()
        return replace(entry, id=row.id)


class SqlAlchemyLedgerStore:
    """
    Ledger Store backed by a SQLAlchemy session.

    Usage:
        store = SqlAlchemyLedgerStore(db)
        record = store.run_atomic(lambda tx: tx.append_transaction(record))
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def run_atomic(self, work: Callable[[SqlAlchemyLedgerTransaction], T]) -> T:
        """
        Run `work` in one database transaction.

        Commits when work returns, rolls back when anything raises.

        Raises:
            ConcurrencyConflictError: A concurrent writer changed or created
                the same holding
        """
        try:
            result = work(SqlAlchemyLedgerTransaction(self._db))
            self._db.commit()
        except StaleDataError as e:
            self._db.rollback()
            logger.warning(f"Ledger write conflicted with a concurrent update: {e}")
            raise ConcurrencyConflictError("holding") from e
        except IntegrityError as e:
            self._db.rollback()
            if not _is_holding_conflict(e):
                raise
            logger.warning(f"Ledger write conflicted with a concurrent insert: {e}")
            raise ConcurrencyConflictError("holding") from e
        except Exception:
            self._db.rollback()
            raise
        return result

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_holdings(self, user_id: str) -> list[HoldingSnapshot]:
        rows = self._db.scalars(
            select(Holding)
            .where(Holding.user_id == user_id)
            .order_by(Holding.category, Holding.symbol)
        ).all()
        return [holding_from_row(row) for row in rows]

    def list_transactions(
            self,
            user_id: str,
            limit: int,
            cursor: str | None = None,
            category: AssetCategory | None = None,
    ) -> TransactionPage:
        """
        One page of transactions ordered by date descending.

        The cursor is the id of the last transaction of the previous page;
        ties on date are broken by id so pages never overlap.

        Raises:
            ValidationError: Cursor is malformed or unknown for this user
        """
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if category is not None:
            stmt = stmt.where(Transaction.category == category)

        if cursor:
            anchor = self._resolve_cursor(user_id, cursor)
            stmt = stmt.where(
                or_(
                    Transaction.date < anchor.date,
                    and_(Transaction.date == anchor.date, Transaction.id < anchor.id),
                )
            )

        stmt = stmt.order_by(Transaction.date.desc(), Transaction.id.desc()).limit(limit + 1)
        rows = list(self._db.scalars(stmt).all())

        has_more = len(rows) > limit
        rows = rows[:limit]
        return TransactionPage(
            items=[transaction_from_row(row) for row in rows],
            next_cursor=str(rows[-1].id) if has_more and rows else None,
        )

    def get_transaction_history(
            self,
            user_id: str,
            until: datetime | None = None,
            transaction_type: TransactionType | None = None,
    ) -> list[TransactionRecord]:
        """All transactions of a user in chronological order."""
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if until is not None:
            stmt = stmt.where(Transaction.date <= until)
        if transaction_type is not None:
            stmt = stmt.where(Transaction.transaction_type == transaction_type)
        stmt = stmt.order_by(Transaction.date, Transaction.id)
        return [transaction_from_row(row) for row in self._db.scalars(stmt).all()]

    def _resolve_cursor(self, user_id: str, cursor: str) -> Transaction:
        try:
            cursor_id = int(cursor)
        except ValueError:
            raise ValidationError(f"Invalid cursor: '{cursor}'", field="cursor") from None

        anchor = self._db.get(Transaction, cursor_id)
        if anchor is None or anchor.user_id != user_id:
            raise ValidationError(f"Unknown cursor: '{cursor}'", field="cursor")
        return anchor
