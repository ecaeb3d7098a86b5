# backend/portfolio_tracker/services/ledger/service.py
"""
Ledger Service - records transactions and reads the ledger.

Orchestrates:
1. Validation (TransactionValidator), before any store access
2. One atomic unit of work: read holding, reconcile, write holding,
   transaction record and income side effects
3. Bounded retry of the whole unit when a concurrent write is detected

Retry Policy:
    Only ConcurrencyConflictError is retried (tenacity, exponential
    backoff, settings.ledger_max_attempts attempts). InsufficientQuantityError
    and ValidationError are business outcomes and are raised immediately.

Usage:
    from portfolio_tracker.services.ledger import LedgerService

    service = LedgerService()
    result = service.record_transaction(db, "user-1", NewTransaction(...))
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetCategory, TransactionType
from portfolio_tracker.services.exceptions import ConcurrencyConflictError
from portfolio_tracker.services.ledger.reconciler import LedgerReconciler, TransactionValidator
from portfolio_tracker.services.ledger.store import SqlAlchemyLedgerStore
from portfolio_tracker.services.ledger.types import (
    NewTransaction,
    HoldingSnapshot,
    TransactionRecord,
    TransactionPage,
    ReconciliationResult,
)
from portfolio_tracker.services.protocols import AtomicUnitOfWork, LedgerTransaction

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Records transactions against a user's ledger.

    Attributes:
        _validator: Input validation
        _reconciler: Pure holding state machine
        _max_attempts: Attempts for a unit of work that keeps conflicting
        _max_wait: Upper bound of the backoff between attempts (seconds)
    """

    def __init__(
            self,
            validator: TransactionValidator | None = None,
            reconciler: LedgerReconciler | None = None,
            max_attempts: int | None = None,
            max_wait: float | None = None,
    ) -> None:
        self._validator = validator or TransactionValidator()
        self._reconciler = reconciler or LedgerReconciler()
        self._max_attempts = max_attempts or settings.ledger_max_attempts
        self._max_wait = settings.ledger_retry_max_wait if max_wait is None else max_wait

    # =========================================================================
    # WRITES
    # =========================================================================

    def record_transaction(
            self,
            db: Session,
            user_id: str,
            txn: NewTransaction,
    ) -> ReconciliationResult:
        """
        Record a transaction in the database-backed ledger.

        Raises:
            ValidationError: Malformed input (nothing was written)
            InsufficientQuantityError: SELL/DIVIDEND not covered by holdings
            ConcurrencyConflictError: Retries exhausted
        """
        return self.apply(SqlAlchemyLedgerStore(db), user_id, txn)

    def apply(
            self,
            unit_of_work: AtomicUnitOfWork,
            user_id: str,
            txn: NewTransaction,
            now: datetime | None = None,
    ) -> ReconciliationResult:
        """
        Validate and reconcile a transaction through any AtomicUnitOfWork.

        Args:
            unit_of_work: Store offering run_atomic
            user_id: Owner of the ledger
            txn: Transaction as submitted
            now: Default date for undated transactions (defaults to UTC now)

        Returns:
            ReconciliationResult with store-assigned ids
        """
        validated = self._validator.validate(txn, now=now or datetime.now(timezone.utc))

        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.05, max=self._max_wait),
            retry=retry_if_exception_type(ConcurrencyConflictError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            result = retrying(self._apply_once, unit_of_work, user_id, validated)
        except ConcurrencyConflictError as e:
            logger.error(
                f"Giving up on {validated.transaction_type.value} {validated.symbol} "
                f"after {self._max_attempts} conflicting attempts"
            )
            raise ConcurrencyConflictError(
                f"holding {validated.symbol}", attempts=self._max_attempts
            ) from e

        self._log_result(result)
        return result

    def _apply_once(
            self,
            unit_of_work: AtomicUnitOfWork,
            user_id: str,
            txn: NewTransaction,
    ) -> ReconciliationResult:
        """One attempt: re-read the holding and recompute inside run_atomic."""

        def work(tx: LedgerTransaction) -> ReconciliationResult:
            current = tx.get_holding(user_id, txn.symbol)
            result = self._reconciler.apply(current, txn, user_id)

            if result.new_holding is not None:
                tx.save_holding(user_id, result.new_holding)
            elif result.closes_holding:
                tx.delete_holding(user_id, txn.symbol)

            record = tx.append_transaction(result.transaction_record)
            incomes = [tx.add_income(entry) for entry in result.side_effects]
            return replace(result, transaction_record=record, side_effects=incomes)

        return unit_of_work.run_atomic(work)

    def _log_result(self, result: ReconciliationResult) -> None:
        record = result.transaction_record
        logger.info(
            f"Recorded {record.transaction_type.value} {record.symbol} "
            f"(quantity={record.quantity}, total={record.total})",
            extra={"transaction_id": record.id, "symbol": record.symbol},
        )
        if result.closes_holding:
            logger.info(f"Holding {record.symbol} closed")
        for entry in result.side_effects:
            logger.info(f"Income recorded: {entry.description} ({entry.amount})")

    # =========================================================================
    # READS
    # =========================================================================

    def list_holdings(self, db: Session, user_id: str) -> list[HoldingSnapshot]:
        return SqlAlchemyLedgerStore(db).list_holdings(user_id)

    def list_transactions(
            self,
            db: Session,
            user_id: str,
            limit: int | None = None,
            cursor: str | None = None,
            category: AssetCategory | None = None,
    ) -> TransactionPage:
        """Transactions newest first, `limit` per page (default from settings)."""
        return SqlAlchemyLedgerStore(db).list_transactions(
            user_id,
            limit=limit or settings.transaction_page_size,
            cursor=cursor,
            category=category,
        )

    def get_transaction_history(
            self,
            db: Session,
            user_id: str,
            transaction_type: TransactionType | None = None,
    ) -> list[TransactionRecord]:
        return SqlAlchemyLedgerStore(db).get_transaction_history(
            user_id, transaction_type=transaction_type
        )
