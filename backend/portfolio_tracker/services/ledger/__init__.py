# backend/portfolio_tracker/services/ledger/__init__.py
"""
Ledger package: transaction recording and holdings reconciliation.

Usage:
    from portfolio_tracker.services.ledger import LedgerService, NewTransaction

    service = LedgerService()
    result = service.record_transaction(db, user_id, NewTransaction(...))
    result.new_holding   # HoldingSnapshot, or None if the holding was closed

Architecture:
    ledger/
    ├── types.py       # Plain dataclasses passed through the engine
    ├── reconciler.py  # TransactionValidator + pure LedgerReconciler
    ├── store.py       # SQLAlchemy atomic unit of work and queries
    └── service.py     # Validation, retry on conflicts, reads
"""

from portfolio_tracker.services.ledger.reconciler import LedgerReconciler, TransactionValidator
from portfolio_tracker.services.ledger.service import LedgerService
from portfolio_tracker.services.ledger.store import SqlAlchemyLedgerStore
from portfolio_tracker.services.ledger.types import (
    NewTransaction,
    HoldingSnapshot,
    TransactionRecord,
    IncomeEntry,
    ReconciliationResult,
    TransactionPage,
)

__all__ = [
    "LedgerService",
    "LedgerReconciler",
    "TransactionValidator",
    "SqlAlchemyLedgerStore",
    "NewTransaction",
    "HoldingSnapshot",
    "TransactionRecord",
    "IncomeEntry",
    "ReconciliationResult",
    "TransactionPage",
]
