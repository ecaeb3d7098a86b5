# backend/portfolio_tracker/services/ledger/reconciler.py
"""
Ledger reconciliation engine.

Applies one transaction at a time to a holding snapshot:
- TransactionValidator: Rejects malformed input before any store access
- LedgerReconciler: Pure state transition (holding, transaction) -> result

Rules per transaction type:
    BUY       quantity += q, total_cost += total
    SELL      quantity -= q, total_cost -= total_cost * q / quantity;
              the holding is closed when quantity reaches 0
    DIVIDEND  total_dividends += total; reinvested dividends buy
              floor(total / price) extra shares without adding cost,
              cash dividends only add to cash_dividends. Either way an
              income record is emitted.

q is floored to whole shares for equities; precious metals keep
fractional quantities.

Design Principles:
- Stateless and pure: no session, no clock
- Decimal for ALL financial calculations
- Returns a new snapshot instead of mutating the old one

Usage:
    validator = TransactionValidator()
    reconciler = LedgerReconciler()

    txn = validator.validate(raw_txn, now=datetime.now(timezone.utc))
    result = reconciler.apply(current_holding, txn, user_id="user-1")
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from portfolio_tracker.models import TransactionType
from portfolio_tracker.services.constants import DIVIDEND_INCOME_CATEGORY
from portfolio_tracker.services.exceptions import ValidationError, InsufficientQuantityError
from portfolio_tracker.services.ledger.types import (
    NewTransaction,
    HoldingSnapshot,
    TransactionRecord,
    IncomeEntry,
    ReconciliationResult,
)
from portfolio_tracker.utils.date_utils import zero_based_month
from portfolio_tracker.utils.money import (
    ZERO,
    floor_shares,
    normalize_quantity,
    safe_divide,
    is_close,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

class TransactionValidator:
    """
    Validates and completes a NewTransaction.

    Returns a copy with the symbol normalized, `total` filled in and
    `date` defaulted, or raises ValidationError. Never touches the store.
    """

    def validate(self, txn: NewTransaction, now: datetime) -> NewTransaction:
        symbol = (txn.symbol or "").strip().upper()
        if not symbol:
            raise ValidationError("Symbol is required", field="symbol")

        if txn.total_foreign_currency_value is not None and txn.total_foreign_currency_value < 0:
            raise ValidationError(
                "Foreign currency value cannot be negative",
                field="total_foreign_currency_value",
            )

        if txn.transaction_type == TransactionType.DIVIDEND:
            validated = self._validate_dividend(txn)
        else:
            validated = self._validate_trade(txn)

        name = txn.name.strip() if txn.name and txn.name.strip() else None
        return replace(validated, symbol=symbol, name=name, date=txn.date or now)

    def _validate_trade(self, txn: NewTransaction) -> NewTransaction:
        if txn.quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", field="quantity")
        if txn.price <= 0:
            raise ValidationError("Price must be greater than 0", field="price")

        if normalize_quantity(txn.category, txn.quantity) <= 0:
            raise ValidationError(
                f"{txn.category.value} is traded in whole shares; "
                f"quantity {txn.quantity} is less than one share",
                field="quantity",
            )

        expected_total = txn.quantity * txn.price
        if txn.total is None:
            return replace(txn, total=expected_total)

        if not is_close(txn.total, expected_total):
            raise ValidationError(
                f"Total {txn.total} does not match quantity × price ({expected_total})",
                field="total",
            )
        return txn

    def _validate_dividend(self, txn: NewTransaction) -> NewTransaction:
        if txn.total is None or txn.total <= 0:
            raise ValidationError("Dividend total must be greater than 0", field="total")
        if txn.price < 0:
            raise ValidationError("Price cannot be negative", field="price")
        # Quantity is unused for dividends and stored as 0
        return replace(txn, quantity=ZERO)


# =============================================================================
# RECONCILER
# =============================================================================

class LedgerReconciler:
    """
    Pure state machine turning (holding, transaction) into a new holding.

    The caller is expected to pass a transaction that went through
    TransactionValidator. The result is applied to the store inside one
    atomic unit of work.
    """

    def apply(
            self,
            current: HoldingSnapshot | None,
            txn: NewTransaction,
            user_id: str,
    ) -> ReconciliationResult:
        """
        Apply one transaction.

        Args:
            current: Holding for txn.symbol, None if not owned
            txn: Validated transaction
            user_id: Owner of the ledger

        Returns:
            ReconciliationResult with the new holding (None when closed),
            the ledger record and any income side effects

        Raises:
            InsufficientQuantityError: SELL beyond the owned quantity, or
                SELL/DIVIDEND on a symbol that is not owned
        """
        side_effects: list[IncomeEntry] = []

        if txn.transaction_type == TransactionType.BUY:
            new_holding = self._apply_buy(current, txn)
        elif txn.transaction_type == TransactionType.SELL:
            new_holding = self._apply_sell(current, txn)
        elif txn.transaction_type == TransactionType.DIVIDEND:
            new_holding = self._apply_dividend(current, txn)
            side_effects.append(self._dividend_income(txn, user_id))
        else:
            raise ValidationError(
                f"Unsupported transaction type: {txn.transaction_type}",
                field="transaction_type",
            )

        record = TransactionRecord(
            user_id=user_id,
            symbol=txn.symbol,
            category=current.category if current else txn.category,
            transaction_type=txn.transaction_type,
            quantity=txn.quantity,
            price=txn.price,
            total=txn.total,
            date=txn.date,
            is_dividend_reinvested=(
                txn.is_dividend_reinvested
                if txn.transaction_type == TransactionType.DIVIDEND
                else False
            ),
            total_foreign_currency_value=txn.total_foreign_currency_value,
        )

        return ReconciliationResult(
            previous_holding=current,
            new_holding=new_holding,
            transaction_record=record,
            side_effects=side_effects,
        )

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def _apply_buy(self, current: HoldingSnapshot | None, txn: NewTransaction) -> HoldingSnapshot:
        if current is None:
            return HoldingSnapshot(
                symbol=txn.symbol,
                category=txn.category,
                quantity=normalize_quantity(txn.category, txn.quantity),
                average_cost=txn.price,
                total_cost=txn.total,
                name=txn.name,
                updated_at=txn.date,
            )

        if txn.category != current.category:
            logger.warning(
                f"BUY for {txn.symbol} submitted as {txn.category.value}, "
                f"holding is {current.category.value}; keeping holding category"
            )

        quantity = current.quantity + normalize_quantity(current.category, txn.quantity)
        total_cost = current.total_cost + txn.total
        return replace(
            current,
            quantity=quantity,
            total_cost=total_cost,
            average_cost=safe_divide(total_cost, quantity),
            name=current.name or txn.name,
            updated_at=txn.date,
        )

    def _apply_sell(self, current: HoldingSnapshot | None, txn: NewTransaction) -> HoldingSnapshot | None:
        if current is None:
            raise InsufficientQuantityError(txn.symbol)

        sell_qty = normalize_quantity(current.category, txn.quantity)
        if current.quantity < sell_qty:
            raise InsufficientQuantityError(
                txn.symbol, requested=sell_qty, available=current.quantity
            )

        cost_per_share = safe_divide(current.total_cost, current.quantity)
        quantity = current.quantity - sell_qty
        if quantity <= 0:
            logger.debug(f"SELL closes holding {txn.symbol}")
            return None

        total_cost = current.total_cost - cost_per_share * sell_qty
        return replace(
            current,
            quantity=quantity,
            total_cost=total_cost,
            average_cost=safe_divide(total_cost, quantity),
            updated_at=txn.date,
        )

    def _apply_dividend(self, current: HoldingSnapshot | None, txn: NewTransaction) -> HoldingSnapshot:
        if current is None:
            raise InsufficientQuantityError(
                txn.symbol,
                message=f"Cannot record a dividend for {txn.symbol}: asset is not owned",
            )

        quantity = current.quantity
        cash_dividends = current.cash_dividends
        reinvested_dividends = current.reinvested_dividends

        if txn.is_dividend_reinvested:
            reinvested_dividends += txn.total
            if txn.price > 0:
                # Reinvested shares are free: quantity grows, cost basis does not
                quantity += floor_shares(txn.total / txn.price)
        else:
            cash_dividends += txn.total

        return replace(
            current,
            quantity=quantity,
            average_cost=safe_divide(current.total_cost, quantity),
            total_dividends=current.total_dividends + txn.total,
            cash_dividends=cash_dividends,
            reinvested_dividends=reinvested_dividends,
            updated_at=txn.date,
        )

    def _dividend_income(self, txn: NewTransaction, user_id: str) -> IncomeEntry:
        description = f"Dividend from {txn.symbol}"
        if txn.is_dividend_reinvested:
            description += " (Reinvested)"

        return IncomeEntry(
            user_id=user_id,
            year=txn.date.year,
            month=zero_based_month(txn.date),
            amount=txn.total,
            amount_foreign_currency=txn.total_foreign_currency_value,
            category=DIVIDEND_INCOME_CATEGORY,
            description=description,
            company=txn.symbol,
        )
