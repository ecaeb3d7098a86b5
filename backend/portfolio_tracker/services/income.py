# backend/portfolio_tracker/services/income.py
"""
Income Service - income records and year x month matrices.

This service handles:
- Adding, listing and deleting income records
- The income matrix (income per month, per year, and overall)
- The investment matrix (BUY amounts per month)

Stored income amounts are in the local currency. A matrix can be shown
in either the local or the foreign currency:

    Income, foreign display:     amount_foreign_currency, else amount / fx_rate
    Investment, local display:   FOREIGN_EQUITY total * fx_rate, others total
    Investment, foreign display: total_foreign_currency_value, else
                                 FOREIGN_EQUITY total, others total / fx_rate

Months are zero-based (0 = January) throughout.

Usage:
    from portfolio_tracker.services.income import IncomeService

    service = IncomeService()
    service.add_income(db, "user-1", year=2025, month=0, amount=Decimal("1500"), category="Rent")
    matrix = service.get_income_matrix(db, "user-1", display_currency="USD", fx_rate=Decimal("34"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Generic, Iterable, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetCategory, IncomeRecord, TransactionType
from portfolio_tracker.services.constants import (
    MIN_INCOME_YEAR,
    MAX_INCOME_YEAR,
    MIN_MONTH,
    MAX_MONTH,
)
from portfolio_tracker.services.exceptions import IncomeNotFoundError, ValidationError
from portfolio_tracker.services.ledger import LedgerService
from portfolio_tracker.services.ledger.store import income_from_row, income_to_row
from portfolio_tracker.services.ledger.types import IncomeEntry, TransactionRecord
from portfolio_tracker.utils.date_utils import to_date, zero_based_month
from portfolio_tracker.utils.money import ZERO, safe_divide

logger = logging.getLogger(__name__)

E = TypeVar("E")

MONTHS = range(MIN_MONTH, MAX_MONTH + 1)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class MatrixCell(Generic[E]):
    """One month of one year: converted total and the source entries."""

    total: Decimal = ZERO
    entries: list[E] = field(default_factory=list)


@dataclass
class YearMonthMatrix(Generic[E]):
    """
    Amounts grouped by year and month, in display_currency.

    Attributes:
        years: Displayed years, ascending
        cells: year -> month (0-11) -> MatrixCell; every month of every year present
        yearly_totals: year -> sum of its months
        grand_total: sum over all years
    """

    display_currency: str
    fx_rate: Decimal
    years: list[int] = field(default_factory=list)
    cells: dict[int, dict[int, MatrixCell[E]]] = field(default_factory=dict)
    yearly_totals: dict[int, Decimal] = field(default_factory=dict)
    grand_total: Decimal = ZERO


# =============================================================================
# AGGREGATOR
# =============================================================================

class IncomeAggregator:
    """
    Builds year x month matrices. Pure: no database access.

    Year range:
        From min(start_year, earliest data year) to
        max(end_year, latest data year), so no entry is ever dropped.
    """

    def __init__(self, start_year: int | None = None, end_year: int | None = None) -> None:
        self._start_year = start_year or settings.income_matrix_start_year
        self._end_year = end_year or settings.income_matrix_end_year

    def resolve_years(
            self,
            data_years: Iterable[int],
            start_year: int | None = None,
            end_year: int | None = None,
    ) -> list[int]:
        data_years = list(data_years)
        first = start_year if start_year is not None else self._start_year
        last = end_year if end_year is not None else self._end_year
        if first > last:
            raise ValidationError(
                f"start_year ({first}) must not be after end_year ({last})",
                field="start_year",
            )
        if data_years:
            first = min(first, min(data_years))
            last = max(last, max(data_years))
        return list(range(first, last + 1))

    def income_matrix(
            self,
            records: Iterable[IncomeEntry],
            display_currency: str,
            fx_rate: Decimal,
            start_year: int | None = None,
            end_year: int | None = None,
    ) -> YearMonthMatrix[IncomeEntry]:
        """Income per month; amounts converted per the display currency."""
        display_currency = self._validate_currency(display_currency)
        show_foreign = display_currency == settings.foreign_currency

        def convert(record: IncomeEntry) -> Decimal:
            if not show_foreign:
                return record.amount
            if record.amount_foreign_currency is not None:
                return record.amount_foreign_currency
            return safe_divide(record.amount, fx_rate)

        keyed = [(record.year, record.month, record) for record in records]
        return self._build(keyed, convert, display_currency, fx_rate, start_year, end_year)

    def investment_matrix(
            self,
            transactions: Iterable[TransactionRecord],
            display_currency: str,
            fx_rate: Decimal,
            start_year: int | None = None,
            end_year: int | None = None,
    ) -> YearMonthMatrix[TransactionRecord]:
        """BUY amounts per month; other transaction types are ignored."""
        display_currency = self._validate_currency(display_currency)
        show_foreign = display_currency == settings.foreign_currency

        def convert(txn: TransactionRecord) -> Decimal:
            if show_foreign:
                if txn.total_foreign_currency_value:
                    return txn.total_foreign_currency_value
                if txn.category == AssetCategory.FOREIGN_EQUITY:
                    return txn.total
                return safe_divide(txn.total, fx_rate)
            if txn.category == AssetCategory.FOREIGN_EQUITY:
                return (txn.total_foreign_currency_value or txn.total) * fx_rate
            return txn.total

        keyed = [
            (to_date(txn.date).year, zero_based_month(txn.date), txn)
            for txn in transactions
            if txn.transaction_type == TransactionType.BUY
        ]
        return self._build(keyed, convert, display_currency, fx_rate, start_year, end_year)

    def _build(
            self,
            keyed: list[tuple[int, int, E]],
            convert: Callable[[E], Decimal],
            display_currency: str,
            fx_rate: Decimal,
            start_year: int | None,
            end_year: int | None,
    ) -> YearMonthMatrix[E]:
        years = self.resolve_years((year for year, _, _ in keyed), start_year, end_year)
        matrix: YearMonthMatrix[E] = YearMonthMatrix(
            display_currency=display_currency,
            fx_rate=fx_rate,
            years=years,
            cells={year: {month: MatrixCell() for month in MONTHS} for year in years},
        )

        for year, month, entry in keyed:
            cell = matrix.cells[year][month]
            cell.total += convert(entry)
            cell.entries.append(entry)

        for year in years:
            matrix.yearly_totals[year] = sum((cell.total for cell in matrix.cells[year].values()), ZERO)
        matrix.grand_total = sum(matrix.yearly_totals.values(), ZERO)
        return matrix

    @staticmethod
    def _validate_currency(display_currency: str) -> str:
        currency = (display_currency or "").strip().upper()
        if currency not in (settings.local_currency, settings.foreign_currency):
            raise ValidationError(
                f"display_currency must be {settings.local_currency} or {settings.foreign_currency}",
                field="display_currency",
            )
        return currency


# =============================================================================
# SERVICE
# =============================================================================

class IncomeService:
    """
    Service for income records and the income/investment matrices.

    Income records are written here for manual entries; dividend income is
    written by the ledger inside the transaction's unit of work.
    """

    def __init__(
            self,
            ledger: LedgerService | None = None,
            aggregator: IncomeAggregator | None = None,
    ) -> None:
        self._ledger = ledger or LedgerService()
        self._aggregator = aggregator or IncomeAggregator()

    # =========================================================================
    # RECORDS
    # =========================================================================

    def add_income(
            self,
            db: Session,
            user_id: str,
            year: int,
            month: int,
            amount: Decimal,
            category: str,
            description: str | None = None,
            company: str | None = None,
            amount_foreign_currency: Decimal | None = None,
    ) -> IncomeEntry:
        """
        Store a manual income record.

        Raises:
            ValidationError: year outside 2000-2100, month outside 0-11,
                amount <= 0, negative foreign amount or empty category
        """
        if not MIN_INCOME_YEAR <= year <= MAX_INCOME_YEAR:
            raise ValidationError(
                f"year must be between {MIN_INCOME_YEAR} and {MAX_INCOME_YEAR}",
                field="year",
            )
        if not MIN_MONTH <= month <= MAX_MONTH:
            raise ValidationError(f"month must be between {MIN_MONTH} and {MAX_MONTH}", field="month")
        if amount is None or amount <= 0:
            raise ValidationError("amount must be greater than 0", field="amount")
        if amount_foreign_currency is not None and amount_foreign_currency < 0:
            raise ValidationError(
                "amount_foreign_currency must not be negative",
                field="amount_foreign_currency",
            )
        category = (category or "").strip()
        if not category:
            raise ValidationError("category is required", field="category")

        row = income_to_row(IncomeEntry(
            user_id=user_id,
            year=year,
            month=month,
            amount=amount,
            category=category,
            description=description,
            company=company,
            amount_foreign_currency=amount_foreign_currency,
        ))
        db.add(row)
        db.commit()
        db.refresh(row)

        logger.info(f"Added income {row.id} for user {user_id}: {category} {amount} ({year}-{month})")
        return income_from_row(row)

    def list_incomes(self, db: Session, user_id: str, year: int | None = None) -> list[IncomeEntry]:
        """Income records, newest year first and January first within a year."""
        query = select(IncomeRecord).where(IncomeRecord.user_id == user_id)
        if year is not None:
            query = query.where(IncomeRecord.year == year)
        query = query.order_by(IncomeRecord.year.desc(), IncomeRecord.month.asc(), IncomeRecord.id.asc())
        return [income_from_row(row) for row in db.scalars(query)]

    def delete_income(self, db: Session, user_id: str, income_id: int) -> None:
        row = db.get(IncomeRecord, income_id)
        if row is None or row.user_id != user_id:
            raise IncomeNotFoundError(income_id)
        db.delete(row)
        db.commit()
        logger.info(f"Deleted income {income_id} for user {user_id}")

    # =========================================================================
    # MATRICES
    # =========================================================================

    def get_income_matrix(
            self,
            db: Session,
            user_id: str,
            display_currency: str,
            fx_rate: Decimal,
            start_year: int | None = None,
            end_year: int | None = None,
    ) -> YearMonthMatrix[IncomeEntry]:
        records = self.list_incomes(db, user_id)
        return self._aggregator.income_matrix(records, display_currency, fx_rate, start_year, end_year)

    def get_investment_matrix(
            self,
            db: Session,
            user_id: str,
            display_currency: str,
            fx_rate: Decimal,
    ) -> YearMonthMatrix[TransactionRecord]:
        transactions = self._ledger.get_transaction_history(
            db, user_id, transaction_type=TransactionType.BUY
        )
        return self._aggregator.investment_matrix(transactions, display_currency, fx_rate)
