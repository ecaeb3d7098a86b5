# backend/tests/services/test_income.py
"""
Tests for income records and the year x month matrices.

Covers:
- IncomeAggregator: year range, month placement, currency conversion
- Investment matrix conversion rules per asset category
- IncomeService: validation, ordering, ownership
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.models import AssetCategory, TransactionType
from portfolio_tracker.services.exceptions import IncomeNotFoundError, ValidationError
from portfolio_tracker.services.income import IncomeAggregator, IncomeService
from portfolio_tracker.services.ledger import IncomeEntry, TransactionRecord

from tests.conftest import create_income, record_transaction

FX = Decimal("40")


def income(year=2025, month=0, amount="4000", foreign=None, category="Salary") -> IncomeEntry:
    return IncomeEntry(
        user_id="user-1",
        year=year,
        month=month,
        amount=Decimal(amount),
        amount_foreign_currency=Decimal(foreign) if foreign is not None else None,
        category=category,
    )


def buy_record(
        total: str,
        category: AssetCategory = AssetCategory.LOCAL_EQUITY,
        foreign: str | None = None,
        when: datetime = datetime(2025, 3, 15, tzinfo=timezone.utc),
        transaction_type: TransactionType = TransactionType.BUY,
) -> TransactionRecord:
    return TransactionRecord(
        user_id="user-1",
        symbol="X",
        category=category,
        transaction_type=transaction_type,
        quantity=Decimal("1"),
        price=Decimal(total),
        total=Decimal(total),
        date=when,
        total_foreign_currency_value=Decimal(foreign) if foreign is not None else None,
    )


@pytest.fixture
def aggregator() -> IncomeAggregator:
    return IncomeAggregator(start_year=2025, end_year=2027)


# =============================================================================
# YEAR RANGE
# =============================================================================

class TestResolveYears:
    """Tests for the displayed year range."""

    def test_default_range(self, aggregator):
        assert aggregator.resolve_years([]) == [2025, 2026, 2027]

    def test_widened_to_include_data(self, aggregator):
        assert aggregator.resolve_years([2023, 2030]) == list(range(2023, 2031))

    def test_explicit_bounds_override_defaults(self, aggregator):
        assert aggregator.resolve_years([], start_year=2020, end_year=2021) == [2020, 2021]

    def test_explicit_bounds_still_include_data(self, aggregator):
        assert aggregator.resolve_years([2019], start_year=2020, end_year=2021) == [2019, 2020, 2021]

    def test_start_after_end(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.resolve_years([], start_year=2030, end_year=2020)

    def test_start_after_end_with_data_in_between(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.resolve_years([2028], start_year=2030, end_year=2026)

    def test_defaults_from_settings(self):
        years = IncomeAggregator().resolve_years([])
        assert years[0] == 2025
        assert years[-1] == 2036


# =============================================================================
# INCOME MATRIX
# =============================================================================

class TestIncomeMatrix:
    """Tests for IncomeAggregator.income_matrix."""

    def test_every_month_present(self, aggregator):
        matrix = aggregator.income_matrix([], "TRY", FX)

        assert matrix.years == [2025, 2026, 2027]
        for year in matrix.years:
            assert sorted(matrix.cells[year]) == list(range(12))
        assert matrix.grand_total == Decimal("0")

    def test_local_totals(self, aggregator):
        records = [
            income(month=0, amount="4000"),
            income(month=0, amount="1000", category="Rent"),
            income(month=11, amount="2000"),
            income(year=2026, month=5, amount="500"),
        ]
        matrix = aggregator.income_matrix(records, "TRY", FX)

        assert matrix.cells[2025][0].total == Decimal("5000")
        assert len(matrix.cells[2025][0].entries) == 2
        assert matrix.cells[2025][11].total == Decimal("2000")
        assert matrix.yearly_totals[2025] == Decimal("7000")
        assert matrix.yearly_totals[2026] == Decimal("500")
        assert matrix.yearly_totals[2027] == Decimal("0")
        assert matrix.grand_total == Decimal("7500")

    def test_foreign_prefers_recorded_foreign_amount(self, aggregator):
        records = [
            income(amount="4000", foreign="95"),
            income(amount="4000"),
        ]
        matrix = aggregator.income_matrix(records, "USD", FX)

        assert matrix.cells[2025][0].total == Decimal("195")
        assert matrix.display_currency == "USD"

    def test_currency_case_insensitive(self, aggregator):
        assert aggregator.income_matrix([], "usd", FX).display_currency == "USD"

    def test_unknown_currency_rejected(self, aggregator):
        with pytest.raises(ValidationError) as exc_info:
            aggregator.income_matrix([], "EUR", FX)
        assert exc_info.value.field == "display_currency"

    def test_data_outside_defaults_kept(self, aggregator):
        matrix = aggregator.income_matrix([income(year=2040, month=3, amount="10")], "TRY", FX)

        assert matrix.years[-1] == 2040
        assert matrix.grand_total == Decimal("10")


# =============================================================================
# INVESTMENT MATRIX
# =============================================================================

class TestInvestmentMatrix:
    """Tests for IncomeAggregator.investment_matrix."""

    def test_only_buys_counted(self, aggregator):
        records = [
            buy_record("100"),
            buy_record("999", transaction_type=TransactionType.SELL),
            buy_record("999", transaction_type=TransactionType.DIVIDEND),
        ]
        matrix = aggregator.investment_matrix(records, "TRY", FX)

        assert matrix.grand_total == Decimal("100")
        assert len(matrix.cells[2025][2].entries) == 1

    def test_local_display(self, aggregator):
        records = [
            buy_record("400"),
            buy_record("1000", category=AssetCategory.PRECIOUS_METAL),
            buy_record("10", category=AssetCategory.FOREIGN_EQUITY),
            buy_record("10", category=AssetCategory.FOREIGN_EQUITY, foreign="12"),
        ]
        matrix = aggregator.investment_matrix(records, "TRY", FX)

        # 400 + 1000 + 10 * 40 + 12 * 40
        assert matrix.cells[2025][2].total == Decimal("2280")

    def test_foreign_display(self, aggregator):
        records = [
            buy_record("400"),
            buy_record("4000", foreign="90"),
            buy_record("1000", category=AssetCategory.PRECIOUS_METAL),
            buy_record("10", category=AssetCategory.FOREIGN_EQUITY),
        ]
        matrix = aggregator.investment_matrix(records, "USD", FX)

        # 400 / 40 + 90 + 1000 / 40 + 10
        assert matrix.cells[2025][2].total == Decimal("135")

    def test_month_is_zero_based(self, aggregator):
        records = [
            buy_record("1", when=datetime(2025, 1, 1, tzinfo=timezone.utc)),
            buy_record("2", when=datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc)),
        ]
        matrix = aggregator.investment_matrix(records, "TRY", FX)

        assert matrix.cells[2025][0].total == Decimal("1")
        assert matrix.cells[2025][11].total == Decimal("2")


# =============================================================================
# SERVICE
# =============================================================================

class TestIncomeService:
    """Tests for IncomeService against the database."""

    @pytest.fixture
    def service(self, ledger_service) -> IncomeService:
        return IncomeService(ledger=ledger_service, aggregator=IncomeAggregator(start_year=2025, end_year=2025))

    def test_add_income(self, db, service):
        entry = service.add_income(
            db, "user-1", year=2025, month=3, amount=Decimal("1500"),
            category="  Rent ", company="ACME", amount_foreign_currency=Decimal("40"),
        )

        assert entry.id is not None
        assert entry.category == "Rent"
        assert entry.amount_foreign_currency == Decimal("40")

    @pytest.mark.parametrize("kwargs,field", [
        ({"year": 1999}, "year"),
        ({"year": 2101}, "year"),
        ({"month": 12}, "month"),
        ({"month": -1}, "month"),
        ({"amount": Decimal("0")}, "amount"),
        ({"amount_foreign_currency": Decimal("-1")}, "amount_foreign_currency"),
        ({"category": "   "}, "category"),
    ])
    def test_add_income_validation(self, db, service, kwargs, field):
        params = {"year": 2025, "month": 0, "amount": Decimal("100"), "category": "Salary"}
        params.update(kwargs)

        with pytest.raises(ValidationError) as exc_info:
            service.add_income(db, "user-1", **params)

        assert exc_info.value.field == field

    def test_list_order_and_year_filter(self, db, service):
        create_income(db, year=2024, month=5)
        create_income(db, year=2025, month=3)
        create_income(db, year=2025, month=1)
        create_income(db, year=2025, month=1, user_id="user-2")

        incomes = service.list_incomes(db, "user-1")
        assert [(i.year, i.month) for i in incomes] == [(2025, 1), (2025, 3), (2024, 5)]

        assert len(service.list_incomes(db, "user-1", year=2024)) == 1

    def test_delete(self, db, service):
        record = create_income(db)

        service.delete_income(db, "user-1", record.id)

        assert service.list_incomes(db, "user-1") == []

    def test_delete_other_users_record_not_found(self, db, service):
        record = create_income(db, user_id="user-2")

        with pytest.raises(IncomeNotFoundError):
            service.delete_income(db, "user-1", record.id)

    def test_dividend_income_appears_in_matrix(self, db, service, ledger_service):
        record_transaction(db, ledger_service, on=date(2025, 2, 10))
        record_transaction(
            db, ledger_service, transaction_type=TransactionType.DIVIDEND,
            quantity="0", price="0", total="75", on=date(2025, 4, 2),
        )

        matrix = service.get_income_matrix(db, "user-1", "TRY", FX)

        assert matrix.cells[2025][3].total == Decimal("75")
        assert matrix.cells[2025][3].entries[0].category == "Dividend"

    def test_investment_matrix_from_ledger(self, db, service, ledger_service):
        record_transaction(db, ledger_service, quantity="10", price="100", on=date(2025, 2, 10))
        record_transaction(
            db, ledger_service, transaction_type=TransactionType.SELL,
            quantity="5", price="120", on=date(2025, 3, 1),
        )

        matrix = service.get_investment_matrix(db, "user-1", "TRY", FX)

        assert matrix.cells[2025][1].total == Decimal("1000")
        assert matrix.grand_total == Decimal("1000")
