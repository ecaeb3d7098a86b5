# backend/tests/services/test_history_calculator.py
"""
Tests for the historical replay engine.

Covers:
- Date generation (daily, weekly, monthly)
- Quantity replay (BUY, SELL, reinvested DIVIDEND)
- Idempotence
- Price lookup with prior-date fallback and missing series
- FX conversion and the fallback rate
- Time range presets
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.models import AssetCategory, TransactionType
from portfolio_tracker.services.exceptions import InvalidIntervalError, ValidationError
from portfolio_tracker.services.ledger import TransactionRecord
from portfolio_tracker.services.valuation.history_calculator import (
    HistoryCalculator,
    resolve_time_range,
)
from portfolio_tracker.services.valuation.types import TimeSeries

FALLBACK_FX = Decimal("30")


def txn(
        symbol: str,
        on: date,
        transaction_type: TransactionType = TransactionType.BUY,
        quantity: str = "10",
        price: str = "1",
        total: str | None = None,
        category: AssetCategory = AssetCategory.LOCAL_EQUITY,
        reinvested: bool = False,
        hour: int = 23,
) -> TransactionRecord:
    quantity_d = Decimal(quantity)
    price_d = Decimal(price)
    return TransactionRecord(
        user_id="user-1",
        symbol=symbol,
        category=category,
        transaction_type=transaction_type,
        quantity=quantity_d,
        price=price_d,
        total=Decimal(total) if total is not None else quantity_d * price_d,
        date=datetime(on.year, on.month, on.day, hour, 59, tzinfo=timezone.utc),
        is_dividend_reinvested=reinvested,
    )


def series(*points: tuple[date, str]) -> TimeSeries:
    return TimeSeries((d, Decimal(v)) for d, v in points)


@pytest.fixture
def calc() -> HistoryCalculator:
    return HistoryCalculator(fallback_fx_rate=FALLBACK_FX)


# =============================================================================
# TIME SERIES
# =============================================================================

class TestTimeSeries:
    """Tests for TimeSeries lookup."""

    def test_exact_and_prior_lookup(self):
        s = series((date(2025, 1, 3), "10"), (date(2025, 1, 6), "12"))

        assert s.value_at(date(2025, 1, 3)) == Decimal("10")
        assert s.value_at(date(2025, 1, 5)) == Decimal("10")
        assert s.value_at(date(2025, 1, 6)) == Decimal("12")
        assert s.value_at(date(2025, 1, 2)) is None

    def test_unsorted_input_and_duplicates(self):
        s = series((date(2025, 1, 6), "12"), (date(2025, 1, 3), "10"), (date(2025, 1, 3), "11"))

        assert len(s) == 2
        assert s.value_at(date(2025, 1, 4)) == Decimal("11")

    def test_empty_series_is_falsy(self):
        assert not TimeSeries()
        assert TimeSeries().value_at(date(2025, 1, 1)) is None


# =============================================================================
# DATE GENERATION
# =============================================================================

class TestDateGeneration:
    """Tests for daily, weekly and monthly point dates."""

    def test_daily_includes_every_calendar_day(self, calc):
        history = calc.calculate([], {}, None, date(2025, 1, 30), date(2025, 2, 2), "daily")
        assert [p.date for p in history.data] == [
            date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2),
        ]

    def test_weekly_fridays_plus_end(self, calc):
        # 2025-01-01 is a Wednesday
        history = calc.calculate([], {}, None, date(2025, 1, 1), date(2025, 1, 15), "weekly")
        assert [p.date for p in history.data] == [
            date(2025, 1, 3), date(2025, 1, 10), date(2025, 1, 15),
        ]

    def test_weekly_end_on_friday_not_duplicated(self, calc):
        history = calc.calculate([], {}, None, date(2025, 1, 1), date(2025, 1, 10), "weekly")
        assert [p.date for p in history.data] == [date(2025, 1, 3), date(2025, 1, 10)]

    def test_weekly_short_range_yields_end_only(self, calc):
        history = calc.calculate([], {}, None, date(2025, 1, 6), date(2025, 1, 8), "weekly")
        assert [p.date for p in history.data] == [date(2025, 1, 8)]

    def test_monthly_month_ends_plus_end(self, calc):
        history = calc.calculate([], {}, None, date(2024, 1, 15), date(2024, 4, 10), "monthly")
        assert [p.date for p in history.data] == [
            date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 10),
        ]

    def test_single_day_range(self, calc):
        history = calc.calculate([], {}, None, date(2025, 5, 5), date(2025, 5, 5), "monthly")
        assert [p.date for p in history.data] == [date(2025, 5, 5)]

    def test_invalid_interval(self, calc):
        with pytest.raises(InvalidIntervalError):
            calc.calculate([], {}, None, date(2025, 1, 1), date(2025, 1, 2), "hourly")

    def test_start_after_end(self, calc):
        with pytest.raises(ValidationError):
            calc.calculate([], {}, None, date(2025, 1, 2), date(2025, 1, 1), "daily")


# =============================================================================
# REPLAY
# =============================================================================

class TestReplay:
    """Tests for quantity replay and valuation per date."""

    def test_buy_counts_from_its_own_day(self, calc):
        transactions = [txn("A", date(2025, 1, 2), quantity="10")]
        prices = {"A": series((date(2025, 1, 1), "5"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 3))

        assert [p.total for p in history.data] == [Decimal("0"), Decimal("50"), Decimal("50")]

    def test_sell_reduces_quantity(self, calc):
        transactions = [
            txn("A", date(2025, 1, 1), quantity="10"),
            txn("A", date(2025, 1, 2), TransactionType.SELL, quantity="4"),
        ]
        prices = {"A": series((date(2025, 1, 1), "2"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 2))

        assert [p.total for p in history.data] == [Decimal("20"), Decimal("12")]

    def test_transactions_before_range_apply(self, calc):
        transactions = [txn("A", date(2024, 6, 1), quantity="3")]
        prices = {"A": series((date(2024, 12, 31), "7"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].total == Decimal("21")

    def test_unsorted_transactions(self, calc):
        transactions = [
            txn("A", date(2025, 1, 3), TransactionType.SELL, quantity="5"),
            txn("A", date(2025, 1, 1), quantity="10"),
        ]
        prices = {"A": series((date(2025, 1, 1), "1"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 3))

        assert [p.total for p in history.data] == [Decimal("10"), Decimal("10"), Decimal("5")]

    def test_reinvested_dividend_adds_floored_shares(self, calc):
        transactions = [
            txn("A", date(2025, 1, 1), quantity="10"),
            txn("A", date(2025, 1, 2), TransactionType.DIVIDEND, quantity="0", price="3", total="10", reinvested=True),
            txn("A", date(2025, 1, 2), TransactionType.DIVIDEND, quantity="0", price="0", total="10"),
        ]
        prices = {"A": series((date(2025, 1, 1), "1"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 2))

        assert history.data[-1].total == Decimal("13")

    def test_recorded_quantities_replayed_as_is(self, calc):
        transactions = [
            txn("A", date(2025, 1, 1), quantity="10.7", price="10", total="107"),
            txn("A", date(2025, 1, 2), TransactionType.SELL, quantity="0.5", price="10", total="5"),
        ]
        prices = {"A": series((date(2025, 1, 1), "10"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 2))

        assert [p.total for p in history.data] == [Decimal("107.0"), Decimal("102.0")]

    def test_metal_quantities_fractional(self, calc):
        transactions = [txn("GC=F", date(2025, 1, 1), quantity="0.5", category=AssetCategory.PRECIOUS_METAL)]
        prices = {"GC=F": series((date(2025, 1, 1), "2000"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].per_category[AssetCategory.PRECIOUS_METAL] == Decimal("1000.0")

    def test_weekend_uses_last_close(self, calc):
        # Friday close, no weekend data
        transactions = [txn("A", date(2025, 1, 1), quantity="1")]
        prices = {"A": series((date(2025, 1, 3), "10"), (date(2025, 1, 6), "11"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 3), date(2025, 1, 6))

        assert [p.total for p in history.data] == [
            Decimal("10"), Decimal("10"), Decimal("10"), Decimal("11"),
        ]

    def test_no_prior_price_values_zero_without_missing(self, calc):
        transactions = [txn("A", date(2025, 1, 1), quantity="1")]
        prices = {"A": series((date(2025, 1, 5), "10"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 5))

        assert history.data[0].total == Decimal("0")
        assert history.data[-1].total == Decimal("10")
        assert history.missing_symbols == []

    def test_missing_series_reported(self, calc):
        transactions = [
            txn("A", date(2025, 1, 1), quantity="1"),
            txn("B", date(2025, 1, 1), quantity="1"),
        ]
        prices = {"A": series((date(2025, 1, 1), "10")), "B": TimeSeries()}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].total == Decimal("10")
        assert history.missing_symbols == ["B"]
        assert any("B" in w for w in history.warnings)

    def test_closed_position_not_missing(self, calc):
        transactions = [
            txn("A", date(2025, 1, 1), quantity="1"),
            txn("A", date(2025, 1, 2), TransactionType.SELL, quantity="1"),
        ]

        history = calc.calculate(transactions, {}, None, date(2025, 1, 5), date(2025, 1, 5))

        assert history.missing_symbols == []
        assert history.data[0].total == Decimal("0")

    def test_every_category_present_per_point(self, calc):
        history = calc.calculate([], {}, None, date(2025, 1, 1), date(2025, 1, 1))
        assert set(history.data[0].per_category) == set(AssetCategory)

    def test_replaying_twice_gives_identical_history(self, calc):
        transactions = [
            txn("AAPL", date(2025, 1, 2), TransactionType.SELL, quantity="1", category=AssetCategory.FOREIGN_EQUITY, hour=15),
            txn("A", date(2025, 1, 2), TransactionType.DIVIDEND, quantity="0", price="4", total="9", reinvested=True),
            txn("AAPL", date(2025, 1, 2), quantity="3", category=AssetCategory.FOREIGN_EQUITY, hour=9),
            txn("A", date(2025, 1, 1), quantity="5"),
            txn("NOPRICE", date(2025, 1, 1), quantity="2"),
        ]
        prices = {
            "A": series((date(2025, 1, 1), "10"), (date(2025, 1, 3), "12")),
            "AAPL": series((date(2025, 1, 2), "100")),
        }
        fx = series((date(2025, 1, 1), "35"), (date(2025, 1, 3), "36"))

        first = calc.calculate(transactions, prices, fx, date(2025, 1, 1), date(2025, 1, 4))
        second = calc.calculate(transactions, prices, fx, date(2025, 1, 1), date(2025, 1, 4))

        assert first.data == second.data
        assert first.warnings == second.warnings
        assert first.missing_symbols == second.missing_symbols == ["NOPRICE"]


# =============================================================================
# FX
# =============================================================================

class TestFx:
    """Tests for FX conversion of foreign holdings."""

    def test_foreign_converted_with_fx_on_date(self, calc):
        transactions = [txn("AAPL", date(2025, 1, 1), quantity="2", category=AssetCategory.FOREIGN_EQUITY)]
        prices = {"AAPL": series((date(2025, 1, 1), "100"))}
        fx = series((date(2025, 1, 1), "35"), (date(2025, 1, 2), "36"))

        history = calc.calculate(transactions, prices, fx, date(2025, 1, 1), date(2025, 1, 2))

        assert [p.total for p in history.data] == [Decimal("7000"), Decimal("7200")]
        assert history.fx_rate_is_fallback is False

    def test_fx_prior_date_fallback(self, calc):
        transactions = [txn("AAPL", date(2025, 1, 1), quantity="1", category=AssetCategory.FOREIGN_EQUITY)]
        prices = {"AAPL": series((date(2025, 1, 1), "100"))}
        fx = series((date(2024, 12, 31), "34"))

        history = calc.calculate(transactions, prices, fx, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].total == Decimal("3400")
        assert history.fx_rate_is_fallback is False

    def test_no_fx_data_uses_fallback(self, calc):
        transactions = [txn("AAPL", date(2025, 1, 1), quantity="1", category=AssetCategory.FOREIGN_EQUITY)]
        prices = {"AAPL": series((date(2025, 1, 1), "100"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].total == Decimal("3000")
        assert history.fx_rate_is_fallback is True
        assert any("fallback" in w for w in history.warnings)

    def test_local_holdings_never_touch_fx(self, calc):
        transactions = [txn("A", date(2025, 1, 1), quantity="1")]
        prices = {"A": series((date(2025, 1, 1), "100"))}

        history = calc.calculate(transactions, prices, None, date(2025, 1, 1), date(2025, 1, 1))

        assert history.data[0].total == Decimal("100")
        assert history.fx_rate_is_fallback is False


# =============================================================================
# TIME RANGES
# =============================================================================

class TestResolveTimeRange:
    """Tests for chart presets."""

    @pytest.mark.parametrize("time_range,expected_start,granularity", [
        ("1D", date(2025, 3, 30), "daily"),
        ("1W", date(2025, 3, 24), "daily"),
        ("1M", date(2025, 2, 28), "daily"),
        ("1Y", date(2024, 3, 31), "daily"),
        ("3Y", date(2022, 3, 31), "weekly"),
        ("5Y", date(2020, 3, 31), "monthly"),
    ])
    def test_presets(self, time_range, expected_start, granularity):
        start, end, resolved = resolve_time_range(time_range, today=date(2025, 3, 31))

        assert start == expected_start
        assert end == date(2025, 3, 31)
        assert resolved == granularity

    def test_case_insensitive(self):
        assert resolve_time_range("1y", today=date(2025, 1, 1))[0] == date(2024, 1, 1)

    def test_unknown_preset(self):
        with pytest.raises(InvalidIntervalError) as exc_info:
            resolve_time_range("2W", today=date(2025, 1, 1))
        assert exc_info.value.field == "time_range"
