# backend/portfolio_tracker/services/valuation/history_calculator.py
"""
Historical replay engine.

Reconstructs the portfolio's market value over a date range from:
1. The full transaction log (quantities only, no cost basis)
2. A close-price TimeSeries per symbol
3. An FX TimeSeries (local units per foreign unit)

Rolling State:
    Transactions are sorted once and consumed while walking the dates, so
    each transaction is applied exactly once: O(D + T) instead of
    re-filtering the log for every date.

Lookup Rules:
    - A transaction counts for day D when its date part is <= D (the whole
      day is included)
    - BUY and SELL move the quantity exactly as recorded; reinvested
      dividends add floor(total / price) shares
    - Price on D: exact match, else the latest earlier close, else 0
    - FX on D: same rule, else settings.fallback_fx_rate

Design Principles:
- Pure: no database, no network; the service fetches the series
- Deterministic: same inputs, same output
- Missing data degrades to 0 (prices) or the fallback rate (FX) and is
  reported on the result, never raised
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetCategory, TransactionType
from portfolio_tracker.services.constants import TIME_RANGES, VALID_INTERVALS
from portfolio_tracker.services.exceptions import InvalidIntervalError, ValidationError
from portfolio_tracker.services.ledger.types import TransactionRecord
from portfolio_tracker.services.valuation.types import (
    HistoryPoint,
    PortfolioHistory,
    TimeSeries,
)
from portfolio_tracker.utils.date_utils import to_date, subtract_months, subtract_years
from portfolio_tracker.utils.money import ZERO, floor_shares

logger = logging.getLogger(__name__)


def resolve_time_range(time_range: str, today: date) -> tuple[date, date, str]:
    """
    Translate a chart preset (1D, 1W, 1M, 1Y, 3Y, 5Y) into dates.

    Returns:
        (start_date, end_date, provider granularity)

    Raises:
        InvalidIntervalError: Unknown preset
    """
    preset = TIME_RANGES.get(time_range.upper())
    if preset is None:
        raise InvalidIntervalError(time_range, tuple(TIME_RANGES), field="time_range")

    unit, amount, granularity = preset
    if unit == "days":
        start = today - timedelta(days=amount)
    elif unit == "months":
        start = subtract_months(today, amount)
    else:
        start = subtract_years(today, amount)
    return start, today, granularity


class HistoryCalculator:
    """
    Replays a transaction log against price series.

    Attributes:
        _fallback_fx_rate: FX rate used when the FX series has no value
    """

    def __init__(self, fallback_fx_rate: Decimal | None = None) -> None:
        self._fallback_fx_rate = fallback_fx_rate or settings.fallback_fx_rate

    def calculate(
            self,
            transactions: Iterable[TransactionRecord],
            price_history: Mapping[str, TimeSeries],
            fx_history: TimeSeries | None,
            start_date: date,
            end_date: date,
            interval: str = "daily",
    ) -> PortfolioHistory:
        """
        Value the portfolio on every date of the range.

        Args:
            transactions: Full ledger (any order)
            price_history: symbol -> close series (native currency)
            fx_history: local units per foreign unit, or None
            start_date: First date (inclusive)
            end_date: Last date (inclusive)
            interval: "daily" (every calendar day), "weekly" (Fridays and
                the end date) or "monthly" (month ends and the end date)

        Returns:
            PortfolioHistory with points in ascending date order

        Raises:
            InvalidIntervalError: Unknown interval
            ValidationError: start_date after end_date
        """
        if interval not in VALID_INTERVALS:
            raise InvalidIntervalError(interval, VALID_INTERVALS)
        if start_date > end_date:
            raise ValidationError(
                f"start_date ({start_date}) must not be after end_date ({end_date})",
                field="start_date",
            )

        # sorted() is stable, so same-day transactions keep ledger order
        ordered = sorted(transactions, key=lambda txn: to_date(txn.date))
        target_dates = self._generate_dates(start_date, end_date, interval)

        history = PortfolioHistory(start_date=start_date, end_date=end_date, interval=interval)
        missing: set[str] = set()
        fx_used_fallback = False

        quantities: dict[str, Decimal] = {}
        categories: dict[str, AssetCategory] = {}
        txn_index = 0
        num_txns = len(ordered)

        for target_date in target_dates:
            # === PHASE 1: Apply all transactions up to and including target_date ===
            while txn_index < num_txns:
                txn = ordered[txn_index]
                if to_date(txn.date) > target_date:
                    break
                self._apply(quantities, categories, txn)
                txn_index += 1

            # === PHASE 2: Snapshot ===
            per_category = {category: ZERO for category in AssetCategory}
            fx_rate = None

            for symbol, quantity in quantities.items():
                if quantity <= 0:
                    continue

                series = price_history.get(symbol)
                if not series:
                    missing.add(symbol)
                    continue

                price = series.value_at(target_date)
                if price is None:
                    continue

                category = categories[symbol]
                value = quantity * price
                if category.is_foreign:
                    if fx_rate is None:
                        fx_rate, is_fallback = self._lookup_fx(fx_history, target_date)
                        fx_used_fallback = fx_used_fallback or is_fallback
                    value *= fx_rate
                per_category[category] += value

            history.data.append(HistoryPoint(
                date=target_date,
                total=sum(per_category.values(), ZERO),
                per_category=per_category,
            ))

        history.missing_symbols = sorted(missing)
        history.fx_rate_is_fallback = fx_used_fallback
        if missing:
            history.warnings.append(
                f"No historical prices for {', '.join(history.missing_symbols)}; valued at 0"
            )
        if fx_used_fallback:
            history.warnings.append(
                f"FX history incomplete; used fallback rate {self._fallback_fx_rate}"
            )

        logger.debug(
            f"Replayed {num_txns} transactions over {len(target_dates)} dates "
            f"({start_date} to {end_date}, {interval})"
        )
        return history

    # =========================================================================
    # STATE UPDATE
    # =========================================================================

    def _apply(
            self,
            quantities: dict[str, Decimal],
            categories: dict[str, AssetCategory],
            txn: TransactionRecord,
    ) -> None:
        """Apply one transaction to the running per-symbol quantities."""
        categories.setdefault(txn.symbol, txn.category)
        current = quantities.get(txn.symbol, ZERO)

        if txn.transaction_type == TransactionType.BUY:
            quantities[txn.symbol] = current + txn.quantity
        elif txn.transaction_type == TransactionType.SELL:
            quantities[txn.symbol] = current - txn.quantity
        elif txn.transaction_type == TransactionType.DIVIDEND:
            if txn.is_dividend_reinvested and txn.price > 0:
                quantities[txn.symbol] = current + floor_shares(txn.total / txn.price)

    def _lookup_fx(self, fx_history: TimeSeries | None, target_date: date) -> tuple[Decimal, bool]:
        """FX rate on a date with prior-date fallback; (rate, used_fallback)."""
        if fx_history:
            rate = fx_history.value_at(target_date)
            if rate is not None and rate > 0:
                return rate, False
        return self._fallback_fx_rate, True

    # =========================================================================
    # DATE GENERATION
    # =========================================================================

    def _generate_dates(self, start_date: date, end_date: date, interval: str) -> list[date]:
        if interval == "daily":
            return self._generate_daily(start_date, end_date)
        if interval == "weekly":
            return self._generate_weekly(start_date, end_date)
        return self._generate_monthly(start_date, end_date)

    def _generate_daily(self, start: date, end: date) -> list[date]:
        """Every calendar day."""
        return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]

    def _generate_weekly(self, start: date, end: date) -> list[date]:
        """Each Friday in the range, plus the end date."""
        dates = []
        current = start + timedelta(days=(4 - start.weekday()) % 7)
        while current <= end:
            dates.append(current)
            current += timedelta(days=7)

        if not dates or dates[-1] != end:
            dates.append(end)
        return dates

    def _generate_monthly(self, start: date, end: date) -> list[date]:
        """Last calendar day of each month in the range, plus the end date."""
        dates = []
        year, month = start.year, start.month

        while True:
            month_end = date(year, month, calendar.monthrange(year, month)[1])
            if month_end > end:
                break
            dates.append(month_end)
            if month == 12:
                year, month = year + 1, 1
            else:
                month += 1

        if not dates or dates[-1] != end:
            dates.append(end)
        return dates
