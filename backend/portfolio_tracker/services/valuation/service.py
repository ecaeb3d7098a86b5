# backend/portfolio_tracker/services/valuation/service.py
"""
Valuation Service - orchestrator for current and historical valuation.

Entry points:
- get_valuation(): Current holdings priced at live quotes
- get_history(): Replay of the ledger over a date range
- get_history_for_range(): Same, for a chart preset (1D ... 5Y)

Design Principles:
- Dependency Injection: quote source and ledger injected via constructor
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Market data failures degrade (cost-basis price, price 0, fallback FX)
  and are reported as warnings on the result

Usage:
    from portfolio_tracker.services.valuation import ValuationService

    service = ValuationService(market_data)
    valuation = service.get_valuation(db, "user-1")
    history = service.get_history(db, "user-1", date(2025, 1, 1), date(2025, 6, 30))
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.services.exceptions import MarketDataUnavailableError
from portfolio_tracker.services.ledger import LedgerService
from portfolio_tracker.services.valuation.calculators import valuate
from portfolio_tracker.services.valuation.history_calculator import (
    HistoryCalculator,
    resolve_time_range,
)
from portfolio_tracker.services.valuation.types import (
    PortfolioValuation,
    PortfolioHistory,
    TimeSeries,
)

if TYPE_CHECKING:
    from portfolio_tracker.services.protocols import QuoteSourceProtocol

logger = logging.getLogger(__name__)

# Minimum look-back so a coarse series has a point before the range starts
_GRANULARITY_LOOKBACK_DAYS = {
    "daily": 0,
    "weekly": 7,
    "monthly": 31,
}


class ValuationService:
    """
    Main service for portfolio valuation operations.

    Attributes:
        _market_data: Quotes, FX and price history (best effort)
        _ledger: Holdings and transaction reads
        _history_calc: Replay engine
    """

    def __init__(
            self,
            market_data: QuoteSourceProtocol,
            ledger: LedgerService | None = None,
            history_calculator: HistoryCalculator | None = None,
    ) -> None:
        self._market_data = market_data
        self._ledger = ledger or LedgerService()
        self._history_calc = history_calculator or HistoryCalculator()

    # =========================================================================
    # CURRENT VALUATION
    # =========================================================================

    def get_valuation(self, db: Session, user_id: str) -> PortfolioValuation:
        """Value the user's current holdings at live quotes."""
        holdings = self._ledger.list_holdings(db, user_id)
        quotes = self._market_data.get_quotes([h.symbol for h in holdings]) if holdings else {}
        fx_rate, fx_is_fallback = self._market_data.get_fx_rate()

        valuation = valuate(holdings, quotes, fx_rate)
        valuation.fx_rate_is_fallback = fx_is_fallback
        if fx_is_fallback:
            valuation.warnings.append(f"FX rate unavailable; used fallback rate {fx_rate}")

        logger.info(
            f"Valued {len(valuation.items)} holdings: "
            f"{valuation.summary.total_value} {valuation.summary.local_currency}"
        )
        return valuation

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_history(
            self,
            db: Session,
            user_id: str,
            start_date: date,
            end_date: date,
            interval: str = "daily",
            granularity: str = "daily",
    ) -> PortfolioHistory:
        """
        Replay the ledger over [start_date, end_date].

        Args:
            interval: Spacing of output points (daily, weekly, monthly)
            granularity: Spacing of the provider's price series

        Raises:
            InvalidIntervalError: Unknown interval
            ValidationError: start_date after end_date
        """
        transactions = self._ledger.get_transaction_history(db, user_id)

        symbols = sorted({txn.symbol for txn in transactions})
        has_foreign = any(txn.category.is_foreign for txn in transactions)

        lookback = max(settings.history_lookback_days, _GRANULARITY_LOOKBACK_DAYS.get(granularity, 0))
        fetch_start = start_date - timedelta(days=lookback)

        warnings: list[str] = []
        price_history: dict[str, TimeSeries] = {}
        for symbol in symbols:
            price_history[symbol] = self._fetch_series(symbol, fetch_start, end_date, granularity, warnings)

        fx_history = None
        if has_foreign:
            fx_history = self._fetch_series(settings.fx_symbol, fetch_start, end_date, granularity, warnings)

        history = self._history_calc.calculate(
            transactions=transactions,
            price_history=price_history,
            fx_history=fx_history,
            start_date=start_date,
            end_date=end_date,
            interval=interval,
        )
        history.warnings = warnings + history.warnings
        return history

    def get_history_for_range(
            self,
            db: Session,
            user_id: str,
            time_range: str,
            today: date | None = None,
    ) -> PortfolioHistory:
        """History for a chart preset, one point per day."""
        start_date, end_date, granularity = resolve_time_range(time_range, today or date.today())
        return self.get_history(
            db,
            user_id,
            start_date=start_date,
            end_date=end_date,
            interval="daily",
            granularity=granularity,
        )

    def _fetch_series(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str,
            warnings: list[str],
    ) -> TimeSeries:
        """Fetch a close series; an unavailable series becomes empty."""
        try:
            points = self._market_data.get_price_history(symbol, start_date, end_date, granularity)
        except MarketDataUnavailableError as e:
            logger.warning(f"Price history unavailable for {symbol}: {e}")
            warnings.append(f"Price history unavailable for {symbol}")
            return TimeSeries()
        return TimeSeries.from_price_points(points)
