# backend/portfolio_tracker/services/market_data/yahoo.py
"""
MarketDataProvider backed by yfinance.

Holdings store Yahoo symbols directly: "THYAO.IS" (Borsa Istanbul),
"AAPL" (US), "GC=F" (gold futures), and the FX pair "TRY=X".
Yahoo quotes can lag the market by 15-20 minutes and throttles without
documented limits; throttling surfaces as RateLimitError and is retried
by the base class.
"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import yfinance as yf

from portfolio_tracker.services.exceptions import (
    InvalidIntervalError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
from portfolio_tracker.services.market_data.base import (
    GRANULARITIES,
    MarketDataProvider,
    BatchQuoteResult,
    HistoricalPricesResult,
    PricePoint,
    SymbolMatch,
)

logger = logging.getLogger(__name__)

_PRICE_PRECISION = Decimal("0.00000001")

# Price fields in preference order; indices and futures only have the first
_PRICE_KEYS = ("regularMarketPrice", "currentPrice")

_NOT_FOUND_MARKERS = ("not found", "no data", "delisted")
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests")


class YahooFinanceProvider(MarketDataProvider):
    """
    Usage:
        provider = YahooFinanceProvider()
        provider.get_quote("AAPL")
        provider.get_historical_prices("THYAO.IS", date(2024, 1, 1), date(2024, 12, 31), "weekly")
    """

    INTERVALS: dict[str, str] = {
        "daily": "1d",
        "weekly": "1wk",
        "monthly": "1mo",
    }

    MAX_BATCH_SIZE: int = 100
    MAX_SEARCH_RESULTS: int = 10

    def __init__(self, timeout: int = 10) -> None:
        self._timeout = timeout
        logger.info(f"Yahoo Finance provider ready (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTES
    # =========================================================================

    def get_quote(self, symbol: str) -> Decimal:
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> Decimal:
        symbol = symbol.strip().upper()
        logger.debug(f"Quote request for {symbol}")
        try:
            info = yf.Ticker(symbol).info
        except Exception as e:
            raise self._map_error(e, symbol) from e
        return self._price_from_info(info, symbol)

    def get_quotes(self, symbols: list[str]) -> BatchQuoteResult:
        """yf.Tickers in chunks of MAX_BATCH_SIZE; a bad symbol only fails itself."""
        result = BatchQuoteResult()
        unique = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))

        for start in range(0, len(unique), self.MAX_BATCH_SIZE):
            chunk = unique[start:start + self.MAX_BATCH_SIZE]
            try:
                batch = self._execute_with_retry(yf.Tickers, " ".join(chunk))
            except Exception as e:
                logger.error(f"Quote batch of {len(chunk)} symbols failed: {e}")
                result.failed.update({symbol: self._map_error(e, symbol) for symbol in chunk})
                continue

            for symbol in chunk:
                ticker = batch.tickers.get(symbol)
                try:
                    if ticker is None:
                        raise TickerNotFoundError(symbol=symbol, provider=self.name)
                    result.successful[symbol] = self._price_from_info(ticker.info, symbol)
                except Exception as e:
                    result.failed[symbol] = self._map_error(e, symbol)

        return result

    def _price_from_info(self, info: dict[str, Any] | None, symbol: str) -> Decimal:
        for key in _PRICE_KEYS:
            price = self._to_decimal((info or {}).get(key))
            if price is not None and price > 0:
                return price
        raise TickerNotFoundError(symbol=symbol, provider=self.name)

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, query: str) -> list[SymbolMatch]:
        return self._execute_with_retry(self._search, query)

    def _search(self, query: str) -> list[SymbolMatch]:
        query = query.strip()
        if not query:
            return []

        try:
            quotes = yf.Search(query, max_results=self.MAX_SEARCH_RESULTS).quotes
        except Exception as e:
            raise self._map_error(e, query) from e

        return [
            SymbolMatch(
                symbol=quote["symbol"],
                name=quote.get("longname") or quote.get("shortname"),
                exchange=quote.get("exchange"),
                quote_type=quote.get("quoteType"),
            )
            for quote in quotes or []
            if quote.get("symbol")
        ]

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_historical_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str = "daily",
    ) -> HistoricalPricesResult:
        if granularity not in self.INTERVALS:
            raise InvalidIntervalError(granularity, GRANULARITIES, field="granularity")
        return self._execute_with_retry(
            self._fetch_historical_prices, symbol, start_date, end_date, granularity
        )

    def _fetch_historical_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str,
    ) -> HistoricalPricesResult:
        symbol = symbol.strip().upper()
        result = HistoricalPricesResult(
            symbol=symbol,
            granularity=granularity,
            from_date=start_date,
            to_date=end_date,
        )

        try:
            # yfinance treats `end` as exclusive
            df = yf.Ticker(symbol).history(
                start=start_date.isoformat(),
                end=(end_date + timedelta(days=1)).isoformat(),
                interval=self.INTERVALS[granularity],
                auto_adjust=False,
            )
        except Exception as e:
            raise self._map_error(e, symbol) from e

        if df is None or df.empty:
            logger.warning(f"Yahoo returned no {granularity} closes for {symbol} ({start_date}..{end_date})")
            return result

        result.prices = self._dataframe_to_points(df)
        logger.debug(f"{symbol}: {result.points_fetched} {granularity} closes")
        return result

    def _dataframe_to_points(self, df) -> list[PricePoint]:
        """Rows of a history DataFrame as PricePoints, ascending; rows without a close are dropped."""
        points = []
        for index, row in df.iterrows():
            day = index.date() if hasattr(index, "date") else index
            close = self._to_decimal(row.get("Close"))
            if close is None or close <= 0:
                logger.warning(f"No close on {day}, row skipped")
                continue
            points.append(PricePoint(date=day, close=close))
        return sorted(points, key=lambda p: p.date)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _map_error(self, error: Exception, symbol: str) -> MarketDataError:
        if isinstance(error, MarketDataError):
            return error

        text = str(error).lower()
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return TickerNotFoundError(symbol=symbol, provider=self.name)
        if any(marker in text for marker in _RATE_LIMIT_MARKERS):
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance failure for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Decimal at 8 places, or None for missing and NaN values."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(_PRICE_PRECISION)
        except (TypeError, ValueError):
            return None
