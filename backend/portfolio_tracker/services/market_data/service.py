# backend/portfolio_tracker/services/market_data/service.py
"""
Market Data Service - cached, best-effort access to a provider.

Sits between the valuation code and a MarketDataProvider:
- Quotes are cached for settings.quote_cache_ttl_seconds (default 5 min)
- On provider failure the last cached value is served, even if expired
- Batch quotes skip symbols that fail and have no cached value
- The FX rate falls back to settings.fallback_fx_rate
- Search degrades to an empty result list

Every degradation is logged at WARNING; nothing is dropped silently.

Usage:
    service = MarketDataService(YahooFinanceProvider())
    prices = service.get_quotes(["AAPL", "THYAO.IS"])   # may be partial
    rate, is_fallback = service.get_fx_rate()
"""

import logging
import time
from datetime import date
from decimal import Decimal
from typing import Callable

from portfolio_tracker.config import settings
from portfolio_tracker.services.exceptions import MarketDataError, MarketDataUnavailableError
from portfolio_tracker.services.market_data.base import MarketDataProvider, PricePoint, SymbolMatch
from portfolio_tracker.services.market_data.cache import TTLCache

logger = logging.getLogger(__name__)


class MarketDataService:
    """
    Caching facade over a MarketDataProvider.

    Attributes:
        _provider: Underlying provider (retries transient errors itself)
        _quotes: symbol -> price
        _histories: (symbol, start, end, granularity) -> list[PricePoint]
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            cache_ttl_seconds: float | None = None,
            cache_max_size: int | None = None,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        ttl = settings.quote_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        maxsize = cache_max_size or settings.quote_cache_max_size
        self._provider = provider
        self._quotes = TTLCache(ttl, maxsize=maxsize, clock=clock)
        self._histories = TTLCache(ttl, maxsize=maxsize, clock=clock)

    @property
    def provider_name(self) -> str:
        return self._provider.name

    # =========================================================================
    # QUOTES
    # =========================================================================

    def get_quote(self, symbol: str) -> Decimal:
        """
        Current price of one symbol.

        Raises:
            MarketDataUnavailableError: Provider failed and nothing is cached
        """
        symbol = symbol.strip().upper()
        cached = self._quotes.get(symbol)
        if cached is not None:
            logger.debug(f"Quote cache hit for {symbol}")
            return cached

        try:
            price = self._provider.get_quote(symbol)
        except MarketDataError as e:
            return self._stale_quote_or_raise(symbol, e)

        self._quotes.set(symbol, price)
        return price

    def get_quotes(self, symbols: list[str]) -> dict[str, Decimal]:
        """
        Current prices for several symbols, best effort.

        Symbols that fail without a cached value are omitted; callers
        decide how to value them.
        """
        prices: dict[str, Decimal] = {}
        missing: list[str] = []

        for symbol in dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()):
            cached = self._quotes.get(symbol)
            if cached is not None:
                prices[symbol] = cached
            else:
                missing.append(symbol)

        if not missing:
            return prices

        try:
            batch = self._provider.get_quotes(missing)
            successful, failed = batch.successful, batch.failed
        except MarketDataError as e:
            logger.warning(f"Batch quote fetch failed: {e}")
            successful, failed = {}, {symbol: e for symbol in missing}

        for symbol, price in successful.items():
            self._quotes.set(symbol, price)
            prices[symbol] = price

        for symbol, error in failed.items():
            stale = self._quotes.get_stale(symbol)
            if stale is not None:
                logger.warning(f"Serving stale quote for {symbol}: {error}")
                prices[symbol] = stale
            else:
                logger.warning(f"No quote for {symbol}: {error}")

        return prices

    def get_fx_rate(self) -> tuple[Decimal, bool]:
        """
        Local currency units per foreign unit.

        Returns:
            (rate, is_fallback). is_fallback is True when the configured
            fallback rate was used because no quote was available.
        """
        try:
            return self.get_quote(settings.fx_symbol), False
        except MarketDataUnavailableError as e:
            logger.warning(
                f"Using fallback FX rate {settings.fallback_fx_rate}: {e}"
            )
            return settings.fallback_fx_rate, True

    def _stale_quote_or_raise(self, symbol: str, error: MarketDataError) -> Decimal:
        stale = self._quotes.get_stale(symbol)
        if stale is not None:
            logger.warning(f"Serving stale quote for {symbol}: {error}")
            return stale
        raise MarketDataUnavailableError(symbol, str(error), provider=self._provider.name) from error

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, query: str) -> list[SymbolMatch]:
        """Symbol search; an unavailable provider yields no matches."""
        try:
            return self._provider.search(query)
        except MarketDataError as e:
            logger.warning(f"Symbol search for '{query}' failed: {e}")
            return []

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_price_history(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str = "daily",
    ) -> list[PricePoint]:
        """
        Close series for a symbol, cached like quotes.

        Raises:
            MarketDataUnavailableError: Provider failed and nothing is cached
        """
        symbol = symbol.strip().upper()
        key = (symbol, start_date, end_date, granularity)

        cached = self._histories.get(key)
        if cached is not None:
            return cached

        try:
            result = self._provider.get_historical_prices(symbol, start_date, end_date, granularity)
        except MarketDataError as e:
            stale = self._histories.get_stale(key)
            if stale is not None:
                logger.warning(f"Serving stale history for {symbol}: {e}")
                return stale
            raise MarketDataUnavailableError(symbol, str(e), provider=self._provider.name) from e

        self._histories.set(key, result.prices)
        return result.prices
