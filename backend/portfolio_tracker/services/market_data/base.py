# backend/portfolio_tracker/services/market_data/base.py
"""
Provider contract for prices, symbol search and close series.

Valuation and replay only talk to MarketDataService, which talks to a
MarketDataProvider; yfinance never leaks past the provider. Test doubles
subclass MarketDataProvider like the real one does.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

GRANULARITIES: tuple[str, ...] = ("daily", "weekly", "monthly")

_TRANSIENT_ERRORS = (ProviderUnavailableError, RateLimitError)


@dataclass(frozen=True)
class SymbolMatch:
    """A search hit, e.g. SymbolMatch("GC=F", "Gold", "CMX", "FUTURE")."""

    symbol: str
    name: str | None = None
    exchange: str | None = None
    quote_type: str | None = None


@dataclass(frozen=True)
class PricePoint:
    """Close price for the period starting at `date`."""

    date: date
    close: Decimal

    def __post_init__(self) -> None:
        if self.close <= 0:
            raise ValueError(f"close price must be positive, got {self.close}")


@dataclass
class BatchQuoteResult:
    """Prices that came back, and the error for each symbol that did not."""

    successful: dict[str, Decimal] = field(default_factory=dict)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def all_successful(self) -> bool:
        return not self.failed


@dataclass
class HistoricalPricesResult:
    symbol: str
    granularity: str
    prices: list[PricePoint] = field(default_factory=list)  # ascending by date
    from_date: date | None = None
    to_date: date | None = None

    @property
    def points_fetched(self) -> int:
        return len(self.prices)


class MarketDataProvider(ABC):
    """
    Base class for a market data source.

    Implementations raise TickerNotFoundError for symbols the source does
    not know, and ProviderUnavailableError or RateLimitError for transient
    trouble. Only the transient two are retried by _execute_with_retry,
    tuned through the RETRY_* class attributes.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name for logs and error details."""

    @abstractmethod
    def get_quote(self, symbol: str) -> Decimal:
        """Latest price of `symbol` in its trading currency."""

    @abstractmethod
    def search(self, query: str) -> list[SymbolMatch]:
        """Symbols matching free text; hits without a symbol are left out."""

    @abstractmethod
    def get_historical_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            granularity: str = "daily",
    ) -> HistoricalPricesResult:
        """Closes from start_date through end_date, one per `granularity` period."""

    def get_quotes(self, symbols: list[str]) -> BatchQuoteResult:
        """
        Prices for several symbols, one get_quote() call each.

        A failing symbol lands in `failed` and does not affect the others.
        Providers with a native batch endpoint override this.
        """
        result = BatchQuoteResult()
        for symbol in symbols:
            try:
                result.successful[symbol] = self.get_quote(symbol)
            except Exception as e:
                logger.warning(f"Quote for {symbol} failed: {e}")
                result.failed[symbol] = e
        return result

    def _execute_with_retry(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call func, retrying transient provider errors with exponential backoff."""
        retrying = retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(func)(*args, **kwargs)
