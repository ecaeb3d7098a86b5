# backend/portfolio_tracker/services/exceptions.py
"""
Errors raised by the service layer.

Nothing here knows about HTTP; main.py owns the mapping to status codes.

    ServiceError
    ├── ValidationError
    │   ├── InvalidIntervalError
    │   └── DuplicateGoalError
    ├── LedgerError
    │   ├── InsufficientQuantityError
    │   └── ConcurrencyConflictError
    ├── NotFoundError
    │   ├── GoalNotFoundError
    │   └── IncomeNotFoundError
    └── MarketDataError
        ├── ProviderUnavailableError      (retried)
        ├── RateLimitError                (retried)
        ├── TickerNotFoundError
        └── MarketDataUnavailableError
"""

from decimal import Decimal


class ServiceError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(ServiceError):
    """
    A business rule rejected the input before anything was stored:
    totals that disagree with quantity * price, an equity quantity that
    floors to zero shares, a blank category, an inverted year range.

    `field` names the offending input when there is one.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidIntervalError(ValidationError):
    """Unknown interval, granularity or time range preset."""

    def __init__(self, value: str, valid: tuple[str, ...], field: str = "interval") -> None:
        self.value = value
        super().__init__(f"Invalid {field} '{value}', expected one of: {', '.join(valid)}", field=field)


class DuplicateGoalError(ValidationError):
    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(f"A goal for category {category} already exists", field="category")


# =============================================================================
# LEDGER
# =============================================================================


class LedgerError(ServiceError):
    """A transaction could not be reconciled into the holdings."""


class InsufficientQuantityError(LedgerError):
    """
    SELL of more than is owned, or SELL/DIVIDEND of a symbol with no
    holding. `available` is None when the symbol is not held at all.
    """

    def __init__(
            self,
            symbol: str,
            requested: Decimal | None = None,
            available: Decimal | None = None,
            message: str | None = None,
    ) -> None:
        self.symbol = symbol
        self.requested = requested
        self.available = available
        if message is None:
            message = (
                f"Cannot sell {symbol}: asset is not owned" if available is None
                else f"Cannot sell {requested} of {symbol}: only {available} owned"
            )
        super().__init__(message)


class ConcurrencyConflictError(LedgerError):
    """
    Another writer changed the same holding between read and commit.

    Raised per attempt with `attempts` unset; the ledger service re-raises
    it with the attempt count once its retries run out.
    """

    def __init__(self, resource: str, attempts: int | None = None) -> None:
        self.resource = resource
        self.attempts = attempts
        suffix = f" (gave up after {attempts} attempts)" if attempts else ""
        super().__init__(f"Concurrent update of {resource}{suffix}")


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(ServiceError):
    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class GoalNotFoundError(NotFoundError):
    def __init__(self, goal_id: int) -> None:
        super().__init__(f"Goal {goal_id} not found", resource_type="Goal", resource_id=goal_id)


class IncomeNotFoundError(NotFoundError):
    def __init__(self, income_id: int) -> None:
        super().__init__(
            f"Income record {income_id} not found",
            resource_type="IncomeRecord",
            resource_id=income_id,
        )


# =============================================================================
# MARKET DATA
# =============================================================================


class MarketDataError(ServiceError):
    """Any failure to obtain prices, FX rates or search results."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """Network failure, timeout or server-side error at the provider."""

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Provider '{provider}' is unavailable: {reason}", provider=provider)


class TickerNotFoundError(MarketDataError):
    def __init__(self, symbol: str, provider: str) -> None:
        self.symbol = symbol
        super().__init__(f"Symbol '{symbol}' not found by {provider}", provider=provider)


class RateLimitError(MarketDataError):
    """The provider throttled us; `retry_after` is in seconds when known."""

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        suffix = f" (retry after {retry_after}s)" if retry_after else ""
        super().__init__(f"Rate limit exceeded for provider '{provider}'{suffix}", provider=provider)


class MarketDataUnavailableError(MarketDataError):
    """
    No live data and nothing cached to serve instead.

    Valuation falls back to cost basis and replay to a zero price rather
    than letting this reach the API.
    """

    def __init__(self, symbol: str, reason: str, provider: str | None = None) -> None:
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Market data for '{symbol}' unavailable: {reason}", provider=provider)


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidIntervalError",
    "DuplicateGoalError",
    "LedgerError",
    "InsufficientQuantityError",
    "ConcurrencyConflictError",
    "NotFoundError",
    "GoalNotFoundError",
    "IncomeNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "MarketDataUnavailableError",
]
