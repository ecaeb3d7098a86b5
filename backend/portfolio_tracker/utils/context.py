# backend/portfolio_tracker/utils/context.py
"""
Request context management for the Portfolio Tracker.

Request-scoped values stored in contextvars so they propagate through
async/await calls and FastAPI's threadpool:
- Correlation ID for request tracing
- User ID of the ledger being read or written

Usage:
    from portfolio_tracker.utils.context import get_correlation_id, set_correlation_id

    # In middleware
    set_correlation_id("abc-123")

    # In any service/handler
    correlation_id = get_correlation_id()  # Returns "abc-123"
"""

from contextvars import ContextVar

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """
    Get the current request's correlation ID.

    Returns:
        The correlation ID for the current request, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request.

    This should be called by middleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """
    Clear the correlation ID.

    This should be called by middleware at the end of each request.
    """
    _correlation_id_var.set(None)


# =============================================================================
# USER ID
# =============================================================================

def get_user_id() -> str | None:
    """Get the user whose ledger the current request operates on."""
    return _user_id_var.get()


def set_user_id(user_id: str | None) -> None:
    """Bind the user ID for log records of the current request."""
    _user_id_var.set(user_id)
