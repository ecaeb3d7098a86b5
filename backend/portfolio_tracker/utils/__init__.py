# backend/portfolio_tracker/utils/__init__.py
"""
Utility modules for the Portfolio Tracker.

Cross-cutting utilities used throughout the application:
- logging: Logging configuration with request context support
- context: Request context (correlation ID, user ID)
- money: Decimal helpers and the whole-share quantity policy
- date_utils: Month arithmetic and date normalization

Usage:
    from portfolio_tracker.utils import setup_logging, get_logger
    from portfolio_tracker.utils import get_correlation_id, set_correlation_id
    from portfolio_tracker.utils.money import to_decimal
"""

from portfolio_tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_user_id,
    set_user_id,
)
from portfolio_tracker.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_user_id",
    "set_user_id",
]
