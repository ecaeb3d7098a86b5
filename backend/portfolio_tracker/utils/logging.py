# backend/portfolio_tracker/utils/logging.py
"""
Root logger setup for the Portfolio Tracker.

LOG_LEVEL picks the threshold and LOG_FORMAT picks between a pipe-separated
text line and one JSON object per record. Every record carries the
correlation and user IDs of the request being served.

What goes where:
    DEBUG   - cache hits and misses, replay sizes
    INFO    - ledger events (transaction recorded, holding closed)
    WARNING - degradations (stale quote, fallback FX rate, retries)
    ERROR   - unexpected failures

Call setup_logging() once in main.py before the app is built.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_tracker.config import settings
from portfolio_tracker.utils.context import get_correlation_id, get_user_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(user_id)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"
NO_USER_ID = "-"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Chatty libraries capped at WARNING
_QUIET_LOGGERS = ("yfinance", "peewee", "urllib3", "httpx", "httpcore", "asyncio")

# Everything a bare LogRecord has, plus what the context filter adds
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "correlation_id", "user_id", "taskName",
}


class RequestContextFilter(logging.Filter):
    """Stamps correlation_id and user_id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        record.user_id = get_user_id() or NO_USER_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "...", "level": "INFO", "logger": "...",
         "correlation_id": "...", "user_id": "...", "message": "...",
         "exception": "...", "extra": {...}}

    "exception" and "extra" appear only when present. Extra values that
    json cannot encode (Decimal, date, enums) are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "user_id": getattr(record, "user_id", NO_USER_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            entry["extra"] = extra
        return json.dumps(entry)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _get_log_level(name: str) -> int:
    """Map a level name (any case, "warn" allowed) to its logging constant."""
    key = name.strip().upper()
    if key not in _LEVELS:
        raise ValueError(f"Unknown log level {name!r}; expected one of {', '.join(_LEVELS)}")
    return _LEVELS[key]


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Replace the root logger's handlers with a single stdout handler.

    Args:
        level: Level name, settings.log_level when omitted
        log_format: "text" or "json", settings.log_format when omitted
    """
    level_name = level or settings.log_level
    fmt = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(
        JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT, DATE_FORMAT)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_get_log_level(level_name))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging ready (level={level_name}, format={fmt})")


def get_logger(name: str) -> logging.Logger:
    """Named logger; context fields come from the handler installed by setup_logging()."""
    return logging.getLogger(name)
