# backend/tests/utils/test_logging.py
"""
Tests for logging setup and the request context filter.
"""

import json
import logging
from decimal import Decimal

import pytest

from portfolio_tracker.utils.context import (
    clear_correlation_id,
    set_correlation_id,
    set_user_id,
)
from portfolio_tracker.utils.logging import (
    JsonFormatter,
    RequestContextFilter,
    _get_log_level,
    get_logger,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="portfolio_tracker.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContextFilter:
    def test_defaults_without_context(self):
        clear_correlation_id()
        set_user_id(None)
        record = make_record()

        assert RequestContextFilter().filter(record) is True
        assert record.correlation_id == "no-correlation-id"

    def test_context_attached(self):
        set_correlation_id("abc-123")
        set_user_id("user-1")
        try:
            record = make_record()
            RequestContextFilter().filter(record)
        finally:
            clear_correlation_id()
            set_user_id(None)

        assert record.correlation_id == "abc-123"
        assert record.user_id == "user-1"


class TestJsonFormatter:
    def test_structure(self):
        record = make_record("Recorded BUY AAPL", correlation_id="c-1", user_id="user-1")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "portfolio_tracker.test"
        assert entry["correlation_id"] == "c-1"
        assert entry["user_id"] == "user-1"
        assert entry["message"] == "Recorded BUY AAPL"
        assert "extra" not in entry

    def test_non_json_extra_stringified(self):
        record = make_record(amount=Decimal("1.50"), symbol="AAPL")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"] == {"amount": "1.50", "symbol": "AAPL"}


class TestLogLevel:
    def test_known_levels(self):
        assert _get_log_level(" warn ") == logging.WARNING
        assert _get_log_level("debug") == logging.DEBUG

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            _get_log_level("LOUD")

    def test_get_logger(self):
        assert get_logger("portfolio_tracker.x").name == "portfolio_tracker.x"
