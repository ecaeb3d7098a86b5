# backend/tests/test_correlation_id.py
"""
Tests for correlation ID middleware and context management.
"""

from portfolio_tracker.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    get_user_id,
    set_correlation_id,
)


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        clear_correlation_id()

    def test_clear_correlation_id(self):
        set_correlation_id("test-correlation-456")
        clear_correlation_id()
        assert get_correlation_id() is None


class TestCorrelationIdMiddleware:
    """Tests for correlation ID middleware."""

    def test_generates_correlation_id_when_not_provided(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_uses_provided_correlation_id(self, client):
        response = client.get("/health/live", headers={"X-Correlation-ID": "my-id-123"})

        assert response.headers["X-Correlation-ID"] == "my-id-123"

    def test_falls_back_to_request_id(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-456"})

        assert response.headers["X-Correlation-ID"] == "req-456"

    def test_header_on_error_responses(self, client):
        response = client.get("/users/user-1/transactions", params={"cursor": "abc"})

        assert response.status_code == 400
        assert response.headers["X-Correlation-ID"]

    def test_context_cleared_after_request(self, client):
        client.get("/users/user-1/holdings", headers={"X-Correlation-ID": "done"})

        assert get_correlation_id() is None
        assert get_user_id() is None

    def test_different_requests_get_different_ids(self, client):
        first = client.get("/health/live").headers["X-Correlation-ID"]
        second = client.get("/health/live").headers["X-Correlation-ID"]

        assert first != second
