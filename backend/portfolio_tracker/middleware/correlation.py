# backend/portfolio_tracker/middleware/correlation.py
"""
Binds a correlation ID to each request.

The ID comes from X-Correlation-ID, then X-Request-ID, and is generated
(UUID4) when neither header is sent. It is visible to logging for the
duration of the request and returned in the X-Correlation-ID header.
"""

import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_tracker.utils.context import set_correlation_id, clear_correlation_id, set_user_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def _incoming_id(request: Request) -> str:
    for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
        value = request.headers.get(header)
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = _incoming_id(request)
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            # Request context must not leak into the next request on this worker
            clear_correlation_id()
            set_user_id(None)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
