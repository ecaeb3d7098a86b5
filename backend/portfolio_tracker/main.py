# backend/portfolio_tracker/main.py
"""
Portfolio Tracker API.

Wires together:
- Logging (configured before the app is created)
- The FastAPI app with CORS and correlation-ID middleware
- Exception handlers translating service errors into ErrorDetail bodies
- Routers for ledger, valuation, goals, income and market data
- Health endpoints

Status codes used by the handlers:
    400  ValidationError family, InsufficientQuantityError
    404  NotFoundError family, TickerNotFoundError
    409  ConcurrencyConflictError
    422  Request body/query failed schema validation
    503  Market data errors that reached the API
    500  Anything else
"""

import logging

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_tracker.config import settings
from portfolio_tracker.database import get_db, check_database_health
from portfolio_tracker.middleware import CorrelationIdMiddleware
from portfolio_tracker.routers import (
    transactions_router,
    valuation_router,
    goals_router,
    income_router,
    market_data_router,
)
from portfolio_tracker.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidIntervalError,
    DuplicateGoalError,
    InsufficientQuantityError,
    ConcurrencyConflictError,
    NotFoundError,
    MarketDataError,
    TickerNotFoundError,
    RateLimitError,
)
from portfolio_tracker.utils import setup_logging

logger = logging.getLogger(__name__)

setup_logging()

app = FastAPI(
    title=settings.app_name,
    description="Personal investment portfolio tracker API",
    version="0.1.0",
)

# Last added runs first: correlation IDs are bound before CORS handling
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
# Starlette dispatches on the most specific class in the exception's MRO,
# so e.g. InvalidIntervalError wins over its ValidationError base.

def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorDetail(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(InsufficientQuantityError)
async def insufficient_quantity_handler(
    request: Request, exc: InsufficientQuantityError
) -> JSONResponse:
    logger.warning(f"Insufficient quantity: {exc}")
    return _error_response(400, "InsufficientQuantityError", str(exc), {
        "symbol": exc.symbol,
        "requested": None if exc.requested is None else str(exc.requested),
        "available": None if exc.available is None else str(exc.available),
    })


@app.exception_handler(ConcurrencyConflictError)
async def concurrency_conflict_handler(
    request: Request, exc: ConcurrencyConflictError
) -> JSONResponse:
    """Optimistic-lock retries exhausted."""
    logger.error(f"Concurrency conflict: {exc}")
    return _error_response(
        409, "ConcurrencyConflictError", str(exc),
        {"resource": exc.resource, "attempts": exc.attempts},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.warning(f"Not found: {exc}")
    return _error_response(
        404, type(exc).__name__, str(exc),
        {"resource_type": exc.resource_type, "resource_id": exc.resource_id},
    )


@app.exception_handler(InvalidIntervalError)
async def invalid_interval_handler(
    request: Request, exc: InvalidIntervalError
) -> JSONResponse:
    """Unknown interval, granularity or time range preset."""
    logger.warning(f"Invalid {exc.field}: {exc.value}")
    return _error_response(
        400, "InvalidIntervalError", str(exc),
        {"field": exc.field, "value": exc.value},
    )


@app.exception_handler(DuplicateGoalError)
async def duplicate_goal_handler(request: Request, exc: DuplicateGoalError) -> JSONResponse:
    logger.warning(f"Duplicate goal for {exc.category}")
    return _error_response(400, "DuplicateGoalError", str(exc), {"category": exc.category})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Business-rule validation (schema validation is handled below with 422)."""
    logger.warning(f"Validation error: {exc}")
    details = {"field": exc.field} if exc.field else None
    return _error_response(400, "ValidationError", str(exc), details)


@app.exception_handler(TickerNotFoundError)
async def ticker_not_found_handler(request: Request, exc: TickerNotFoundError) -> JSONResponse:
    logger.warning(f"Unknown symbol {exc.symbol} at {exc.provider}")
    return _error_response(
        404, "TickerNotFoundError", str(exc),
        {"symbol": exc.symbol, "provider": exc.provider},
    )


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    logger.warning(f"Rate limited by {exc.provider}")
    return _error_response(
        503, "RateLimitError", str(exc),
        {"provider": exc.provider, "retry_after": exc.retry_after},
        headers={"Retry-After": str(exc.retry_after)} if exc.retry_after else None,
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    logger.error(f"Market data error: {exc}")
    details = {"provider": exc.provider} if exc.provider else None
    return _error_response(503, type(exc).__name__, str(exc), details)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.error(f"Service error: {exc}")
    return _error_response(500, "ServiceError", str(exc))


_HTTP_ERROR_NAMES = {
    400: "BadRequestError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
    409: "ConflictError",
    422: "ValidationError",
    500: "InternalServerError",
    503: "ServiceUnavailableError",
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and explicit HTTPExceptions, as ErrorDetail."""
    return _error_response(
        exc.status_code,
        _HTTP_ERROR_NAMES.get(exc.status_code, "HTTPError"),
        str(exc.detail) if exc.detail else "An error occurred",
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Schema violations, one entry per offending field ("body.quantity", ...)."""
    fields = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    body = ValidationErrorDetail(details=fields)
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "InternalServerError", "An unexpected error occurred")


# =============================================================================
# ROUTERS
# =============================================================================

for router in (
        transactions_router,  # /users/{id}/transactions, /holdings, /investments/matrix
        valuation_router,  # /users/{id}/valuation, /valuation/history
        goals_router,  # /users/{id}/goals
        income_router,  # /users/{id}/incomes
        market_data_router,  # /market/search, /market/quotes
):
    app.include_router(router)


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    return {"name": settings.app_name, "docs": "/docs"}


@app.get("/health", tags=["Health"])
def health_check():
    """
    Database connectivity and environment.

    Market data is not probed: provider outages degrade
    responses (fallback prices and FX) instead of failing them.

    503 when the database is unreachable.
    """
    database = check_database_health()
    body = {
        "status": database["status"],
        "environment": settings.environment,
        "checks": {"database": database},
    }
    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=body)
    return body


@app.get("/health/live", tags=["Health"])
def liveness_check():
    """Process is up; no dependencies checked."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
def readiness_check(db: Session = Depends(get_db)):
    """Ready once a session can run a trivial query."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "Database unavailable"},
        )
    return {"status": "ready"}
