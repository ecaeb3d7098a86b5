# backend/portfolio_tracker/middleware/__init__.py
"""
Middleware components for the Portfolio Tracker.

Usage:
    from portfolio_tracker.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from portfolio_tracker.middleware.correlation import CorrelationIdMiddleware

__all__ = [
    "CorrelationIdMiddleware",
]
