# backend/portfolio_tracker/database.py
"""
SQLAlchemy engine, session factory and the `get_db` request dependency.

One session per request; ledger services commit once per reconciled
transaction and roll back on failure, so the session's transaction is
the unit of work for a ledger write.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from .config import settings

logger = logging.getLogger(__name__)

_POOL_TIMEOUT_SECONDS = 30


def _build_engine() -> Engine:
    if settings.is_sqlite:
        # A single shared connection keeps an in-memory database alive
        logger.info(f"Using SQLite at {settings.database_url}")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    pool_options = {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_pool_max_overflow,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_timeout": _POOL_TIMEOUT_SECONDS,
    }
    logger.info(f"Using PostgreSQL with pool options {pool_options}")
    return create_engine(
        settings.database_url,
        poolclass=QueuePool,
        echo=settings.debug,
        **pool_options,
    )


engine = _build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the request."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _pool_stats() -> dict | None:
    pool = engine.pool
    if not isinstance(pool, QueuePool):
        return None
    return {
        "pool_size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }


def check_database_health() -> dict:
    """
    Run a trivial query against the engine.

    Returns {"status": "healthy", "database": ..., "pool": ...} on success
    ("pool" only for PostgreSQL) or {"status": "unhealthy", "error": ...}.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}

    result = {
        "status": "healthy",
        "database": "sqlite" if settings.is_sqlite else "postgresql",
    }
    stats = _pool_stats()
    if stats is not None:
        result["pool"] = stats
    return result
