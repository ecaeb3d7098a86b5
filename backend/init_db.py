#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script for the Portfolio Tracker.

Creates the transactions, holdings, income_records and goals tables if
they do not exist. Existing tables are left untouched.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'portfolio_tracker' is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from portfolio_tracker.database import engine
from portfolio_tracker.models import Base


def init_db() -> None:
    """Create all tables defined in portfolio_tracker.models."""
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}...")
    Base.metadata.create_all(bind=engine)
    print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    init_db()
