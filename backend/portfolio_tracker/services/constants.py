# backend/portfolio_tracker/services/constants.py
"""
Centralized constants for the Portfolio Tracker services.

Values a deployment may want to tune live in config.Settings; the ones
here are part of the domain rules.

Usage:
    from portfolio_tracker.services.constants import DIVIDEND_INCOME_CATEGORY
"""

from decimal import Decimal


# =============================================================================
# INCOME
# =============================================================================

# Category of income records generated by DIVIDEND transactions
DIVIDEND_INCOME_CATEGORY: str = "Dividend"

# Accepted year range for income records
MIN_INCOME_YEAR: int = 2000
MAX_INCOME_YEAR: int = 2100

# Income months are zero-based (0 = January)
MIN_MONTH: int = 0
MAX_MONTH: int = 11


# =============================================================================
# HISTORY
# =============================================================================

VALID_INTERVALS: tuple[str, ...] = ("daily", "weekly", "monthly")

# Longest date range accepted by the history endpoint (10 years)
MAX_HISTORY_DAYS: int = 3660

# Preset ranges for the history chart: (start offset unit, amount, provider granularity)
TIME_RANGES: dict[str, tuple[str, int, str]] = {
    "1D": ("days", 1, "daily"),
    "1W": ("days", 7, "daily"),
    "1M": ("months", 1, "daily"),
    "1Y": ("years", 1, "daily"),
    "3Y": ("years", 3, "weekly"),
    "5Y": ("years", 5, "monthly"),
}


# =============================================================================
# GOALS
# =============================================================================

# Name/symbol fragments (lowercase) for goal categories without an asset category
EUROBOND_FRAGMENTS: tuple[str, ...] = ("eurobond",)
MONEY_MARKET_FRAGMENTS: tuple[str, ...] = ("money market", "para piyasası", "ppf")

# Progress percentages are capped here
MAX_PROGRESS_PERCENTAGE: Decimal = Decimal("100")
