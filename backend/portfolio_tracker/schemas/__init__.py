# backend/portfolio_tracker/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- goals: Goal CRUD and progress overview
- income: Income records and the income matrix
- market_data: Symbol search and quotes
- pagination: Cursor pagination metadata
- transactions: Transactions, holdings and the investment matrix
- valuation: Current valuation and history

Usage:
    from portfolio_tracker.schemas import TransactionCreate, TransactionResultResponse
    from portfolio_tracker.schemas import PortfolioValuationResponse
    from portfolio_tracker.schemas import ErrorDetail
"""

from portfolio_tracker.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_tracker.schemas.goals import (
    GoalCreate,
    GoalUpdate,
    GoalResponse,
    GoalProgressResponse,
    GoalOverviewResponse,
)
from portfolio_tracker.schemas.income import (
    IncomeCreate,
    IncomeResponse,
    IncomeListResponse,
    IncomeMatrixCell,
    IncomeMatrixResponse,
)
from portfolio_tracker.schemas.market_data import (
    SymbolMatchResponse,
    SymbolSearchResponse,
    QuotesResponse,
)
from portfolio_tracker.schemas.pagination import CursorMeta
from portfolio_tracker.schemas.transactions import (
    TransactionCreate,
    TransactionResponse,
    HoldingResponse,
    HoldingListResponse,
    TransactionResultResponse,
    TransactionListResponse,
    InvestmentMatrixCell,
    InvestmentMatrixResponse,
)
from portfolio_tracker.schemas.valuation import (
    ValuedItemResponse,
    CategorySummaryResponse,
    PortfolioSummaryResponse,
    PortfolioValuationResponse,
    HistoryPointResponse,
    PortfolioHistoryResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Pagination
    "CursorMeta",
    # Transactions
    "TransactionCreate",
    "TransactionResponse",
    "HoldingResponse",
    "HoldingListResponse",
    "TransactionResultResponse",
    "TransactionListResponse",
    "InvestmentMatrixCell",
    "InvestmentMatrixResponse",
    # Valuation
    "ValuedItemResponse",
    "CategorySummaryResponse",
    "PortfolioSummaryResponse",
    "PortfolioValuationResponse",
    "HistoryPointResponse",
    "PortfolioHistoryResponse",
    # Goals
    "GoalCreate",
    "GoalUpdate",
    "GoalResponse",
    "GoalProgressResponse",
    "GoalOverviewResponse",
    # Income
    "IncomeCreate",
    "IncomeResponse",
    "IncomeListResponse",
    "IncomeMatrixCell",
    "IncomeMatrixResponse",
    # Market data
    "SymbolMatchResponse",
    "SymbolSearchResponse",
    "QuotesResponse",
]
