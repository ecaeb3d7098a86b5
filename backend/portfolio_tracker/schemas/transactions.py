# backend/portfolio_tracker/schemas/transactions.py
"""
Pydantic schemas for transactions and holdings.

These schemas define:
- What data clients must send (TransactionCreate)
- What data the API returns (TransactionResponse, HoldingResponse, ...)

Validation layers:
- Field constraints: types and sign checks
- Field validators: normalization (uppercase, trim, timezone)
- Service: business rules (totals, whole shares, ownership)

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.models import AssetCategory, TransactionType
from portfolio_tracker.schemas.income import IncomeResponse
from portfolio_tracker.schemas.pagination import CursorMeta


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class TransactionCreate(BaseModel):
    """
    Schema for recording a transaction.

    BUY/SELL: quantity and price are required; total defaults to
    quantity * price. DIVIDEND: total is the cash amount, price is the
    reinvestment price per share (0 when paid out as cash).
    """

    symbol: str = Field(
        ...,
        max_length=32,
        description="Ticker symbol (e.g., 'THYAO.IS', 'AAPL', 'GC=F')",
        examples=["AAPL", "THYAO.IS"]
    )

    name: str | None = Field(
        default=None,
        max_length=200,
        description="Display name for a new holding (defaults to the symbol)"
    )

    category: AssetCategory = Field(
        ...,
        description="Asset category",
        examples=[AssetCategory.FOREIGN_EQUITY]
    )

    transaction_type: TransactionType = Field(
        ...,
        description="Type of transaction",
        examples=[TransactionType.BUY, TransactionType.SELL, TransactionType.DIVIDEND]
    )

    quantity: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Units traded; equities are truncated to whole shares (ignored for DIVIDEND)",
        examples=["10", "2.5"]
    )

    price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Price per unit in the category's currency",
        examples=["150.50"]
    )

    total: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="quantity * price for BUY/SELL (computed when omitted); cash amount for DIVIDEND"
    )

    date: datetime | None = Field(
        default=None,
        description="When the transaction happened (defaults to now)",
        examples=["2025-01-15T14:30:00Z"]
    )

    is_dividend_reinvested: bool = Field(
        default=False,
        description="DIVIDEND only: buy whole shares at `price` with the dividend"
    )

    total_foreign_currency_value: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Total expressed in the foreign currency at trade time (optional)"
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization)
    # =========================================================================

    @field_validator('symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Normalize symbol: trim whitespace and uppercase."""
        return v.strip().upper()

    @field_validator('date')
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive datetimes are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class TransactionResponse(BaseModel):
    """A stored ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Unique identifier")
    symbol: str
    category: AssetCategory
    transaction_type: TransactionType
    quantity: Decimal = Field(..., description="Quantity as submitted (0 for DIVIDEND)")
    price: Decimal
    total: Decimal
    date: datetime
    is_dividend_reinvested: bool
    total_foreign_currency_value: Decimal | None = None
    created_at: datetime | None = Field(default=None, description="When the transaction was recorded")


class HoldingResponse(BaseModel):
    """Current position in one symbol."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str
    category: AssetCategory
    quantity: Decimal
    average_cost: Decimal = Field(..., description="total_cost / quantity")
    total_cost: Decimal
    total_dividends: Decimal = Field(..., description="cash_dividends + reinvested_dividends")
    cash_dividends: Decimal
    reinvested_dividends: Decimal
    updated_at: datetime | None = None


class TransactionResultResponse(BaseModel):
    """
    Outcome of recording a transaction.

    Attributes:
        transaction: The appended ledger entry
        holding: Resulting holding, None when a SELL closed it
        incomes: Income records generated (dividends)
    """

    transaction: TransactionResponse
    holding: HoldingResponse | None = None
    incomes: list[IncomeResponse] = Field(default_factory=list)


class TransactionListResponse(BaseModel):
    """
    Response schema for a page of transactions, newest first.

    Attributes:
        items: Transactions on this page
        pagination: Cursor metadata
    """

    items: list[TransactionResponse] = Field(..., description="Transactions for current page")
    pagination: CursorMeta = Field(..., description="Pagination metadata")


class HoldingListResponse(BaseModel):
    items: list[HoldingResponse]


# =============================================================================
# INVESTMENT MATRIX
# =============================================================================

class InvestmentMatrixCell(BaseModel):
    total: Decimal = Field(..., description="Converted BUY total for the month")
    entries: list[TransactionResponse]


class InvestmentMatrixResponse(BaseModel):
    """BUY amounts per year and month (0 = January) in `display_currency`."""

    display_currency: str
    fx_rate: Decimal
    years: list[int]
    cells: dict[int, dict[int, InvestmentMatrixCell]]
    yearly_totals: dict[int, Decimal]
    grand_total: Decimal
