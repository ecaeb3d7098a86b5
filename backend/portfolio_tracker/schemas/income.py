# backend/portfolio_tracker/schemas/income.py
"""
Pydantic schemas for income records and the year x month matrices.

Months are zero-based (0 = January) in requests and responses.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.services.constants import (
    MIN_INCOME_YEAR,
    MAX_INCOME_YEAR,
    MIN_MONTH,
    MAX_MONTH,
)


# =============================================================================
# RECORDS
# =============================================================================

class IncomeCreate(BaseModel):
    """Schema for adding a manual income record (local currency)."""

    year: int = Field(..., ge=MIN_INCOME_YEAR, le=MAX_INCOME_YEAR, examples=[2025])
    month: int = Field(..., ge=MIN_MONTH, le=MAX_MONTH, description="0 = January", examples=[0])
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Amount in the local currency"
    )
    amount_foreign_currency: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Same amount in the foreign currency, if known"
    )
    category: str = Field(..., min_length=1, max_length=100, examples=["Salary", "Rent"])
    description: str | None = Field(default=None, max_length=500)
    company: str | None = Field(default=None, max_length=200)

    @field_validator('category')
    @classmethod
    def strip_category(cls, v: str) -> str:
        return v.strip()


class IncomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    month: int
    amount: Decimal
    amount_foreign_currency: Decimal | None = None
    category: str
    description: str | None = None
    company: str | None = None


class IncomeListResponse(BaseModel):
    items: list[IncomeResponse]


# =============================================================================
# MATRICES
# =============================================================================

class IncomeMatrixCell(BaseModel):
    total: Decimal = Field(..., description="Converted total for the month")
    entries: list[IncomeResponse]


class IncomeMatrixResponse(BaseModel):
    """
    Income per year and month in `display_currency`.

    cells[year][month] exists for every displayed year and every month.
    """

    display_currency: str
    fx_rate: Decimal = Field(..., description="Local units per foreign unit used for conversion")
    years: list[int]
    cells: dict[int, dict[int, IncomeMatrixCell]]
    yearly_totals: dict[int, Decimal]
    grand_total: Decimal
