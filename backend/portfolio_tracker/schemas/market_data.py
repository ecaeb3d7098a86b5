# backend/portfolio_tracker/schemas/market_data.py
"""
Pydantic schemas for market data lookups (symbol search and quotes).
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class SymbolMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str | None = None
    exchange: str | None = None
    quote_type: str | None = None


class SymbolSearchResponse(BaseModel):
    query: str
    results: list[SymbolMatchResponse]


class QuotesResponse(BaseModel):
    """
    Current prices for the requested symbols.

    Symbols without a price (provider failure and nothing cached) are
    listed in `missing` instead of failing the request.
    """

    quotes: dict[str, Decimal]
    missing: list[str] = Field(default_factory=list)
    provider: str
