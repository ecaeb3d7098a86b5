# backend/portfolio_tracker/routers/market_data.py
"""
Market data lookups for the transaction form.

- GET /market/search?q= - Symbol search
- GET /market/quotes?symbols=A,B - Current prices (cached)
"""

from fastapi import APIRouter, Depends, Query

from portfolio_tracker.dependencies import get_market_data_service
from portfolio_tracker.schemas.market_data import (
    SymbolMatchResponse,
    SymbolSearchResponse,
    QuotesResponse,
)
from portfolio_tracker.services.market_data import MarketDataService

router = APIRouter(
    prefix="/market",
    tags=["Market Data"],
)

MAX_QUOTE_SYMBOLS = 50


@router.get("/search", response_model=SymbolSearchResponse, summary="Search symbols")
def search_symbols(
        q: str = Query(..., min_length=1, max_length=100, description="Free text (name or symbol)"),
        service: MarketDataService = Depends(get_market_data_service),
) -> SymbolSearchResponse:
    """Candidates without a symbol are dropped; a provider outage yields no results."""
    matches = service.search(q.strip())
    return SymbolSearchResponse(
        query=q,
        results=[SymbolMatchResponse.model_validate(m) for m in matches],
    )


@router.get("/quotes", response_model=QuotesResponse, summary="Current prices")
def get_quotes(
        symbols: str = Query(..., min_length=1, description="Comma-separated symbols"),
        service: MarketDataService = Depends(get_market_data_service),
) -> QuotesResponse:
    requested = list(dict.fromkeys(
        s.strip().upper() for s in symbols.split(",") if s.strip()
    ))[:MAX_QUOTE_SYMBOLS]

    quotes = service.get_quotes(requested) if requested else {}
    return QuotesResponse(
        quotes=quotes,
        missing=[s for s in requested if s not in quotes],
        provider=service.provider_name,
    )
