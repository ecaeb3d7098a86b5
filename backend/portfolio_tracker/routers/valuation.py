# backend/portfolio_tracker/routers/valuation.py
"""
Portfolio valuation endpoints.

- GET /users/{user_id}/valuation - Holdings valued at current quotes
- GET /users/{user_id}/valuation/history - Time series for charts

Market data problems never fail these endpoints: missing quotes fall
back to average cost, missing history to 0, missing FX to the configured
rate. Each fallback is reported in `warnings`.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.database import get_db
from portfolio_tracker.dependencies import bind_user, get_valuation_service
from portfolio_tracker.schemas.valuation import (
    ValuedItemResponse,
    CategorySummaryResponse,
    PortfolioSummaryResponse,
    PortfolioValuationResponse,
    HistoryPointResponse,
    PortfolioHistoryResponse,
)
from portfolio_tracker.services.constants import MAX_HISTORY_DAYS
from portfolio_tracker.services.exceptions import ValidationError
from portfolio_tracker.services.valuation import ValuationService
from portfolio_tracker.utils.money import quantize_money, quantize_percent, quantize_quantity

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/users/{user_id}",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_item(item) -> ValuedItemResponse:
    """Map internal ValuedItem to Pydantic schema."""
    return ValuedItemResponse(
        symbol=item.symbol,
        name=item.name,
        category=item.category,
        currency=item.currency,
        quantity=quantize_quantity(item.quantity),
        average_cost=quantize_money(item.average_cost),
        total_cost=quantize_money(item.total_cost),
        current_price=quantize_money(item.current_price),
        price_is_fallback=item.price_is_fallback,
        current_value=quantize_money(item.current_value),
        profit=quantize_money(item.profit),
        profit_percentage=quantize_percent(item.profit_percentage),
        total_dividends=quantize_money(item.total_dividends),
        cash_dividends=quantize_money(item.cash_dividends),
        reinvested_dividends=quantize_money(item.reinvested_dividends),
        current_value_local=quantize_money(item.current_value_local),
    )


def _map_category(summary) -> CategorySummaryResponse:
    """Map internal CategorySummary to Pydantic schema."""
    return CategorySummaryResponse(
        category=summary.category,
        currency=summary.currency,
        item_count=summary.item_count,
        total_value=quantize_money(summary.total_value),
        total_cost=quantize_money(summary.total_cost),
        total_profit=quantize_money(summary.total_profit),
        profit_percentage=quantize_percent(summary.profit_percentage),
        total_value_local=quantize_money(summary.total_value_local),
        total_cost_local=quantize_money(summary.total_cost_local),
        total_profit_local=quantize_money(summary.total_profit_local),
    )


def _map_history_point(point) -> HistoryPointResponse:
    """Map internal HistoryPoint to Pydantic schema."""
    return HistoryPointResponse(
        date=point.date,
        total=quantize_money(point.total),
        per_category={category: quantize_money(value) for category, value in point.per_category.items()},
    )


def _map_history(history) -> PortfolioHistoryResponse:
    return PortfolioHistoryResponse(
        start_date=history.start_date,
        end_date=history.end_date,
        interval=history.interval,
        currency=settings.local_currency,
        data=[_map_history_point(p) for p in history.data],
        missing_symbols=history.missing_symbols,
        fx_rate_is_fallback=history.fx_rate_is_fallback,
        warnings=history.warnings,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/valuation",
    response_model=PortfolioValuationResponse,
    summary="Get portfolio valuation",
    response_description="Holdings valued at current prices with category summaries",
)
def get_portfolio_valuation(
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioValuationResponse:
    """
    Value every holding at its current quote.

    Returns:
    - **items**: Per-holding value and profit in the holding's currency
    - **summary**: Category subtotals and local-currency totals
    - **allocation**: Share of each category in the total value (%)

    Foreign value and cost are converted at the current FX rate.
    """
    valuation = service.get_valuation(db, user_id)
    summary = valuation.summary

    return PortfolioValuationResponse(
        items=[_map_item(item) for item in valuation.items],
        summary=PortfolioSummaryResponse(
            local_currency=summary.local_currency,
            total_value=quantize_money(summary.total_value),
            total_cost=quantize_money(summary.total_cost),
            total_profit=quantize_money(summary.total_profit),
            profit_percentage=quantize_percent(summary.profit_percentage),
            categories=[_map_category(c) for c in summary.categories.values()],
        ),
        allocation={category: quantize_percent(share) for category, share in valuation.allocation.items()},
        fx_rate=summary.fx_rate,
        fx_rate_is_fallback=valuation.fx_rate_is_fallback,
        warnings=valuation.warnings,
    )


@router.get(
    "/valuation/history",
    response_model=PortfolioHistoryResponse,
    summary="Get portfolio valuation history",
    response_description="Time series of portfolio value",
)
def get_portfolio_valuation_history(
        user_id: str = Depends(bind_user),
        time_range: str | None = Query(
            default=None,
            description="Preset range: 1D, 1W, 1M, 1Y, 3Y, 5Y (overrides the dates)"
        ),
        start_date: date | None = Query(default=None, description="Start date for history"),
        end_date: date | None = Query(default=None, description="End date for history (default: today)"),
        interval: str = Query(
            default="daily",
            description="Data interval: daily, weekly, monthly"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHistoryResponse:
    """
    Portfolio value per date, split by asset category, in the local currency.

    **Intervals:**
    - `daily`: Every calendar day
    - `weekly`: Every Friday, plus the end date
    - `monthly`: Last day of each month, plus the end date

    **Presets:** 1D, 1W, 1M and 1Y use daily prices, 3Y weekly, 5Y monthly;
    all presets return one point per day.

    Raises **400** for an invalid range or interval.
    """
    if time_range is not None:
        history = service.get_history_for_range(db, user_id, time_range)
        return _map_history(history)

    if start_date is None:
        raise ValidationError("start_date or time_range is required", field="start_date")
    end_date = end_date or date.today()

    if start_date > end_date:
        raise ValidationError("start_date must be before or equal to end_date", field="start_date")

    date_range_days = (end_date - start_date).days
    if date_range_days > MAX_HISTORY_DAYS:
        raise ValidationError(
            f"Date range of {date_range_days} days exceeds maximum of {MAX_HISTORY_DAYS} days",
            field="start_date",
        )

    history = service.get_history(
        db,
        user_id,
        start_date=start_date,
        end_date=end_date,
        interval=interval,
    )
    return _map_history(history)
