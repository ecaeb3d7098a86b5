# backend/portfolio_tracker/routers/income.py
"""
Income endpoints.

- GET    /users/{user_id}/incomes - Records, year desc then month asc
- POST   /users/{user_id}/incomes - Add a manual record
- DELETE /users/{user_id}/incomes/{income_id}
- GET    /users/{user_id}/incomes/matrix - Year x month matrix

Dividend income is created by DIVIDEND transactions, not here.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.database import get_db
from portfolio_tracker.dependencies import bind_user, get_income_service, get_market_data_service
from portfolio_tracker.schemas.income import (
    IncomeCreate,
    IncomeResponse,
    IncomeListResponse,
    IncomeMatrixCell,
    IncomeMatrixResponse,
)
from portfolio_tracker.services.constants import MIN_INCOME_YEAR, MAX_INCOME_YEAR
from portfolio_tracker.services.income import IncomeService
from portfolio_tracker.services.market_data import MarketDataService
from portfolio_tracker.utils.money import quantize_money

router = APIRouter(
    prefix="/users/{user_id}/incomes",
    tags=["Income"],
)


@router.get("", response_model=IncomeListResponse, summary="List income records")
def list_incomes(
        user_id: str = Depends(bind_user),
        year: int | None = Query(default=None, ge=MIN_INCOME_YEAR, le=MAX_INCOME_YEAR),
        db: Session = Depends(get_db),
        service: IncomeService = Depends(get_income_service),
) -> IncomeListResponse:
    incomes = service.list_incomes(db, user_id, year=year)
    return IncomeListResponse(items=[IncomeResponse.model_validate(entry) for entry in incomes])


@router.post(
    "",
    response_model=IncomeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an income record",
)
def create_income(
        payload: IncomeCreate,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: IncomeService = Depends(get_income_service),
) -> IncomeResponse:
    entry = service.add_income(
        db,
        user_id,
        year=payload.year,
        month=payload.month,
        amount=payload.amount,
        category=payload.category,
        description=payload.description,
        company=payload.company,
        amount_foreign_currency=payload.amount_foreign_currency,
    )
    return IncomeResponse.model_validate(entry)


@router.get("/matrix", response_model=IncomeMatrixResponse, summary="Income per year and month")
def get_income_matrix(
        user_id: str = Depends(bind_user),
        display_currency: str | None = Query(
            default=None,
            description="Local or foreign currency code (default: local)"
        ),
        start_year: int | None = Query(default=None, ge=MIN_INCOME_YEAR, le=MAX_INCOME_YEAR),
        end_year: int | None = Query(default=None, ge=MIN_INCOME_YEAR, le=MAX_INCOME_YEAR),
        db: Session = Depends(get_db),
        service: IncomeService = Depends(get_income_service),
        market_data: MarketDataService = Depends(get_market_data_service),
) -> IncomeMatrixResponse:
    """
    Income grouped by year and month (0 = January), with yearly and grand totals.

    The year range is widened to include every year that has data.
    In the foreign currency, `amount_foreign_currency` is used when
    recorded, otherwise the amount is converted at the current FX rate.
    """
    fx_rate, _ = market_data.get_fx_rate()
    matrix = service.get_income_matrix(
        db,
        user_id,
        display_currency=display_currency or settings.local_currency,
        fx_rate=fx_rate,
        start_year=start_year,
        end_year=end_year,
    )

    return IncomeMatrixResponse(
        display_currency=matrix.display_currency,
        fx_rate=matrix.fx_rate,
        years=matrix.years,
        cells={
            year: {
                month: IncomeMatrixCell(
                    total=quantize_money(cell.total),
                    entries=[IncomeResponse.model_validate(entry) for entry in cell.entries],
                )
                for month, cell in months.items()
            }
            for year, months in matrix.cells.items()
        },
        yearly_totals={year: quantize_money(total) for year, total in matrix.yearly_totals.items()},
        grand_total=quantize_money(matrix.grand_total),
    )


@router.delete(
    "/{income_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an income record",
)
def delete_income(
        income_id: int,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: IncomeService = Depends(get_income_service),
) -> None:
    service.delete_income(db, user_id, income_id)

    return None
