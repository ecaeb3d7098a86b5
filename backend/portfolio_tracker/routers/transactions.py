# backend/portfolio_tracker/routers/transactions.py
"""
Ledger endpoints: transactions, holdings and the investment matrix.

- POST /users/{user_id}/transactions - Record a BUY, SELL or DIVIDEND
- GET  /users/{user_id}/transactions - Newest first, cursor paginated
- GET  /users/{user_id}/holdings - Current holdings
- GET  /users/{user_id}/investments/matrix - BUY amounts per month

Transactions are append-only: there is no update or delete endpoint.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.database import get_db
from portfolio_tracker.dependencies import (
    bind_user,
    get_income_service,
    get_ledger_service,
    get_market_data_service,
)
from portfolio_tracker.models import AssetCategory
from portfolio_tracker.schemas.income import IncomeResponse
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
from portfolio_tracker.services.income import IncomeService
from portfolio_tracker.services.ledger import HoldingSnapshot, LedgerService, NewTransaction
from portfolio_tracker.services.market_data import MarketDataService
from portfolio_tracker.utils.money import quantize_money

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/users/{user_id}",
    tags=["Transactions"],
)

MAX_PAGE_SIZE = 100


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_holding(holding: HoldingSnapshot) -> HoldingResponse:
    return HoldingResponse(
        symbol=holding.symbol,
        name=holding.display_name,
        category=holding.category,
        quantity=holding.quantity,
        average_cost=holding.average_cost,
        total_cost=holding.total_cost,
        total_dividends=holding.total_dividends,
        cash_dividends=holding.cash_dividends,
        reinvested_dividends=holding.reinvested_dividends,
        updated_at=holding.updated_at,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/transactions",
    response_model=TransactionResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
)
def create_transaction(
        payload: TransactionCreate,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: LedgerService = Depends(get_ledger_service),
) -> TransactionResultResponse:
    """
    Record a BUY, SELL or DIVIDEND and update the holding atomically.

    - **BUY** creates or grows the holding (equities in whole shares)
    - **SELL** reduces it; selling everything closes it (`holding` is null)
    - **DIVIDEND** requires a holding and adds an income record; with
      `is_dividend_reinvested` it buys whole shares at `price`

    Raises **400** for invalid input or insufficient quantity and
    **409** if concurrent updates kept conflicting.
    """
    result = service.record_transaction(
        db,
        user_id,
        NewTransaction(
            symbol=payload.symbol,
            name=payload.name,
            category=payload.category,
            transaction_type=payload.transaction_type,
            quantity=payload.quantity,
            price=payload.price,
            total=payload.total,
            date=payload.date,
            is_dividend_reinvested=payload.is_dividend_reinvested,
            total_foreign_currency_value=payload.total_foreign_currency_value,
        ),
    )

    return TransactionResultResponse(
        transaction=TransactionResponse.model_validate(result.transaction_record),
        holding=_map_holding(result.new_holding) if result.new_holding is not None else None,
        incomes=[IncomeResponse.model_validate(entry) for entry in result.side_effects],
    )


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List transactions",
)
def list_transactions(
        user_id: str = Depends(bind_user),
        category: AssetCategory | None = Query(default=None, description="Only this asset category"),
        limit: int | None = Query(default=None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
        cursor: str | None = Query(default=None, description="next_cursor of the previous page"),
        db: Session = Depends(get_db),
        service: LedgerService = Depends(get_ledger_service),
) -> TransactionListResponse:
    """
    Transactions newest first (date, then id), one page at a time.

    Pass `pagination.next_cursor` as `cursor` to fetch the next page.
    Raises **400** for an unknown cursor.
    """
    page = service.list_transactions(db, user_id, limit=limit, cursor=cursor, category=category)
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(record) for record in page.items],
        pagination=CursorMeta.create(
            limit=limit or settings.transaction_page_size,
            next_cursor=page.next_cursor,
        ),
    )


@router.get(
    "/holdings",
    response_model=HoldingListResponse,
    tags=["Holdings"],
    summary="List current holdings",
)
def list_holdings(
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: LedgerService = Depends(get_ledger_service),
) -> HoldingListResponse:
    holdings = service.list_holdings(db, user_id)
    return HoldingListResponse(items=[_map_holding(h) for h in holdings])


@router.get(
    "/investments/matrix",
    response_model=InvestmentMatrixResponse,
    summary="BUY amounts per year and month",
)
def get_investment_matrix(
        user_id: str = Depends(bind_user),
        display_currency: str | None = Query(
            default=None,
            description="Local or foreign currency code (default: local)"
        ),
        db: Session = Depends(get_db),
        income_service: IncomeService = Depends(get_income_service),
        market_data: MarketDataService = Depends(get_market_data_service),
) -> InvestmentMatrixResponse:
    """
    Sum of BUY totals per month, converted at the current FX rate.

    Months are zero-based (0 = January). Years span at least 2025-2036.
    """
    fx_rate, _ = market_data.get_fx_rate()
    matrix = income_service.get_investment_matrix(
        db,
        user_id,
        display_currency=display_currency or settings.local_currency,
        fx_rate=fx_rate,
    )

    return InvestmentMatrixResponse(
        display_currency=matrix.display_currency,
        fx_rate=matrix.fx_rate,
        years=matrix.years,
        cells={
            year: {
                month: InvestmentMatrixCell(
                    total=quantize_money(cell.total),
                    entries=[TransactionResponse.model_validate(txn) for txn in cell.entries],
                )
                for month, cell in months.items()
            }
            for year, months in matrix.cells.items()
        },
        yearly_totals={year: quantize_money(total) for year, total in matrix.yearly_totals.items()},
        grand_total=quantize_money(matrix.grand_total),
    )
