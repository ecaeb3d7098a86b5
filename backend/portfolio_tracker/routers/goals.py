# backend/portfolio_tracker/routers/goals.py
"""
Goal endpoints.

- GET    /users/{user_id}/goals - Progress overview of all goals
- POST   /users/{user_id}/goals - Create a goal (one per category)
- PATCH  /users/{user_id}/goals/{goal_id} - Change the target
- DELETE /users/{user_id}/goals/{goal_id}
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portfolio_tracker.database import get_db
from portfolio_tracker.dependencies import bind_user, get_goal_service, get_valuation_service
from portfolio_tracker.schemas.goals import (
    GoalCreate,
    GoalUpdate,
    GoalResponse,
    GoalProgressResponse,
    GoalOverviewResponse,
)
from portfolio_tracker.services.goals import GoalService
from portfolio_tracker.services.valuation import ValuationService
from portfolio_tracker.utils.money import quantize_money, quantize_percent

router = APIRouter(
    prefix="/users/{user_id}/goals",
    tags=["Goals"],
)


@router.get("", response_model=GoalOverviewResponse, summary="Goal progress overview")
def get_goals_overview(
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        goal_service: GoalService = Depends(get_goal_service),
        valuation_service: ValuationService = Depends(get_valuation_service),
) -> GoalOverviewResponse:
    """
    Progress of every goal against the current valuation.

    Amounts are in the foreign currency; local-currency holdings are
    converted at the current FX rate. A holding can count toward more
    than one goal (e.g. an equity fund named "... Eurobond ...").
    """
    valuation = valuation_service.get_valuation(db, user_id)
    overview = goal_service.get_overview(db, user_id, valuation.items, valuation.summary.fx_rate)

    return GoalOverviewResponse(
        currency=overview.currency,
        fx_rate=overview.fx_rate,
        goals=[
            GoalProgressResponse(
                goal_id=p.goal_id,
                category=p.category,
                target_amount=quantize_money(p.target_amount),
                current_amount=quantize_money(p.current_amount),
                progress_percentage=quantize_percent(p.progress_percentage),
                remaining=quantize_money(p.remaining),
                is_completed=p.is_completed,
            )
            for p in overview.goals
        ],
        total_target=quantize_money(overview.total_target),
        total_current=quantize_money(overview.total_current),
        overall_percentage=quantize_percent(overview.overall_percentage),
        warnings=valuation.warnings,
    )


@router.post(
    "",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a goal",
)
def create_goal(
        payload: GoalCreate,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    """Raises **400** if the user already has a goal for the category."""
    goal = service.create_goal(db, user_id, payload.category, payload.target_amount)
    return GoalResponse.model_validate(goal)


@router.patch("/{goal_id}", response_model=GoalResponse, summary="Update a goal's target")
def update_goal(
        goal_id: int,
        payload: GoalUpdate,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    goal = service.update_target(db, user_id, goal_id, payload.target_amount)
    return GoalResponse.model_validate(goal)


@router.delete(
    "/{goal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a goal",
)
def delete_goal(
        goal_id: int,
        user_id: str = Depends(bind_user),
        db: Session = Depends(get_db),
        service: GoalService = Depends(get_goal_service),
) -> None:
    service.delete_goal(db, user_id, goal_id)

    return None
