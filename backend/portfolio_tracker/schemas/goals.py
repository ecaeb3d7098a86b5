# backend/portfolio_tracker/schemas/goals.py
"""
Pydantic schemas for goals and goal progress.

Target and current amounts are in the foreign currency.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from portfolio_tracker.models import GoalCategory


class GoalCreate(BaseModel):
    category: GoalCategory = Field(..., examples=[GoalCategory.FOREIGN_EQUITY])
    target_amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Target in the foreign currency",
        examples=["50000"]
    )


class GoalUpdate(BaseModel):
    target_amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=8)


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: GoalCategory
    target_amount: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GoalProgressResponse(BaseModel):
    goal_id: int
    category: GoalCategory
    target_amount: Decimal
    current_amount: Decimal
    progress_percentage: Decimal = Field(..., description="Capped at 100")
    remaining: Decimal
    is_completed: bool


class GoalOverviewResponse(BaseModel):
    """
    Progress of all goals of a user.

    overall_percentage is total_current / total_target * 100 and is not capped.
    """

    currency: str
    fx_rate: Decimal
    goals: list[GoalProgressResponse]
    total_target: Decimal
    total_current: Decimal
    overall_percentage: Decimal
    warnings: list[str] = Field(default_factory=list)
