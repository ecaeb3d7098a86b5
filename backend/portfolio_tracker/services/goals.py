# backend/portfolio_tracker/services/goals.py
"""
Goal Service - savings targets per goal category and their progress.

This service handles:
- Goal CRUD (one goal per category per user)
- Mapping valued holdings into goal categories
- Progress per goal and an overall overview

Goal amounts are denominated in the foreign currency (settings.foreign_currency).

Category Mapping:
    Structural: each asset category counts toward the goal category of the
    same name. Heuristic: an ordered list of classifiers, each
    (ValuedItem) -> GoalCategory | None, adds the item's value to further
    categories. Matches are additive, so an equity named "... Eurobond ..."
    counts toward both its equity goal and EUROBOND.

Usage:
    from portfolio_tracker.services.goals import GoalService

    service = GoalService()
    goal = service.create_goal(db, "user-1", GoalCategory.FOREIGN_EQUITY, Decimal("50000"))
    overview = service.get_overview(db, "user-1", valuation.items, valuation.summary.fx_rate)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_tracker.config import settings
from portfolio_tracker.models import Goal, GoalCategory
from portfolio_tracker.services.constants import (
    EUROBOND_FRAGMENTS,
    MONEY_MARKET_FRAGMENTS,
    MAX_PROGRESS_PERCENTAGE,
)
from portfolio_tracker.services.exceptions import (
    DuplicateGoalError,
    GoalNotFoundError,
    ValidationError,
)
from portfolio_tracker.services.valuation.types import ValuedItem
from portfolio_tracker.utils.money import ZERO, percentage, safe_divide

logger = logging.getLogger(__name__)

GoalClassifier = Callable[[ValuedItem], GoalCategory | None]


# =============================================================================
# CLASSIFIERS
# =============================================================================

def structural_goal_category(item: ValuedItem) -> GoalCategory:
    """The goal category matching the item's asset category."""
    return GoalCategory(item.category.value)


def _contains_any(text: str, fragments: Iterable[str]) -> bool:
    return any(fragment in text for fragment in fragments)


def eurobond_classifier(item: ValuedItem) -> GoalCategory | None:
    name = (item.name or "").lower()
    symbol = (item.symbol or "").lower()
    if _contains_any(name, EUROBOND_FRAGMENTS) or _contains_any(symbol, EUROBOND_FRAGMENTS):
        return GoalCategory.EUROBOND
    return None


def money_market_classifier(item: ValuedItem) -> GoalCategory | None:
    name = (item.name or "").lower()
    if _contains_any(name, MONEY_MARKET_FRAGMENTS):
        return GoalCategory.MONEY_MARKET_FUND
    return None


DEFAULT_CLASSIFIERS: tuple[GoalClassifier, ...] = (
    eurobond_classifier,
    money_market_classifier,
)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class GoalProgress:
    """
    Progress of one goal, in the foreign currency.

    Attributes:
        progress_percentage: current / target * 100, capped at 100
        remaining: max(0, target - current)
    """

    goal_id: int
    category: GoalCategory
    target_amount: Decimal
    current_amount: Decimal
    progress_percentage: Decimal
    remaining: Decimal
    is_completed: bool


@dataclass
class GoalOverview:
    """All goals of a user plus totals. overall_percentage is not capped."""

    currency: str
    fx_rate: Decimal
    goals: list[GoalProgress] = field(default_factory=list)
    total_target: Decimal = ZERO
    total_current: Decimal = ZERO
    overall_percentage: Decimal = ZERO


# =============================================================================
# AGGREGATOR
# =============================================================================

class GoalProgressAggregator:
    """
    Sums valued holdings into goal categories and computes progress.

    Pure: receives valued items and the FX rate, never touches the
    database or market data.
    """

    def __init__(self, classifiers: Sequence[GoalClassifier] | None = None) -> None:
        self._classifiers = tuple(DEFAULT_CLASSIFIERS if classifiers is None else classifiers)

    def aggregate(self, items: Iterable[ValuedItem], fx_rate: Decimal) -> dict[GoalCategory, Decimal]:
        """
        Current amount per goal category, in the foreign currency.

        Foreign items are already in the target currency; all others are
        divided by fx_rate. Every goal category is present in the result.
        """
        amounts = {category: ZERO for category in GoalCategory}

        for item in items:
            if item.category.is_foreign:
                amount = item.current_value
            else:
                amount = safe_divide(item.current_value_local, fx_rate)

            matched = [structural_goal_category(item)]
            for classifier in self._classifiers:
                category = classifier(item)
                if category is not None and category not in matched:
                    matched.append(category)

            for category in matched:
                amounts[category] += amount

        return amounts

    def progress(
            self,
            goals: Iterable[Goal],
            amounts: dict[GoalCategory, Decimal],
            fx_rate: Decimal,
    ) -> GoalOverview:
        overview = GoalOverview(currency=settings.foreign_currency, fx_rate=fx_rate)

        for goal in goals:
            current = amounts.get(goal.category, ZERO)
            target = goal.target_amount
            overview.goals.append(GoalProgress(
                goal_id=goal.id,
                category=goal.category,
                target_amount=target,
                current_amount=current,
                progress_percentage=min(percentage(current, target), MAX_PROGRESS_PERCENTAGE),
                remaining=max(ZERO, target - current),
                is_completed=target > 0 and current >= target,
            ))
            overview.total_target += target
            overview.total_current += current

        overview.overall_percentage = percentage(overview.total_current, overview.total_target)
        return overview


# =============================================================================
# SERVICE
# =============================================================================

class GoalService:
    """
    Service for managing goals.

    Features:
        - One goal per category per user (checked here, not in the schema)
        - Targets must be positive
        - Ownership: a goal id belonging to another user is "not found"
    """

    def __init__(self, aggregator: GoalProgressAggregator | None = None) -> None:
        self._aggregator = aggregator or GoalProgressAggregator()

    def list_goals(self, db: Session, user_id: str) -> list[Goal]:
        return list(db.scalars(
            select(Goal)
            .where(Goal.user_id == user_id)
            .order_by(Goal.created_at, Goal.id)
        ))

    def create_goal(
            self,
            db: Session,
            user_id: str,
            category: GoalCategory,
            target_amount: Decimal,
    ) -> Goal:
        """
        Create a goal.

        Raises:
            ValidationError: target_amount <= 0
            DuplicateGoalError: The user already has a goal for the category
        """
        self._validate_target(target_amount)

        existing = db.scalar(
            select(Goal.id)
            .where(Goal.user_id == user_id, Goal.category == category)
        )
        if existing is not None:
            raise DuplicateGoalError(category.value)

        goal = Goal(user_id=user_id, category=category, target_amount=target_amount)
        db.add(goal)
        db.commit()
        db.refresh(goal)

        logger.info(f"Created goal {goal.id} for user {user_id}: {category.value} {target_amount}")
        return goal

    def update_target(
            self,
            db: Session,
            user_id: str,
            goal_id: int,
            target_amount: Decimal,
    ) -> Goal:
        """
        Change a goal's target amount.

        Raises:
            ValidationError: target_amount <= 0
            GoalNotFoundError: No such goal for this user
        """
        self._validate_target(target_amount)
        goal = self._get_owned(db, user_id, goal_id)

        goal.target_amount = target_amount
        db.commit()
        db.refresh(goal)

        logger.info(f"Updated goal {goal_id} target to {target_amount}")
        return goal

    def delete_goal(self, db: Session, user_id: str, goal_id: int) -> None:
        goal = self._get_owned(db, user_id, goal_id)
        db.delete(goal)
        db.commit()
        logger.info(f"Deleted goal {goal_id} for user {user_id}")

    def get_overview(
            self,
            db: Session,
            user_id: str,
            items: Iterable[ValuedItem],
            fx_rate: Decimal,
    ) -> GoalOverview:
        """Progress of every goal of the user against the valued holdings."""
        amounts = self._aggregator.aggregate(items, fx_rate)
        return self._aggregator.progress(self.list_goals(db, user_id), amounts, fx_rate)

    def _get_owned(self, db: Session, user_id: str, goal_id: int) -> Goal:
        goal = db.get(Goal, goal_id)
        if goal is None or goal.user_id != user_id:
            raise GoalNotFoundError(goal_id)
        return goal

    @staticmethod
    def _validate_target(target_amount: Decimal) -> None:
        if target_amount is None or target_amount <= 0:
            raise ValidationError("target_amount must be greater than 0", field="target_amount")
