# backend/tests/routers/test_goals_api.py
"""
Integration tests for the goals API endpoints.

Tests:
- GET    /users/{user_id}/goals
- POST   /users/{user_id}/goals
- PATCH  /users/{user_id}/goals/{goal_id}
- DELETE /users/{user_id}/goals/{goal_id}
"""

from decimal import Decimal

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetCategory, GoalCategory

from tests.conftest import create_goal, record_transaction

BASE = "/users/user-1/goals"


class TestGoalCrud:
    def test_create_goal(self, client):
        response = client.post(BASE, json={"category": "EUROBOND", "target_amount": "5000"})

        assert response.status_code == 201
        data = response.json()
        assert data["category"] == "EUROBOND"
        assert Decimal(data["target_amount"]) == Decimal("5000")

    def test_duplicate_category(self, client, db):
        create_goal(db, GoalCategory.EUROBOND)

        response = client.post(BASE, json={"category": "EUROBOND", "target_amount": "10"})

        assert response.status_code == 400
        assert response.json()["error"] == "DuplicateGoalError"
        assert response.json()["details"]["category"] == "EUROBOND"

    def test_non_positive_target_is_422(self, client):
        response = client.post(BASE, json={"category": "EUROBOND", "target_amount": "0"})
        assert response.status_code == 422

    def test_update_target(self, client, db):
        goal = create_goal(db, target_amount="100")

        response = client.patch(f"{BASE}/{goal.id}", json={"target_amount": "300"})

        assert response.status_code == 200
        assert Decimal(response.json()["target_amount"]) == Decimal("300")

    def test_update_missing_goal(self, client):
        response = client.patch(f"{BASE}/999", json={"target_amount": "300"})

        assert response.status_code == 404
        assert response.json()["error"] == "GoalNotFoundError"

    def test_delete(self, client, db):
        goal = create_goal(db)

        assert client.delete(f"{BASE}/{goal.id}").status_code == 204
        assert client.delete(f"{BASE}/{goal.id}").status_code == 404

    def test_cannot_touch_other_users_goal(self, client, db):
        goal = create_goal(db, user_id="user-2")

        assert client.delete(f"{BASE}/{goal.id}").status_code == 404


class TestGoalOverview:
    def test_progress_from_valuation(self, client, db, ledger_service, mock_provider):
        mock_provider.set_quote(settings.fx_symbol, "40")
        mock_provider.set_quote("AAPL", "100")
        mock_provider.set_quote("EUROBOND.IS", "20")
        record_transaction(
            db, ledger_service, symbol="AAPL", category=AssetCategory.FOREIGN_EQUITY,
            quantity="5", price="80",
        )
        record_transaction(
            db, ledger_service, symbol="EUROBOND.IS", name="Global Eurobond Fund",
            quantity="100", price="20",
        )
        create_goal(db, GoalCategory.FOREIGN_EQUITY, target_amount="1000")
        create_goal(db, GoalCategory.EUROBOND, target_amount="25")

        response = client.get(BASE)

        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "USD"
        goals = {g["category"]: g for g in data["goals"]}

        assert Decimal(goals["FOREIGN_EQUITY"]["current_amount"]) == Decimal("500")
        assert Decimal(goals["FOREIGN_EQUITY"]["progress_percentage"]) == Decimal("50")
        assert goals["FOREIGN_EQUITY"]["is_completed"] is False

        # 100 * 20 TRY / 40
        assert Decimal(goals["EUROBOND"]["current_amount"]) == Decimal("50")
        assert Decimal(goals["EUROBOND"]["progress_percentage"]) == Decimal("100")
        assert Decimal(goals["EUROBOND"]["remaining"]) == Decimal("0")
        assert goals["EUROBOND"]["is_completed"] is True

        assert Decimal(data["total_target"]) == Decimal("1025")
        assert Decimal(data["total_current"]) == Decimal("550")
        assert data["warnings"] == []

    def test_no_goals(self, client, mock_provider):
        mock_provider.set_quote(settings.fx_symbol, "40")

        data = client.get(BASE).json()

        assert data["goals"] == []
        assert Decimal(data["overall_percentage"]) == Decimal("0")
