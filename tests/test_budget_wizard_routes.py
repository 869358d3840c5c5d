"""Tests for budget wizard API endpoints."""

import pytest
from datetime import date
from decimal import Decimal
from httpx import AsyncClient
from uuid import uuid4

from financy.models import Budget, Category, Expense, Income


@pytest.fixture
async def march_history(db_session, test_user, food_category, fun_category):
    """April income with a quarter of food and entertainment spending."""
    db_session.add(
        Income(
            user_id=test_user.id,
            amount=Decimal("1000"),
            description="Salary",
            date=date(2025, 4, 1),
        )
    )
    for month, amount in ((1, "100"), (2, "100"), (3, "400")):
        db_session.add(
            Expense(
                user_id=test_user.id,
                amount=Decimal(amount),
                description="Groceries",
                date=date(2025, month, 10),
                category_id=food_category.id,
            )
        )
    db_session.add(
        Expense(
            user_id=test_user.id,
            amount=Decimal("90"),
            description="Cinema",
            date=date(2025, 2, 14),
            category_id=fun_category.id,
        )
    )
    await db_session.commit()


def allocation(category, amount: str, percentage: float = 10.0) -> dict:
    return {
        "category_id": str(category.id),
        "category_name": category.name,
        "suggested_percentage": percentage,
        "user_percentage": percentage,
        "amount": amount,
    }


@pytest.mark.asyncio
class TestWizardReadRoutes:
    """Test the read-only wizard steps."""

    async def test_eligibility(self, async_client: AsyncClient, test_user, march_history):
        response = await async_client.get(
            f"/api/budgets/wizard/eligibility?user_id={test_user.id}&today=2025-04-05"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["can_use_wizard"] is True
        assert Decimal(data["total_income"]) == Decimal("1000")
        assert data["eligible_categories"] == 2

    async def test_not_eligible_after_the_tenth(
        self, async_client: AsyncClient, test_user, march_history
    ):
        response = await async_client.get(
            f"/api/budgets/wizard/eligibility?user_id={test_user.id}&today=2025-04-15"
        )

        assert response.json()["can_use_wizard"] is False

    async def test_summary(self, async_client: AsyncClient, test_user, march_history):
        response = await async_client.get(
            f"/api/budgets/wizard/summary?user_id={test_user.id}&reference_date=2025-04-05"
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["available_for_budgets"]) == Decimal("1000")
        assert data["month"] == 4

    async def test_insights_flag_atypical_spending(
        self, async_client: AsyncClient, test_user, march_history
    ):
        response = await async_client.get(
            f"/api/budgets/wizard/insights?user_id={test_user.id}&reference_date=2025-04-05"
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_last_month"]) == Decimal("400")
        # Quarter average 200, last month 400
        assert len(data["atypical_expenses"]) == 1
        assert data["atypical_expenses"][0]["category_name"] == "Food"
        assert data["atypical_expenses"][0]["is_significant"] is True

    async def test_categories_and_allocations(
        self, async_client: AsyncClient, test_user, march_history
    ):
        categories = await async_client.get(
            f"/api/budgets/wizard/categories?user_id={test_user.id}&today=2025-04-05"
        )
        assert [c["name"] for c in categories.json()] == ["Food", "Entertainment"]

        allocations = await async_client.get(
            f"/api/budgets/wizard/allocations?user_id={test_user.id}&reference_date=2025-04-05"
        )
        data = allocations.json()
        assert Decimal(data[0]["amount"]) == Decimal("200")
        assert data[0]["suggested_percentage"] == pytest.approx(20.0)
        assert Decimal(data[1]["amount"]) == Decimal("30")


@pytest.mark.asyncio
class TestAdjustAllocations:
    """Test allocator edits, which need no stored data."""

    async def test_set_percentage(self, async_client: AsyncClient, food_category, fun_category):
        response = await async_client.post(
            "/api/budgets/wizard/allocations/adjust",
            json={
                "allocations": [allocation(food_category, "100"), allocation(fun_category, "100")],
                "available": "1000",
                "mode": "percentage",
                "category_id": str(food_category.id),
                "value": "35",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data[0]["user_percentage"] == pytest.approx(35.0)
        assert Decimal(data[0]["amount"]) == Decimal("350")
        assert Decimal(data[1]["amount"]) == Decimal("100")

    async def test_set_amount(self, async_client: AsyncClient, food_category):
        response = await async_client.post(
            "/api/budgets/wizard/allocations/adjust",
            json={
                "allocations": [allocation(food_category, "100")],
                "available": "2000",
                "mode": "amount",
                "category_id": str(food_category.id),
                "value": "500",
            },
        )

        assert response.json()[0]["user_percentage"] == pytest.approx(25.0)

    async def test_distribute(self, async_client: AsyncClient, food_category, fun_category):
        response = await async_client.post(
            "/api/budgets/wizard/allocations/adjust",
            json={
                "allocations": [allocation(food_category, "100"), allocation(fun_category, "10")],
                "available": "800",
                "mode": "distribute",
            },
        )

        assert [Decimal(a["amount"]) for a in response.json()] == [Decimal("400"), Decimal("400")]

    async def test_missing_value(self, async_client: AsyncClient, food_category):
        response = await async_client.post(
            "/api/budgets/wizard/allocations/adjust",
            json={
                "allocations": [allocation(food_category, "100")],
                "available": "800",
                "mode": "amount",
            },
        )

        assert response.status_code == 422

    async def test_unknown_category(self, async_client: AsyncClient, food_category):
        response = await async_client.post(
            "/api/budgets/wizard/allocations/adjust",
            json={
                "allocations": [allocation(food_category, "100")],
                "available": "800",
                "mode": "percentage",
                "category_id": str(uuid4()),
                "value": "10",
            },
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestWizardGeneration:
    """Test conflicts, preview and generation."""

    async def test_full_flow(
        self, async_client: AsyncClient, test_user, food_category, march_history, db_session
    ):
        existing = Budget(
            user_id=test_user.id,
            category_id=food_category.id,
            amount=Decimal("150"),
            period_start=date(2025, 4, 1),
            period_end=date(2025, 4, 30),
        )
        db_session.add(existing)
        await db_session.commit()

        allocations = [allocation(food_category, "250", 25.0)]
        conflicts = await async_client.post(
            f"/api/budgets/wizard/conflicts?user_id={test_user.id}",
            json={"allocations": allocations, "reference_date": "2025-04-05"},
        )
        assert conflicts.status_code == 200
        conflict_data = conflicts.json()
        assert len(conflict_data) == 1
        assert conflict_data[0]["budget_id"] == str(existing.id)
        assert conflict_data[0]["action"] == "replace"
        assert Decimal(conflict_data[0]["proposed_amount"]) == Decimal("250")

        request = {
            "allocations": allocations,
            "conflicts": conflict_data,
            "reference_date": "2025-04-05",
        }
        preview = await async_client.post(
            f"/api/budgets/wizard/preview?user_id={test_user.id}", json=request
        )
        assert preview.status_code == 200
        assert Decimal(preview.json()["remaining_amount"]) == Decimal("750")

        generated = await async_client.post(
            f"/api/budgets/wizard/generate?user_id={test_user.id}", json=request
        )
        assert generated.status_code == 201
        data = generated.json()
        assert data["replaced_budget_ids"] == [str(existing.id)]
        assert len(data["created_budget_ids"]) == 1

        budgets = await async_client.get(f"/api/budgets?user_id={test_user.id}")
        assert [b["id"] for b in budgets.json()] == data["created_budget_ids"]

    async def test_generate_unknown_category(self, async_client: AsyncClient, test_user):
        response = await async_client.post(
            f"/api/budgets/wizard/generate?user_id={test_user.id}",
            json={
                "allocations": [
                    {"category_id": str(uuid4()), "category_name": "Ghost", "amount": "10"}
                ],
                "reference_date": "2025-04-05",
            },
        )

        assert response.status_code == 400

    async def test_generate_reports_only_deleted_budgets(
        self, async_client: AsyncClient, test_user, other_user, food_category, db_session
    ):
        their_category = Category(user_id=other_user.id, name="Food")
        db_session.add(their_category)
        await db_session.flush()
        theirs = Budget(
            user_id=other_user.id,
            category_id=their_category.id,
            amount=Decimal("150"),
            period_start=date(2025, 4, 1),
            period_end=date(2025, 4, 30),
        )
        db_session.add(theirs)
        await db_session.commit()

        conflicts = [
            {
                "budget_id": str(budget_id),
                "category_id": str(food_category.id),
                "category_name": "Food",
                "existing_amount": "150",
                "proposed_amount": "250",
                "existing_period_start": "2025-04-01",
                "existing_period_end": "2025-04-30",
                "action": "replace",
            }
            for budget_id in (theirs.id, uuid4())
        ]
        response = await async_client.post(
            f"/api/budgets/wizard/generate?user_id={test_user.id}",
            json={
                "allocations": [allocation(food_category, "250", 25.0)],
                "conflicts": conflicts,
                "reference_date": "2025-04-05",
            },
        )

        assert response.status_code == 201
        assert response.json()["replaced_budget_ids"] == []
        assert len(response.json()["created_budget_ids"]) == 1
        assert await db_session.get(Budget, theirs.id) is not None
