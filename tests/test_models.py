"""Tests for database models."""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from financy.models import Budget, Category, Expense, GoalEntry, Income, SavingsGoal, User


@pytest.mark.asyncio
class TestModels:
    """Test model defaults and table constraints."""

    async def test_user_email_unique(self, db_session, test_user):
        db_session.add(User(email=test_user.email))

        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_category_name_unique_per_user(
        self, db_session, test_user, other_user, food_category
    ):
        db_session.add(Category(user_id=other_user.id, name="Food"))
        await db_session.commit()

        db_session.add(Category(user_id=test_user.id, name="Food"))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_expense_defaults(self, db_session, test_user):
        expense = Expense(
            user_id=test_user.id,
            amount=Decimal("12.00"),
            description="Taxi",
            date=date(2025, 1, 3),
        )
        db_session.add(expense)
        await db_session.commit()
        await db_session.refresh(expense)

        assert expense.currency == "PEN"
        assert expense.payment_method == "otro"
        assert expense.source == "manual"
        assert expense.tags == []
        assert expense.needs_review is False
        assert expense.created_at is not None

    async def test_expense_amount_must_be_positive(self, db_session, test_user):
        db_session.add(
            Expense(user_id=test_user.id, amount=Decimal("0"), description="x", date=date(2025, 1, 1))
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_budget_period_order(self, db_session, test_user, food_category):
        db_session.add(
            Budget(
                user_id=test_user.id,
                category_id=food_category.id,
                amount=Decimal("100"),
                period_start=date(2025, 2, 1),
                period_end=date(2025, 1, 1),
            )
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_goal_entry_cannot_be_zero(self, db_session, test_user):
        goal = SavingsGoal(
            user_id=test_user.id,
            name="Bike",
            target_amount=Decimal("400"),
            target_date=date(2025, 6, 1),
        )
        db_session.add(goal)
        await db_session.flush()
        db_session.add(
            GoalEntry(goal_id=goal.id, user_id=test_user.id, amount=Decimal("0"), date=date(2025, 1, 1))
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_income_defaults(self, db_session, test_user):
        income = Income(
            user_id=test_user.id, amount=Decimal("900"), description="Freelance", date=date(2025, 1, 2)
        )
        db_session.add(income)
        await db_session.commit()

        stored = (await db_session.execute(select(Income))).scalar_one()
        assert stored.is_recurring is False
        assert stored.currency == "PEN"
