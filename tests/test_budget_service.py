"""Tests for budget service."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from financy.models import Expense, SavingsGoal
from financy.schemas.expense import ExpenseCreate, ExpenseUpdate
from financy.services.budget_service import BudgetService
from financy.services.category_service import CategoryService
from financy.services.expense_service import ExpenseService

JAN_START = date(2025, 1, 1)
JAN_END = date(2025, 1, 31)


@pytest.fixture
async def budget_service(db_session):
    """Create budget service instance."""
    return BudgetService(db_session)


async def add_expense(db_session, user, category, amount, day=date(2025, 1, 10), budget_id=None):
    expense = Expense(
        user_id=user.id,
        amount=Decimal(amount),
        description=f"{category.name if category else 'Misc'} expense",
        date=day,
        category_id=category.id if category else None,
        budget_id=budget_id,
    )
    db_session.add(expense)
    await db_session.flush()
    return expense


@pytest.mark.asyncio
class TestBudgetService:
    """Test budget CRUD."""

    async def test_create_budget(self, budget_service, test_user, food_category, db_session):
        budget = await budget_service.create_budget(
            user_id=test_user.id,
            category_id=food_category.id,
            amount=Decimal("500"),
            period_start=JAN_START,
            period_end=JAN_END,
        )
        await db_session.commit()

        assert budget.id is not None
        assert budget.amount == Decimal("500")
        assert budget.priority == 5
        assert budget.rollover_amount == Decimal("0")

    async def test_create_budget_invalid_period(self, budget_service, test_user, food_category):
        with pytest.raises(ValueError, match="end must be after start"):
            await budget_service.create_budget(
                test_user.id, food_category.id, Decimal("500"), JAN_END, JAN_START
            )

    async def test_create_budget_invalid_priority(self, budget_service, test_user, food_category):
        with pytest.raises(ValueError, match="priority"):
            await budget_service.create_budget(
                test_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END, priority=11
            )

    async def test_create_budget_foreign_category(self, budget_service, other_user, food_category):
        with pytest.raises(ValueError, match="not found"):
            await budget_service.create_budget(
                other_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END
            )

    async def test_list_active_budgets(self, budget_service, test_user, food_category, db_session):
        january = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END
        )
        await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("500"), date(2025, 2, 1), date(2025, 2, 28)
        )
        await db_session.commit()

        active = await budget_service.list_budgets(
            test_user.id, active_only=True, today=date(2025, 1, 15)
        )
        everything = await budget_service.list_budgets(test_user.id)

        assert [b.id for b in active] == [january.id]
        assert len(everything) == 2

    async def test_update_budget(self, budget_service, test_user, food_category, db_session):
        budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END
        )
        await db_session.commit()

        updated = await budget_service.update_budget(
            budget.id, test_user.id, amount=Decimal("650"), priority=9
        )

        assert updated.amount == Decimal("650")
        assert updated.priority == 9

        with pytest.raises(ValueError):
            await budget_service.update_budget(
                budget.id, test_user.id, period_end=date(2024, 12, 1)
            )

    async def test_delete_budget_unlinks_expenses_and_goals(
        self, budget_service, test_user, food_category, db_session
    ):
        budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END
        )
        expense = await add_expense(db_session, test_user, food_category, "40", budget_id=budget.id)
        goal = SavingsGoal(
            user_id=test_user.id,
            name="Dinner party",
            target_amount=Decimal("200"),
            target_date=date(2025, 6, 1),
            budget_id=budget.id,
        )
        db_session.add(goal)
        await db_session.commit()

        assert await budget_service.delete_budget(budget.id, test_user.id) is True
        await db_session.commit()
        await db_session.refresh(expense)
        await db_session.refresh(goal)

        assert expense.budget_id is None
        assert goal.budget_id is None
        assert await budget_service.get_budget(budget.id, test_user.id) is None

    async def test_delete_missing_budget(self, budget_service, test_user):
        assert await budget_service.delete_budget(uuid4(), test_user.id) is False


@pytest.mark.asyncio
class TestBudgetAssignment:
    """Test linking existing expenses to a budget."""

    async def test_preview_and_assign(
        self, budget_service, test_user, food_category, fun_category, db_session
    ):
        await add_expense(db_session, test_user, food_category, "30")
        await add_expense(db_session, test_user, food_category, "20", day=date(2025, 1, 20))
        await add_expense(db_session, test_user, food_category, "99", day=date(2025, 2, 2))
        await add_expense(db_session, test_user, fun_category, "15")
        budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("500"), JAN_START, JAN_END
        )
        await db_session.commit()

        preview = await budget_service.preview_assignment(budget.id, test_user.id)
        assert preview.matching_expenses == 2
        assert preview.total_amount == Decimal("50")
        assert preview.has_conflicts is False

        result = await budget_service.assign_to_existing_expenses(budget.id, test_user.id)
        assert result.assigned_count == 2
        assert result.total_amount == Decimal("50")
        assert result.skipped_count == 0

        # Running it again finds nothing left to link
        again = await budget_service.assign_to_existing_expenses(budget.id, test_user.id)
        assert again.assigned_count == 0
        assert again.conflicts == []

    async def test_expenses_of_other_budget_reported_as_conflicts(
        self, budget_service, test_user, food_category, db_session
    ):
        first = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("300"), JAN_START, JAN_END
        )
        linked = await add_expense(db_session, test_user, food_category, "30", budget_id=first.id)
        await add_expense(db_session, test_user, food_category, "10")
        second = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("200"), date(2025, 1, 5), date(2025, 1, 25)
        )
        await db_session.commit()

        preview = await budget_service.preview_assignment(second.id, test_user.id)
        assert preview.has_conflicts is True

        result = await budget_service.assign_to_existing_expenses(second.id, test_user.id)

        assert result.assigned_count == 1
        assert result.skipped_count == 1
        assert result.conflicts[0].expense_id == linked.id
        assert result.conflicts[0].current_budget_id == first.id

    async def test_create_with_assign_to_existing(
        self, budget_service, test_user, food_category, db_session
    ):
        expense = await add_expense(db_session, test_user, food_category, "30")

        budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("300"), JAN_START, JAN_END,
            assign_to_existing=True,
        )

        assert expense.budget_id == budget.id


@pytest.mark.asyncio
class TestBudgetProgress:
    """Test spending progress and alerts."""

    async def _budget_with_spending(self, service, db_session, user, category, amount, spent):
        budget = await service.create_budget(
            user.id, category.id, Decimal(amount), JAN_START, JAN_END
        )
        await add_expense(db_session, user, category, spent, budget_id=budget.id)
        await db_session.commit()
        return budget

    async def test_progress_counts_linked_expenses(
        self, budget_service, test_user, food_category, db_session
    ):
        budget = await self._budget_with_spending(
            budget_service, db_session, test_user, food_category, "400", "100"
        )
        # Same category and period but not linked to the budget
        await add_expense(db_session, test_user, food_category, "50")
        await db_session.commit()

        progress = await budget_service.get_budget_progress(test_user.id, today=date(2025, 1, 15))

        assert len(progress) == 1
        assert progress[0].budget_id == budget.id
        assert progress[0].category_name == "Food"
        assert progress[0].spent_amount == Decimal("100")
        assert progress[0].remaining_amount == Decimal("300")
        assert progress[0].spent_percentage == pytest.approx(25.0)

    async def test_over_budget_alert(self, budget_service, test_user, food_category, db_session):
        await self._budget_with_spending(
            budget_service, db_session, test_user, food_category, "100", "120"
        )

        alerts = await budget_service.get_budget_alerts(test_user.id, today=date(2025, 1, 15))

        assert len(alerts) == 1
        assert alerts[0].type == "over_budget"
        assert alerts[0].severity == "high"
        assert "exceeded your Food budget by 20.0%" in alerts[0].message

    @pytest.mark.parametrize("spent,severity", [("85", "low"), ("95", "medium"), ("100", "medium")])
    async def test_near_limit_alert(
        self, budget_service, test_user, food_category, db_session, spent, severity
    ):
        await self._budget_with_spending(
            budget_service, db_session, test_user, food_category, "100", spent
        )

        alerts = await budget_service.get_budget_alerts(test_user.id, today=date(2025, 1, 15))

        assert len(alerts) == 1
        assert alerts[0].type == "near_limit"
        assert alerts[0].severity == severity

    async def test_no_alert_below_threshold(
        self, budget_service, test_user, food_category, db_session
    ):
        await self._budget_with_spending(
            budget_service, db_session, test_user, food_category, "100", "50"
        )

        assert await budget_service.get_budget_alerts(test_user.id, today=date(2025, 1, 15)) == []

    async def test_inactive_budgets_ignored(
        self, budget_service, test_user, food_category, db_session
    ):
        await self._budget_with_spending(
            budget_service, db_session, test_user, food_category, "100", "500"
        )

        assert await budget_service.get_budget_alerts(test_user.id, today=date(2025, 3, 1)) == []

    async def test_recategorised_expense_moves_between_budgets(
        self, budget_service, test_user, food_category, fun_category, db_session
    ):
        food_budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("100"), JAN_START, JAN_END
        )
        fun_budget = await budget_service.create_budget(
            test_user.id, fun_category.id, Decimal("300"), JAN_START, JAN_END
        )
        expenses = ExpenseService(db_session)
        expense = await expenses.create_expense(
            test_user.id,
            ExpenseCreate(
                amount=Decimal("95"),
                date=date(2025, 1, 10),
                description="Dinner",
                category_id=food_category.id,
            ),
        )
        assert expense.budget_id == food_budget.id

        await expenses.update_expense(
            expense.id, test_user.id, ExpenseUpdate(category_id=fun_category.id)
        )
        await db_session.commit()

        progress = {
            p.budget_id: p.spent_amount
            for p in await budget_service.get_budget_progress(test_user.id, today=date(2025, 1, 15))
        }
        assert progress[food_budget.id] == Decimal("0")
        assert progress[fun_budget.id] == Decimal("95")
        assert await budget_service.get_budget_alerts(test_user.id, today=date(2025, 1, 15)) == []

    async def test_expense_moved_out_of_period_or_category_is_unlinked(
        self, budget_service, test_user, food_category, db_session
    ):
        await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("100"), JAN_START, JAN_END
        )
        expenses = ExpenseService(db_session)
        dated = await expenses.create_expense(
            test_user.id,
            ExpenseCreate(
                amount=Decimal("40"),
                date=date(2025, 1, 10),
                description="Groceries",
                category_id=food_category.id,
            ),
        )
        uncategorised = await expenses.create_expense(
            test_user.id,
            ExpenseCreate(
                amount=Decimal("30"),
                date=date(2025, 1, 11),
                description="Bakery",
                category_id=food_category.id,
            ),
        )

        dated = await expenses.update_expense(
            dated.id, test_user.id, ExpenseUpdate(date=date(2025, 2, 3))
        )
        uncategorised = await expenses.update_expense(
            uncategorised.id, test_user.id, ExpenseUpdate(category_id=None)
        )

        assert dated.budget_id is None
        assert uncategorised.budget_id is None


@pytest.mark.asyncio
class TestCategoryDeletion:
    """Deleting a category cleans up what depends on it."""

    async def test_delete_category_cascades(
        self, budget_service, test_user, food_category, db_session
    ):
        budget = await budget_service.create_budget(
            test_user.id, food_category.id, Decimal("300"), JAN_START, JAN_END
        )
        expense = await add_expense(db_session, test_user, food_category, "30", budget_id=budget.id)
        await db_session.commit()

        assert await CategoryService(db_session).delete_category(
            food_category.id, test_user.id
        ) is True
        await db_session.commit()
        await db_session.refresh(expense)

        assert expense.category_id is None
        assert expense.budget_id is None
        assert await budget_service.list_budgets(test_user.id) == []
