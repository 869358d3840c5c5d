"""Budget wizard service: gathers the data the allocation rules work on and applies the result."""

from datetime import datetime, date as date_type
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Optional, Sequence
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from financy.services.budget_allocation import (
    BudgetAllocation,
    BudgetConflict,
    EligibleCategory,
    FinancialSummary,
    Period,
    WizardSummary,
    build_financial_summary,
    can_use_wizard,
    plan_budget_generation,
    resolve_conflicts,
    select_eligible_categories,
    suggest_allocations,
    summarize_wizard,
)
from financy.services.budget_service import BudgetService
from financy.services.expense_service import ExpenseService
from financy.services.goal_service import GoalService
from financy.services.income_service import IncomeService
from financy.services.spending_insights import (
    QUARTER_MONTHS,
    SpendingInsights,
    compute_insights,
    insight_windows,
    month_end,
    month_start,
)
from financy.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class BudgetGenerationResult:
    """Budgets the wizard created and the conflicting ones it removed."""

    created_budget_ids: List[UUID] = field(default_factory=list)
    replaced_budget_ids: List[UUID] = field(default_factory=list)


def month_period(reference_date: date_type) -> Period:
    """Calendar month containing reference_date."""
    return Period(start=month_start(reference_date), end=month_end(reference_date))


class BudgetWizardService:
    """Service behind the monthly budget wizard."""

    def __init__(self, db: AsyncSession):
        """Initialize budget wizard service.

        Args:
            db: Database session
        """
        self.db = db
        self.incomes = IncomeService(db)
        self.goals = GoalService(db)
        self.expenses = ExpenseService(db)
        self.budgets = BudgetService(db)

    async def get_financial_summary(
        self, user_id: UUID, reference_date: Optional[date_type] = None
    ) -> FinancialSummary:
        """Income and goal savings of the month containing reference_date."""
        period = month_period(reference_date or datetime.utcnow().date())
        incomes = await self.incomes.list_incomes_in_range(user_id, period.start, period.end)
        entries = await self.goals.list_entries_in_range(user_id, period.start, period.end)
        return build_financial_summary(incomes, entries, period)

    async def get_spending_insights(
        self, user_id: UUID, reference_date: Optional[date_type] = None
    ) -> SpendingInsights:
        """Last month against the quarter average, relative to reference_date's month."""
        windows = insight_windows(reference_date or datetime.utcnow().date())
        expenses = await self.expenses.list_expenses_in_range(
            user_id, windows.quarter_start, windows.quarter_end
        )
        insights = compute_insights(expenses, windows)

        logger.debug(
            "Spending insights calculated",
            user_id=str(user_id),
            categories=len(insights.last_month),
            atypical=len(insights.atypical_expenses),
        )

        return insights

    async def get_eligible_categories(
        self, user_id: UUID, today: Optional[date_type] = None
    ) -> List[EligibleCategory]:
        """Categories with spending in the trailing three months, essentials first."""
        today = today or datetime.utcnow().date()
        expenses = await self.expenses.list_expenses_in_range(
            user_id, today - relativedelta(months=QUARTER_MONTHS), today
        )
        return select_eligible_categories(expenses)

    async def can_use_wizard(self, user_id: UUID, today: Optional[date_type] = None) -> bool:
        today = today or datetime.utcnow().date()
        summary = await self.get_financial_summary(user_id, today)
        categories = await self.get_eligible_categories(user_id, today)
        return can_use_wizard(today, summary.total_income, len(categories))

    async def suggest_allocations(
        self, user_id: UUID, reference_date: Optional[date_type] = None
    ) -> List[BudgetAllocation]:
        """Default allocation for every eligible category."""
        reference_date = reference_date or datetime.utcnow().date()
        summary = await self.get_financial_summary(user_id, reference_date)
        categories = await self.get_eligible_categories(user_id, reference_date)
        insights = await self.get_spending_insights(user_id, reference_date)
        return suggest_allocations(categories, insights, summary.available_for_budgets)

    async def detect_budget_conflicts(
        self,
        user_id: UUID,
        category_ids: Sequence[UUID],
        reference_date: Optional[date_type] = None,
        proposed_amounts: Optional[Mapping[UUID, Decimal]] = None,
    ) -> List[BudgetConflict]:
        """Existing budgets overlapping the month the wizard would fill."""
        period = month_period(reference_date or datetime.utcnow().date())
        existing = await self.budgets.list_budgets_overlapping(user_id, period.start, period.end)
        return resolve_conflicts(category_ids, existing, period, proposed_amounts)

    async def get_wizard_summary(
        self,
        user_id: UUID,
        allocations: Sequence[BudgetAllocation],
        conflicts: Sequence[BudgetConflict],
        reference_date: Optional[date_type] = None,
    ) -> WizardSummary:
        """Totals for the confirmation step, with the month's expenses still without a budget."""
        reference_date = reference_date or datetime.utcnow().date()
        period = month_period(reference_date)
        summary = await self.get_financial_summary(user_id, reference_date)

        category_ids = [a.category_id for a in allocations]
        expenses = await self.expenses.list_expenses_in_range(
            user_id, period.start, period.end, category_ids=category_ids
        )
        unassigned = sum(1 for e in expenses if e.budget_id is None)

        return summarize_wizard(allocations, conflicts, summary.available_for_budgets, unassigned)

    async def generate_budgets(
        self,
        user_id: UUID,
        allocations: Sequence[BudgetAllocation],
        conflicts: Sequence[BudgetConflict],
        reference_date: Optional[date_type] = None,
    ) -> BudgetGenerationResult:
        """Apply the wizard for the month containing reference_date.

        Replaced budgets are deleted first, then one budget per remaining allocation
        is created and linked to the month's unassigned expenses. Allocations with
        no amount produce no budget.

        Returns:
            BudgetGenerationResult; replaced IDs only list budgets that were
            found for this user and deleted
        """
        period = month_period(reference_date or datetime.utcnow().date())
        plan = plan_budget_generation(allocations, conflicts)

        result = BudgetGenerationResult()
        for budget_id in plan.budgets_to_delete:
            if await self.budgets.delete_budget(budget_id, user_id):
                result.replaced_budget_ids.append(budget_id)

        created = result.created_budget_ids
        for allocation in plan.allocations_to_create:
            amount = round(allocation.amount, 2)
            if amount <= 0:
                continue
            budget = await self.budgets.create_budget(
                user_id=user_id,
                category_id=allocation.category_id,
                amount=amount,
                period_start=period.start,
                period_end=period.end,
                allocation_percentage=allocation.user_percentage,
                assign_to_existing=True,
            )
            created.append(budget.id)

        logger.info(
            "Wizard budgets generated",
            user_id=str(user_id),
            period_start=str(period.start),
            created=len(created),
            replaced=len(result.replaced_budget_ids),
        )

        return result
