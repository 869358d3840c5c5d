"""Budget wizard rules: eligible categories, allocations and conflicts with existing budgets."""

from dataclasses import dataclass, field, replace
from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from financy.schemas.records import BudgetRow, ExpenseRow, GoalEntryRecord, IncomeRecord
from financy.services.spending_insights import SpendingInsights

# Categories always offered by the wizard, matched on lowercase name
ESSENTIAL_CATEGORIES = ("food", "utilities", "transport", "housing")

# Non-essential categories need at least this much trailing spending
MINIMUM_SPENDING_THRESHOLD = Decimal(50)

# The wizard is only offered during the first days of the month
WIZARD_LAST_DAY_OF_MONTH = 10

# Suggestions never take more than this share of the available funds
MAX_SUGGESTED_PERCENTAGE = 50.0


class ConflictAction(str, Enum):
    """What to do with an existing budget that overlaps a new one."""

    REPLACE = "replace"
    KEEP = "keep"
    SKIP = "skip"


@dataclass(frozen=True)
class Period:
    """Inclusive date interval."""

    start: date_type
    end: date_type

    def overlaps(self, start: date_type, end: date_type) -> bool:
        return start <= self.end and end >= self.start

    def contains(self, day: date_type) -> bool:
        return self.start <= day <= self.end


@dataclass
class EligibleCategory:
    """Category the wizard may propose a budget for."""

    id: UUID
    name: str
    icon: Optional[str]
    color: Optional[str]
    total_spending: Decimal = Decimal(0)
    is_essential: bool = False
    has_recent_activity: bool = True


@dataclass(frozen=True)
class BudgetAllocation:
    """Proposed budget for one category."""

    category_id: UUID
    category_name: str
    category_icon: Optional[str]
    category_color: Optional[str]
    last_month_percentage: float
    suggested_percentage: float
    user_percentage: float
    amount: Decimal
    is_essential: bool


@dataclass
class BudgetConflict:
    """Existing budget overlapping the period of a proposed one."""

    budget_id: UUID
    category_id: UUID
    category_name: str
    existing_amount: Decimal
    existing_period_start: date_type
    existing_period_end: date_type
    proposed_amount: Decimal = Decimal(0)
    action: ConflictAction = ConflictAction.REPLACE


@dataclass(frozen=True)
class FinancialSummary:
    """Income and goal savings for a month, and what is left for budgets."""

    total_income: Decimal
    goal_savings: Decimal
    available_for_budgets: Decimal
    month: int
    year: int


@dataclass(frozen=True)
class WizardSummary:
    """Totals shown before the budgets are generated."""

    new_budgets: List[BudgetAllocation]
    conflicts: List[BudgetConflict]
    total_allocated: Decimal
    total_available: Decimal
    remaining_amount: Decimal
    unassigned_expenses_count: int


@dataclass(frozen=True)
class BudgetGenerationPlan:
    """Budgets to delete and allocations to create when the wizard is confirmed."""

    budgets_to_delete: List[UUID] = field(default_factory=list)
    allocations_to_create: List[BudgetAllocation] = field(default_factory=list)


def is_essential_category(name: str) -> bool:
    return name.lower() in ESSENTIAL_CATEGORIES


def select_eligible_categories(expenses: Iterable[ExpenseRow]) -> List[EligibleCategory]:
    """Pick the categories the wizard should consider.

    Args:
        expenses: Expenses of the trailing three months

    Returns:
        Essential categories first, then the rest by descending spending
    """
    by_category: Dict[UUID, EligibleCategory] = {}
    for expense in expenses:
        if expense.category_id is None:
            continue

        category = by_category.get(expense.category_id)
        if category is None:
            name = expense.category_name or ""
            category = EligibleCategory(
                id=expense.category_id,
                name=name,
                icon=expense.category_icon,
                color=expense.category_color,
                is_essential=is_essential_category(name),
            )
            by_category[expense.category_id] = category

        category.total_spending += expense.amount

    eligible = [
        c
        for c in by_category.values()
        if c.is_essential or c.total_spending >= MINIMUM_SPENDING_THRESHOLD
    ]
    return sorted(eligible, key=lambda c: (not c.is_essential, -c.total_spending))


def can_use_wizard(today: date_type, total_income: Decimal, eligible_count: int) -> bool:
    """Whether the budget wizard can be offered.

    Requires an early day of the month, income recorded this month and at least
    one eligible category.
    """
    is_early_in_month = today.day <= WIZARD_LAST_DAY_OF_MONTH
    return is_early_in_month and total_income > 0 and eligible_count > 0


def build_financial_summary(
    incomes: Iterable[IncomeRecord],
    goal_entries: Iterable[GoalEntryRecord],
    period: Period,
) -> FinancialSummary:
    """Summarise a month: income minus what went into savings goals."""
    total_income = sum(
        (income.amount for income in incomes if period.contains(income.date)), Decimal(0)
    )
    goal_savings = sum(
        (entry.amount for entry in goal_entries if period.contains(entry.date)), Decimal(0)
    )
    return FinancialSummary(
        total_income=total_income,
        goal_savings=goal_savings,
        available_for_budgets=total_income - goal_savings,
        month=period.start.month,
        year=period.start.year,
    )


def _percentage_of(amount: Decimal, available: Decimal) -> float:
    return float(amount / available * 100) if available > 0 else 0.0


def suggest_allocations(
    categories: Sequence[EligibleCategory],
    insights: SpendingInsights,
    available: Decimal,
) -> List[BudgetAllocation]:
    """Default allocations for the eligible categories.

    The quarter average is preferred over last month as it is more stable.
    """
    last_month = {c.category_id: c for c in insights.last_month}
    quarter = {c.category_id: c for c in insights.quarter_average}
    cap = max(available, Decimal(0)) * Decimal(MAX_SUGGESTED_PERCENTAGE) / 100

    allocations = []
    for category in categories:
        recent = last_month.get(category.id)
        average = quarter.get(category.id)

        suggested_amount = Decimal(0)
        if average is not None and average.total_spending:
            suggested_amount = average.total_spending
        elif recent is not None:
            suggested_amount = recent.total_spending

        suggested_percentage = min(
            _percentage_of(suggested_amount, available), MAX_SUGGESTED_PERCENTAGE
        )
        allocations.append(
            BudgetAllocation(
                category_id=category.id,
                category_name=category.name,
                category_icon=category.icon,
                category_color=category.color,
                last_month_percentage=recent.percentage if recent else 0.0,
                suggested_percentage=suggested_percentage,
                user_percentage=suggested_percentage,
                amount=min(suggested_amount, cap),
                is_essential=category.is_essential,
            )
        )

    return allocations


def set_allocation_percentage(
    allocation: BudgetAllocation, percentage: float, available: Decimal
) -> BudgetAllocation:
    """Set the user percentage and derive the amount from it."""
    percentage = max(0.0, min(100.0, percentage))
    amount = max(Decimal(0), Decimal(str(percentage)) / 100 * available)
    return replace(allocation, user_percentage=percentage, amount=amount)


def set_allocation_amount(
    allocation: BudgetAllocation, amount: Decimal, available: Decimal
) -> BudgetAllocation:
    """Set the amount and derive the user percentage from it."""
    amount = max(Decimal(0), amount)
    percentage = max(0.0, min(100.0, _percentage_of(amount, available)))
    return replace(allocation, user_percentage=percentage, amount=amount)


def reset_to_suggested(
    allocations: Sequence[BudgetAllocation], available: Decimal
) -> List[BudgetAllocation]:
    return [set_allocation_percentage(a, a.suggested_percentage, available) for a in allocations]


def distribute_evenly(
    allocations: Sequence[BudgetAllocation], available: Decimal
) -> List[BudgetAllocation]:
    if not allocations:
        return []
    share = 100.0 / len(allocations)
    return [set_allocation_percentage(a, share, available) for a in allocations]


def resolve_conflicts(
    proposed_category_ids: Iterable[UUID],
    existing_budgets: Iterable[BudgetRow],
    target_period: Period,
    proposed_amounts: Optional[Mapping[UUID, Decimal]] = None,
) -> List[BudgetConflict]:
    """Classify existing budgets that collide with the proposed ones.

    Nothing is changed in storage. Every conflict starts with the replace action
    and the caller may switch it before generating budgets.

    Args:
        proposed_category_ids: Categories that will get a new budget
        existing_budgets: Budgets already stored for the user
        target_period: Period of the new budgets
        proposed_amounts: Optional new amount per category

    Returns:
        One conflict per overlapping existing budget
    """
    category_ids = set(proposed_category_ids)
    proposed_amounts = proposed_amounts or {}

    return [
        BudgetConflict(
            budget_id=budget.id,
            category_id=budget.category_id,
            category_name=budget.category_name or "",
            existing_amount=budget.amount,
            existing_period_start=budget.period_start,
            existing_period_end=budget.period_end,
            proposed_amount=proposed_amounts.get(budget.category_id, Decimal(0)),
        )
        for budget in existing_budgets
        if budget.category_id in category_ids
        and target_period.overlaps(budget.period_start, budget.period_end)
    ]


def plan_budget_generation(
    allocations: Sequence[BudgetAllocation], conflicts: Sequence[BudgetConflict]
) -> BudgetGenerationPlan:
    """Decide what the wizard deletes and creates.

    Replaced budgets are deleted. An allocation is created unless its category
    has a conflict that is kept or skipped.
    """
    actions = {c.category_id: c.action for c in conflicts}
    return BudgetGenerationPlan(
        budgets_to_delete=[c.budget_id for c in conflicts if c.action == ConflictAction.REPLACE],
        allocations_to_create=[
            a
            for a in allocations
            if actions.get(a.category_id, ConflictAction.REPLACE) == ConflictAction.REPLACE
        ],
    )


def summarize_wizard(
    allocations: Sequence[BudgetAllocation],
    conflicts: Sequence[BudgetConflict],
    available: Decimal,
    unassigned_expenses_count: int = 0,
) -> WizardSummary:
    """Totals for the confirmation step."""
    total_allocated = sum((a.amount for a in allocations), Decimal(0))
    return WizardSummary(
        new_budgets=list(allocations),
        conflicts=list(conflicts),
        total_allocated=total_allocated,
        total_available=available,
        remaining_amount=available - total_allocated,
        unassigned_expenses_count=unassigned_expenses_count,
    )
