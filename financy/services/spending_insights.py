"""Spending insights: per-category totals over two windows and atypical increases."""

from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from dateutil.relativedelta import relativedelta

from financy.schemas.records import ExpenseRow

QUARTER_MONTHS = 3

# Increases above this percentage are listed as atypical
ATYPICAL_INCREASE_THRESHOLD = Decimal(25)
# Increases above this percentage are flagged as significant
SIGNIFICANT_INCREASE_THRESHOLD = Decimal(50)


@dataclass(frozen=True)
class InsightWindows:
    """Inclusive date windows compared by the insights."""

    last_month_start: date_type
    last_month_end: date_type
    quarter_start: date_type
    quarter_end: date_type

    def in_last_month(self, day: date_type) -> bool:
        return self.last_month_start <= day <= self.last_month_end

    def in_quarter(self, day: date_type) -> bool:
        return self.quarter_start <= day <= self.quarter_end


@dataclass
class CategorySpending:
    """Spending for one category inside one window."""

    category_id: UUID
    category_name: str
    category_icon: Optional[str]
    category_color: Optional[str]
    total_spending: Decimal = Decimal(0)
    percentage: float = 0.0
    transaction_count: int = 0


@dataclass(frozen=True)
class AtypicalExpense:
    """Category whose last-month spending rose well above its quarter average."""

    category_id: UUID
    category_name: str
    last_month_amount: Decimal
    quarter_average: Decimal
    percentage_increase: float
    is_significant: bool


@dataclass(frozen=True)
class SpendingInsights:
    """Result of comparing last month against the quarter's monthly average."""

    last_month: List[CategorySpending] = field(default_factory=list)
    quarter_average: List[CategorySpending] = field(default_factory=list)
    atypical_expenses: List[AtypicalExpense] = field(default_factory=list)
    total_last_month: Decimal = Decimal(0)
    total_quarter_average: Decimal = Decimal(0)


def month_start(day: date_type) -> date_type:
    """First day of the month containing day."""
    return day.replace(day=1)


def month_end(day: date_type) -> date_type:
    """Last day of the month containing day."""
    return month_start(day) + relativedelta(months=1, days=-1)


def insight_windows(reference_date: date_type) -> InsightWindows:
    """Build the windows for a reference date.

    The last-month window is the previous calendar month. The quarter window
    covers the three calendar months before the reference month, which is
    itself excluded.
    """
    current = month_start(reference_date)
    previous = current - relativedelta(months=1)
    return InsightWindows(
        last_month_start=previous,
        last_month_end=month_end(previous),
        quarter_start=current - relativedelta(months=QUARTER_MONTHS),
        quarter_end=month_end(previous),
    )


def _group_by_category(
    expenses: Iterable[ExpenseRow],
) -> Tuple[Dict[UUID, CategorySpending], Decimal]:
    """Group expenses by category.

    Uncategorised expenses count toward the window total but form no group.
    """
    groups: Dict[UUID, CategorySpending] = {}
    total = Decimal(0)

    for expense in expenses:
        total += expense.amount
        if expense.category_id is None:
            continue

        group = groups.get(expense.category_id)
        if group is None:
            group = CategorySpending(
                category_id=expense.category_id,
                category_name=expense.category_name or "",
                category_icon=expense.category_icon,
                category_color=expense.category_color,
            )
            groups[expense.category_id] = group

        group.total_spending += expense.amount
        group.transaction_count += 1

    return groups, total


def _apply_shares(groups: Dict[UUID, CategorySpending], total: Decimal) -> None:
    for group in groups.values():
        group.percentage = float(group.total_spending / total * 100) if total > 0 else 0.0


def _by_spending(groups: Dict[UUID, CategorySpending]) -> List[CategorySpending]:
    return sorted(groups.values(), key=lambda g: g.total_spending, reverse=True)


def find_atypical_expenses(
    last_month: Dict[UUID, CategorySpending],
    quarter_average: Dict[UUID, CategorySpending],
) -> List[AtypicalExpense]:
    """Compare last month against the quarter average per category.

    Categories without quarter spending have no base to compare against and
    are skipped.
    """
    atypical = []
    for category_id, recent in last_month.items():
        baseline = quarter_average.get(category_id)
        if baseline is None or baseline.total_spending <= 0:
            continue

        increase = (
            (recent.total_spending - baseline.total_spending) / baseline.total_spending * 100
        )
        if increase > ATYPICAL_INCREASE_THRESHOLD:
            atypical.append(
                AtypicalExpense(
                    category_id=category_id,
                    category_name=recent.category_name,
                    last_month_amount=recent.total_spending,
                    quarter_average=baseline.total_spending,
                    percentage_increase=float(increase),
                    is_significant=increase > SIGNIFICANT_INCREASE_THRESHOLD,
                )
            )

    return sorted(atypical, key=lambda a: a.percentage_increase, reverse=True)


def compute_insights(expenses: Iterable[ExpenseRow], windows: InsightWindows) -> SpendingInsights:
    """Compute spending insights.

    Args:
        expenses: Expense rows covering at least both windows
        windows: Window boundaries, see insight_windows()

    Returns:
        SpendingInsights with quarter figures expressed as monthly averages
    """
    expenses = list(expenses)
    last_month_groups, total_last_month = _group_by_category(
        e for e in expenses if windows.in_last_month(e.date)
    )
    quarter_groups, total_quarter = _group_by_category(
        e for e in expenses if windows.in_quarter(e.date)
    )

    _apply_shares(last_month_groups, total_last_month)

    total_quarter_average = total_quarter / QUARTER_MONTHS
    for group in quarter_groups.values():
        group.total_spending = group.total_spending / QUARTER_MONTHS
    _apply_shares(quarter_groups, total_quarter_average)

    return SpendingInsights(
        last_month=_by_spending(last_month_groups),
        quarter_average=_by_spending(quarter_groups),
        atypical_expenses=find_atypical_expenses(last_month_groups, quarter_groups),
        total_last_month=total_last_month,
        total_quarter_average=total_quarter_average,
    )
