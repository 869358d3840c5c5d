"""Budget service for managing category budgets and tracking spending."""

from datetime import datetime, date as date_type
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from dataclasses import dataclass, field

from sqlalchemy import select, and_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from financy.models.budget import Budget
from financy.models.category import Category
from financy.models.expense import Expense
from financy.models.goal import SavingsGoal
from financy.schemas.records import BudgetRow
from financy.services.category_service import CategoryService
from financy.logging_config import get_logger

logger = get_logger(__name__)

# Spending share at which a budget starts raising alerts
NEAR_LIMIT_PERCENTAGE = 80.0
MEDIUM_SEVERITY_PERCENTAGE = 90.0


@dataclass
class BudgetProgress:
    """Spending against one budget."""

    budget_id: UUID
    category_id: UUID
    category_name: str
    budget_amount: Decimal
    spent_amount: Decimal
    remaining_amount: Decimal
    spent_percentage: float
    period_start: date_type
    period_end: date_type


@dataclass
class BudgetAlert:
    """Budget alert for overspending."""

    budget_id: UUID
    category_name: str
    type: str  # over_budget, near_limit
    severity: str  # high, medium, low
    spent_percentage: float
    message: str


@dataclass
class ExpenseConflict:
    """Expense already linked to another budget."""

    expense_id: UUID
    description: str
    amount: Decimal
    current_budget_id: UUID


@dataclass
class AssignmentPreview:
    """What assigning existing expenses to a budget would do."""

    matching_expenses: int
    total_amount: Decimal
    conflict_count: int

    @property
    def has_conflicts(self) -> bool:
        return self.conflict_count > 0


@dataclass
class BudgetAssignmentResult:
    """Outcome of linking existing expenses to a budget."""

    budget_id: UUID
    assigned_count: int
    total_amount: Decimal
    skipped_count: int
    conflicts: List[ExpenseConflict] = field(default_factory=list)


class BudgetService:
    """Service for managing budgets and tracking spending."""

    def __init__(self, db: AsyncSession):
        """Initialize budget service.

        Args:
            db: Database session
        """
        self.db = db
        self.categories = CategoryService(db)

    async def create_budget(
        self,
        user_id: UUID,
        category_id: UUID,
        amount: Decimal,
        period_start: date_type,
        period_end: date_type,
        allocation_percentage: Optional[float] = None,
        priority: int = 5,
        rollover_amount: Decimal = Decimal(0),
        assign_to_existing: bool = False,
    ) -> Budget:
        """Create a new budget for a category.

        Args:
            user_id: User ID
            category_id: Category the budget limits
            amount: Budgeted amount
            period_start: Budget period start date
            period_end: Budget period end date
            allocation_percentage: Share of the available funds, when planned by the wizard
            priority: 1-10, higher wins when budgets overlap
            rollover_amount: Amount carried over from a previous period
            assign_to_existing: Link unassigned expenses of the period to the new budget

        Returns:
            Created budget

        Raises:
            ValueError: If the period is inverted, the amount is not positive or the
                category does not belong to the user
        """
        if period_end < period_start:
            raise ValueError("Budget period end must be after start")
        if amount <= 0:
            raise ValueError("Budget amount must be positive")
        if not 1 <= priority <= 10:
            raise ValueError("Budget priority must be between 1 and 10")
        if not await self.categories.get_category(category_id, user_id):
            raise ValueError(f"Category {category_id} not found")

        budget = Budget(
            user_id=user_id,
            category_id=category_id,
            amount=amount,
            period_start=period_start,
            period_end=period_end,
            allocation_percentage=allocation_percentage,
            priority=priority,
            rollover_amount=rollover_amount,
        )

        self.db.add(budget)
        await self.db.flush()
        await self.db.refresh(budget)

        logger.info(
            "Budget created",
            budget_id=str(budget.id),
            user_id=str(user_id),
            category_id=str(category_id),
            amount=str(amount),
            period_start=str(period_start),
            period_end=str(period_end),
        )

        if assign_to_existing:
            await self.assign_to_existing_expenses(budget.id, user_id)

        return budget

    async def get_budget(self, budget_id: UUID, user_id: UUID) -> Optional[Budget]:
        """Get a budget by ID.

        Args:
            budget_id: Budget ID
            user_id: User ID (for authorization)

        Returns:
            Budget if found and belongs to user, None otherwise
        """
        stmt = select(Budget).where(and_(Budget.id == budget_id, Budget.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_budgets(
        self, user_id: UUID, active_only: bool = False, today: Optional[date_type] = None
    ) -> List[Budget]:
        """List all budgets for a user.

        Args:
            user_id: User ID
            active_only: If True, only return budgets that include the current date
            today: Reference date for active_only (default: today)

        Returns:
            List of budgets, latest period first
        """
        stmt = select(Budget).where(Budget.user_id == user_id)

        if active_only:
            today = today or datetime.utcnow().date()
            stmt = stmt.where(and_(Budget.period_start <= today, Budget.period_end >= today))

        stmt = stmt.order_by(Budget.period_start.desc(), Budget.created_at.desc())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_budgets_overlapping(
        self, user_id: UUID, start_date: date_type, end_date: date_type
    ) -> List[BudgetRow]:
        """Budgets whose period intersects [start_date, end_date], with category names."""
        stmt = (
            select(
                Budget.id,
                Budget.category_id,
                Category.name.label("category_name"),
                Budget.amount,
                Budget.period_start,
                Budget.period_end,
            )
            .join(Category, Budget.category_id == Category.id)
            .where(
                and_(
                    Budget.user_id == user_id,
                    Budget.period_start <= end_date,
                    Budget.period_end >= start_date,
                )
            )
            .order_by(Budget.period_start)
        )
        result = await self.db.execute(stmt)
        return [BudgetRow.model_validate(row) for row in result.all()]

    async def update_budget(
        self,
        budget_id: UUID,
        user_id: UUID,
        amount: Optional[Decimal] = None,
        period_start: Optional[date_type] = None,
        period_end: Optional[date_type] = None,
        priority: Optional[int] = None,
        rollover_amount: Optional[Decimal] = None,
    ) -> Optional[Budget]:
        """Update a budget.

        Args:
            budget_id: Budget ID
            user_id: User ID (for authorization)
            amount: New amount (optional)
            period_start: New period start (optional)
            period_end: New period end (optional)
            priority: New priority (optional)
            rollover_amount: New rollover amount (optional)

        Returns:
            Updated budget if found, None otherwise
        """
        budget = await self.get_budget(budget_id, user_id)
        if not budget:
            return None

        new_start = period_start or budget.period_start
        new_end = period_end or budget.period_end
        if new_end < new_start:
            raise ValueError("Budget period end must be after start")

        if amount is not None:
            if amount <= 0:
                raise ValueError("Budget amount must be positive")
            budget.amount = amount

        if priority is not None:
            if not 1 <= priority <= 10:
                raise ValueError("Budget priority must be between 1 and 10")
            budget.priority = priority

        if rollover_amount is not None:
            budget.rollover_amount = rollover_amount

        budget.period_start = new_start
        budget.period_end = new_end
        budget.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(budget)

        logger.info("Budget updated", budget_id=str(budget_id), user_id=str(user_id))

        return budget

    async def delete_budget(self, budget_id: UUID, user_id: UUID) -> bool:
        """Delete a budget and unlink its expenses.

        Args:
            budget_id: Budget ID
            user_id: User ID (for authorization)

        Returns:
            True if deleted, False if not found
        """
        budget = await self.get_budget(budget_id, user_id)
        if not budget:
            return False

        await self.db.execute(
            update(Expense).where(Expense.budget_id == budget_id).values(budget_id=None)
        )
        await self.db.execute(
            update(SavingsGoal).where(SavingsGoal.budget_id == budget_id).values(budget_id=None)
        )
        await self.db.delete(budget)
        await self.db.flush()

        logger.info("Budget deleted", budget_id=str(budget_id), user_id=str(user_id))

        return True

    async def _expenses_in_budget_scope(self, budget: Budget) -> List[Expense]:
        stmt = select(Expense).where(
            and_(
                Expense.user_id == budget.user_id,
                Expense.category_id == budget.category_id,
                Expense.date >= budget.period_start,
                Expense.date <= budget.period_end,
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def preview_assignment(
        self, budget_id: UUID, user_id: UUID
    ) -> Optional[AssignmentPreview]:
        """Count the expenses assign_to_existing_expenses would link."""
        budget = await self.get_budget(budget_id, user_id)
        if not budget:
            return None

        expenses = await self._expenses_in_budget_scope(budget)
        unassigned = [e for e in expenses if e.budget_id is None]
        return AssignmentPreview(
            matching_expenses=len(unassigned),
            total_amount=sum((e.amount for e in unassigned), Decimal(0)),
            conflict_count=len(expenses) - len(unassigned),
        )

    async def assign_to_existing_expenses(
        self, budget_id: UUID, user_id: UUID
    ) -> Optional[BudgetAssignmentResult]:
        """Link expenses of the budget's category and period that have no budget yet.

        Expenses already linked to a budget are left alone and reported as conflicts.

        Returns:
            Assignment result, None if the budget does not exist for the user
        """
        budget = await self.get_budget(budget_id, user_id)
        if not budget:
            return None

        expenses = await self._expenses_in_budget_scope(budget)
        unassigned = [e for e in expenses if e.budget_id is None]
        conflicts = [
            ExpenseConflict(
                expense_id=e.id,
                description=e.description,
                amount=e.amount,
                current_budget_id=e.budget_id,
            )
            for e in expenses
            if e.budget_id is not None and e.budget_id != budget_id
        ]

        for expense in unassigned:
            expense.budget_id = budget_id
        await self.db.flush()

        result = BudgetAssignmentResult(
            budget_id=budget_id,
            assigned_count=len(unassigned),
            total_amount=sum((e.amount for e in unassigned), Decimal(0)),
            skipped_count=len(conflicts),
            conflicts=conflicts,
        )

        logger.info(
            "Expenses assigned to budget",
            budget_id=str(budget_id),
            user_id=str(user_id),
            assigned_count=result.assigned_count,
            skipped_count=result.skipped_count,
        )

        return result

    async def get_budget_progress(
        self, user_id: UUID, active_only: bool = True, today: Optional[date_type] = None
    ) -> List[BudgetProgress]:
        """Spending against each budget, counting the expenses linked to it.

        Args:
            user_id: User ID
            active_only: Only budgets covering today
            today: Reference date (default: today)

        Returns:
            One BudgetProgress per budget
        """
        budgets = await self.list_budgets(user_id, active_only=active_only, today=today)
        if not budgets:
            return []

        spent_stmt = (
            select(Expense.budget_id, func.sum(Expense.amount).label("total_spent"))
            .where(Expense.budget_id.in_([b.id for b in budgets]))
            .group_by(Expense.budget_id)
        )
        spending = {
            row.budget_id: Decimal(str(row.total_spent))
            for row in (await self.db.execute(spent_stmt)).all()
        }

        names_stmt = select(Category.id, Category.name).where(
            Category.id.in_({b.category_id for b in budgets})
        )
        names = {row.id: row.name for row in (await self.db.execute(names_stmt)).all()}

        progress = []
        for budget in budgets:
            spent = spending.get(budget.id, Decimal(0))
            progress.append(
                BudgetProgress(
                    budget_id=budget.id,
                    category_id=budget.category_id,
                    category_name=names.get(budget.category_id, ""),
                    budget_amount=budget.amount,
                    spent_amount=spent,
                    remaining_amount=budget.amount - spent,
                    spent_percentage=float(spent / budget.amount * 100) if budget.amount > 0 else 0.0,
                    period_start=budget.period_start,
                    period_end=budget.period_end,
                )
            )

        logger.debug("Budget progress calculated", user_id=str(user_id), budgets=len(progress))

        return progress

    async def get_budget_alerts(
        self, user_id: UUID, today: Optional[date_type] = None
    ) -> List[BudgetAlert]:
        """Alerts for active budgets that are over or close to their limit."""
        alerts = []
        for prog in await self.get_budget_progress(user_id, active_only=True, today=today):
            if prog.spent_amount > prog.budget_amount:
                alerts.append(
                    BudgetAlert(
                        budget_id=prog.budget_id,
                        category_name=prog.category_name,
                        type="over_budget",
                        severity="high",
                        spent_percentage=prog.spent_percentage,
                        message=(
                            f"You've exceeded your {prog.category_name} budget by "
                            f"{prog.spent_percentage - 100:.1f}%"
                        ),
                    )
                )
            elif prog.spent_percentage >= NEAR_LIMIT_PERCENTAGE:
                alerts.append(
                    BudgetAlert(
                        budget_id=prog.budget_id,
                        category_name=prog.category_name,
                        type="near_limit",
                        severity=(
                            "medium"
                            if prog.spent_percentage >= MEDIUM_SEVERITY_PERCENTAGE
                            else "low"
                        ),
                        spent_percentage=prog.spent_percentage,
                        message=(
                            f"You've used {prog.spent_percentage:.1f}% of your "
                            f"{prog.category_name} budget"
                        ),
                    )
                )

        if alerts:
            logger.warning("Budget alerts generated", user_id=str(user_id), alert_count=len(alerts))

        return alerts
