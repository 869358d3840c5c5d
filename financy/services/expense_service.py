"""Expense service for recording, querying and importing expenses."""

from datetime import datetime, date as date_type
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from financy.config import settings
from financy.models.budget import Budget
from financy.models.category import Category
from financy.models.expense import Expense
from financy.schemas.expense import (
    ExpenseCreate,
    ExpenseFilters,
    ExpenseSource,
    ExpenseUpdate,
    IntegrationExpenseCreate,
    IntegrationSource,
    Pagination,
    PaymentMethod,
)
from financy.schemas.records import ExpenseRow
from financy.services.category_service import CategoryService
from financy.logging_config import get_logger

logger = get_logger(__name__)


class ExpenseService:
    """Service for managing expenses with CRUD operations and integration imports."""

    def __init__(self, db: AsyncSession):
        """Initialize expense service.

        Args:
            db: Database session
        """
        self.db = db
        self.categories = CategoryService(db)

    async def create_expense(
        self,
        user_id: UUID,
        expense_data: ExpenseCreate,
        source: ExpenseSource = ExpenseSource.MANUAL,
        confidence_score: Optional[float] = None,
        needs_review: bool = False,
        raw_data: Optional[dict] = None,
    ) -> Expense:
        """Create a new expense.

        The expense is linked to the highest-priority budget of its category
        covering its date, when there is one.

        Args:
            user_id: User ID
            expense_data: Expense creation data
            source: Where the expense came from
            confidence_score: Parser confidence for imported expenses
            needs_review: Flag the expense for manual review
            raw_data: Original payload for imported expenses

        Returns:
            Created expense

        Raises:
            ValueError: If the category does not belong to the user
        """
        if expense_data.category_id is not None:
            if not await self.categories.get_category(expense_data.category_id, user_id):
                raise ValueError(f"Category {expense_data.category_id} not found")

        budget_id = None
        if expense_data.category_id is not None:
            budget_id = await self.find_budget_for_expense(
                user_id, expense_data.category_id, expense_data.date
            )

        expense = Expense(
            user_id=user_id,
            amount=expense_data.amount,
            currency=expense_data.currency or settings.default_currency,
            description=expense_data.description,
            date=expense_data.date,
            category_id=expense_data.category_id,
            budget_id=budget_id,
            merchant=expense_data.merchant,
            payment_method=expense_data.payment_method.value,
            notes=expense_data.notes,
            tags=list(expense_data.tags),
            source=source.value,
            confidence_score=confidence_score,
            needs_review=needs_review,
            raw_data=raw_data,
        )

        self.db.add(expense)
        await self.db.flush()
        await self.db.refresh(expense)

        logger.info(
            "Expense created",
            expense_id=str(expense.id),
            user_id=str(user_id),
            amount=str(expense.amount),
            source=source.value,
            budget_id=str(budget_id) if budget_id else None,
        )

        return expense

    async def create_integration_expense(
        self, user_id: UUID, data: IntegrationExpenseCreate
    ) -> tuple[Expense, Optional[Category]]:
        """Create an expense sent by an external integration.

        The category is matched by name fragment. Emails parsed with low
        confidence are flagged for review.

        Args:
            user_id: User ID
            data: Integration payload

        Returns:
            Tuple of (created expense, matched category or None)
        """
        category = None
        if data.category:
            category = await self.categories.find_by_name(user_id, data.category)

        confidence = data.confidence_score or 0
        needs_review = (
            data.source == IntegrationSource.EMAIL
            and confidence < settings.email_review_confidence
        )

        expense = await self.create_expense(
            user_id,
            ExpenseCreate(
                amount=data.amount,
                date=data.date or datetime.utcnow().date(),
                description=data.description,
                category_id=category.id if category else None,
                merchant=data.merchant,
                payment_method=data.payment_method or PaymentMethod.OTRO,
                notes=data.notes,
                tags=data.tags,
                currency=data.currency,
            ),
            source=ExpenseSource(data.source.value),
            confidence_score=data.confidence_score,
            needs_review=needs_review,
            raw_data=data.raw_data,
        )

        logger.info(
            "Integration expense received",
            expense_id=str(expense.id),
            user_id=str(user_id),
            source=data.source.value,
            category_matched=category is not None,
            needs_review=needs_review,
        )

        return expense, category

    async def get_expense(self, expense_id: UUID, user_id: UUID) -> Optional[Expense]:
        """Get an expense by ID.

        Args:
            expense_id: Expense ID
            user_id: User ID (for authorization)

        Returns:
            Expense if found and belongs to user, None otherwise
        """
        stmt = select(Expense).where(and_(Expense.id == expense_id, Expense.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_expense(
        self, expense_id: UUID, user_id: UUID, updates: ExpenseUpdate
    ) -> Optional[Expense]:
        """Update an existing expense.

        Args:
            expense_id: Expense ID
            user_id: User ID (for authorization)
            updates: Fields to update

        Returns:
            Updated expense if found, None otherwise
        """
        expense = await self.get_expense(expense_id, user_id)
        if not expense:
            logger.warning(
                "Expense not found for update", expense_id=str(expense_id), user_id=str(user_id)
            )
            return None

        update_data = updates.model_dump(exclude_unset=True)
        if update_data.get("category_id") is not None:
            if not await self.categories.get_category(update_data["category_id"], user_id):
                raise ValueError(f"Category {update_data['category_id']} not found")

        for field, value in update_data.items():
            if field == "payment_method" and value is not None:
                setattr(expense, field, value.value)
            else:
                setattr(expense, field, value)

        # Budget spending is read through budget_id, so the link follows category and date
        if "category_id" in update_data or "date" in update_data:
            expense.budget_id = (
                await self.find_budget_for_expense(user_id, expense.category_id, expense.date)
                if expense.category_id is not None
                else None
            )

        expense.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(expense)

        logger.info(
            "Expense updated",
            expense_id=str(expense_id),
            user_id=str(user_id),
            updated_fields=list(update_data.keys()),
        )

        return expense

    async def delete_expense(self, expense_id: UUID, user_id: UUID) -> bool:
        """Delete an expense.

        Returns:
            True if deleted, False if not found
        """
        expense = await self.get_expense(expense_id, user_id)
        if not expense:
            logger.warning(
                "Expense not found for deletion", expense_id=str(expense_id), user_id=str(user_id)
            )
            return False

        await self.db.delete(expense)
        await self.db.flush()

        logger.info("Expense deleted", expense_id=str(expense_id), user_id=str(user_id))

        return True

    async def list_expenses(
        self,
        user_id: UUID,
        filters: Optional[ExpenseFilters] = None,
        pagination: Optional[Pagination] = None,
    ) -> tuple[list[Expense], int]:
        """List expenses with filtering and pagination.

        Args:
            user_id: User ID
            filters: Optional filters
            pagination: Optional pagination parameters

        Returns:
            Tuple of (expenses list, total count)
        """
        stmt = select(Expense).where(Expense.user_id == user_id)

        if filters:
            if filters.start_date:
                stmt = stmt.where(Expense.date >= filters.start_date)
            if filters.end_date:
                stmt = stmt.where(Expense.date <= filters.end_date)
            if filters.category_id:
                stmt = stmt.where(Expense.category_id == filters.category_id)
            if filters.needs_review is not None:
                stmt = stmt.where(Expense.needs_review == filters.needs_review)
            if filters.search:
                stmt = stmt.where(Expense.description.ilike(f"%{filters.search}%"))

        count_stmt = stmt.with_only_columns(func.count()).order_by(None)
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = stmt.order_by(desc(Expense.date), desc(Expense.created_at))

        if pagination:
            stmt = stmt.offset(pagination.offset).limit(pagination.page_size)

        result = await self.db.execute(stmt)
        expenses = list(result.scalars().all())

        logger.debug("Expenses listed", user_id=str(user_id), count=len(expenses), total=total)

        return expenses, total

    async def list_expenses_in_range(
        self,
        user_id: UUID,
        start_date: date_type,
        end_date: date_type,
        category_ids: Optional[List[UUID]] = None,
    ) -> List[ExpenseRow]:
        """Expenses within a period, joined with category metadata.

        Args:
            user_id: User ID
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            category_ids: Optional category restriction

        Returns:
            Typed expense rows, newest first
        """
        stmt = (
            select(
                Expense.id,
                Expense.amount,
                Expense.date,
                Expense.description,
                Expense.budget_id,
                Expense.category_id,
                Category.name.label("category_name"),
                Category.icon.label("category_icon"),
                Category.color.label("category_color"),
            )
            .outerjoin(Category, Expense.category_id == Category.id)
            .where(
                and_(
                    Expense.user_id == user_id,
                    Expense.date >= start_date,
                    Expense.date <= end_date,
                )
            )
            .order_by(desc(Expense.date))
        )
        if category_ids is not None:
            stmt = stmt.where(Expense.category_id.in_(category_ids))

        result = await self.db.execute(stmt)
        return [ExpenseRow.model_validate(row) for row in result.all()]

    async def find_budget_for_expense(
        self, user_id: UUID, category_id: UUID, expense_date: date_type
    ) -> Optional[UUID]:
        """Highest-priority budget of a category whose period covers a date."""
        stmt = (
            select(Budget.id)
            .where(
                and_(
                    Budget.user_id == user_id,
                    Budget.category_id == category_id,
                    Budget.period_start <= expense_date,
                    Budget.period_end >= expense_date,
                )
            )
            .order_by(desc(Budget.priority))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
