"""Category service for managing a user's category taxonomy."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, and_, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from financy.models.budget import Budget
from financy.models.category import Category
from financy.models.expense import Expense
from financy.models.goal import SavingsGoal
from financy.logging_config import get_logger

logger = get_logger(__name__)


class CategoryService:
    """Service for creating and maintaining categories."""

    def __init__(self, db: AsyncSession):
        """Initialize category service.

        Args:
            db: Database session
        """
        self.db = db

    async def create_category(
        self,
        user_id: UUID,
        name: str,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Category:
        """Create a category.

        Raises:
            ValueError: If the user already has a category with that name
        """
        if await self.find_by_name(user_id, name, exact=True):
            raise ValueError(f"Category '{name}' already exists")

        category = Category(user_id=user_id, name=name, icon=icon, color=color)
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)

        logger.info("Category created", category_id=str(category.id), user_id=str(user_id))

        return category

    async def get_category(self, category_id: UUID, user_id: UUID) -> Optional[Category]:
        stmt = select(Category).where(and_(Category.id == category_id, Category.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_categories(self, user_id: UUID) -> List[Category]:
        stmt = select(Category).where(Category.user_id == user_id).order_by(Category.name)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_name(
        self, user_id: UUID, name: str, exact: bool = False
    ) -> Optional[Category]:
        """Find a category by name, case-insensitively.

        Args:
            user_id: User ID
            name: Name or name fragment
            exact: Require the whole name to match instead of a substring

        Returns:
            First matching category by name, None if nothing matches
        """
        needle = name.strip().lower()
        condition = (
            func.lower(Category.name) == needle
            if exact
            else func.lower(Category.name).contains(needle, autoescape=True)
        )
        stmt = (
            select(Category)
            .where(and_(Category.user_id == user_id, condition))
            .order_by(Category.name)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_category(
        self,
        category_id: UUID,
        user_id: UUID,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Optional[Category]:
        category = await self.get_category(category_id, user_id)
        if not category:
            return None

        if name is not None and name != category.name:
            existing = await self.find_by_name(user_id, name, exact=True)
            if existing and existing.id != category_id:
                raise ValueError(f"Category '{name}' already exists")
            category.name = name

        if icon is not None:
            category.icon = icon

        if color is not None:
            category.color = color

        category.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(category)

        logger.info("Category updated", category_id=str(category_id), user_id=str(user_id))

        return category

    async def delete_category(self, category_id: UUID, user_id: UUID) -> bool:
        """Delete a category.

        Its expenses become uncategorised and lose their budget link, and its budgets
        are removed.
        """
        category = await self.get_category(category_id, user_id)
        if not category:
            return False

        budget_ids = select(Budget.id).where(Budget.category_id == category_id)
        await self.db.execute(
            update(Expense)
            .where(Expense.budget_id.in_(budget_ids))
            .values(budget_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Expense)
            .where(Expense.category_id == category_id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(SavingsGoal)
            .where(SavingsGoal.category_id == category_id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(delete(Budget).where(Budget.category_id == category_id))
        await self.db.delete(category)
        await self.db.flush()

        logger.info("Category deleted", category_id=str(category_id), user_id=str(user_id))

        return True
