"""Income service for recording and summing incomes."""

from datetime import datetime, date as date_type
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from financy.config import settings
from financy.models.income import Income
from financy.schemas.records import IncomeRecord
from financy.logging_config import get_logger

logger = get_logger(__name__)


class IncomeService:
    """Service for managing incomes."""

    def __init__(self, db: AsyncSession):
        """Initialize income service.

        Args:
            db: Database session
        """
        self.db = db

    async def create_income(
        self,
        user_id: UUID,
        amount: Decimal,
        description: str,
        income_date: date_type,
        source: Optional[str] = None,
        is_recurring: bool = False,
        currency: Optional[str] = None,
    ) -> Income:
        """Record an income.

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError("Income amount must be positive")

        income = Income(
            user_id=user_id,
            amount=amount,
            currency=currency or settings.default_currency,
            description=description,
            source=source,
            date=income_date,
            is_recurring=is_recurring,
        )
        self.db.add(income)
        await self.db.flush()
        await self.db.refresh(income)

        logger.info(
            "Income created", income_id=str(income.id), user_id=str(user_id), amount=str(amount)
        )

        return income

    async def get_income(self, income_id: UUID, user_id: UUID) -> Optional[Income]:
        stmt = select(Income).where(and_(Income.id == income_id, Income.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_incomes(
        self,
        user_id: UUID,
        start_date: Optional[date_type] = None,
        end_date: Optional[date_type] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Income]:
        """List incomes, newest first, optionally within a date range."""
        stmt = select(Income).where(Income.user_id == user_id)
        if start_date:
            stmt = stmt.where(Income.date >= start_date)
        if end_date:
            stmt = stmt.where(Income.date <= end_date)

        stmt = stmt.order_by(Income.date.desc(), Income.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_incomes_in_range(
        self, user_id: UUID, start_date: date_type, end_date: date_type
    ) -> List[IncomeRecord]:
        stmt = select(Income).where(
            and_(Income.user_id == user_id, Income.date >= start_date, Income.date <= end_date)
        )
        result = await self.db.execute(stmt)
        return [IncomeRecord.model_validate(i) for i in result.scalars().all()]

    async def sum_income_in_range(
        self, user_id: UUID, start_date: date_type, end_date: date_type
    ) -> Decimal:
        """Total income recorded within a period."""
        incomes = await self.list_incomes_in_range(user_id, start_date, end_date)
        return sum((income.amount for income in incomes), Decimal(0))

    async def update_income(
        self,
        income_id: UUID,
        user_id: UUID,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        income_date: Optional[date_type] = None,
        source: Optional[str] = None,
        is_recurring: Optional[bool] = None,
    ) -> Optional[Income]:
        income = await self.get_income(income_id, user_id)
        if not income:
            return None

        if amount is not None:
            if amount <= 0:
                raise ValueError("Income amount must be positive")
            income.amount = amount

        if description is not None:
            income.description = description

        if income_date is not None:
            income.date = income_date

        if source is not None:
            income.source = source

        if is_recurring is not None:
            income.is_recurring = is_recurring

        income.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(income)

        logger.info("Income updated", income_id=str(income_id), user_id=str(user_id))

        return income

    async def delete_income(self, income_id: UUID, user_id: UUID) -> bool:
        income = await self.get_income(income_id, user_id)
        if not income:
            return False

        await self.db.delete(income)
        await self.db.flush()

        logger.info("Income deleted", income_id=str(income_id), user_id=str(user_id))

        return True
