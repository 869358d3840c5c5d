"""Goal service for managing savings goals, their entries and progress."""

from datetime import datetime, date as date_type
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from financy.models.goal import GoalEntry, SavingsGoal
from financy.schemas.records import GoalEntryRecord, GoalRecord
from financy.services.goal_progress import (
    GoalInsight,
    GoalStats,
    build_goal_insight,
    compute_goal_stats,
)
from financy.logging_config import get_logger

logger = get_logger(__name__)

# How many entries accompany a goal in listings and in the detail view
LIST_RECENT_ENTRIES = 5
DETAIL_RECENT_ENTRIES = 10


class GoalService:
    """Service for managing savings goals and tracking progress."""

    def __init__(self, db: AsyncSession):
        """Initialize goal service.

        Args:
            db: Database session
        """
        self.db = db

    async def create_goal(
        self,
        user_id: UUID,
        name: str,
        target_amount: Decimal,
        target_date: date_type,
        category_id: Optional[UUID] = None,
        budget_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        """Create a new savings goal.

        Args:
            user_id: User ID
            name: Goal name
            target_amount: Amount to save
            target_date: Date the goal should be reached by
            category_id: Optional linked category
            budget_id: Optional linked budget

        Returns:
            Created goal

        Raises:
            ValueError: If target_amount is not positive
        """
        if target_amount <= 0:
            raise ValueError("Target amount must be positive")

        goal = SavingsGoal(
            user_id=user_id,
            name=name,
            target_amount=target_amount,
            target_date=target_date,
            category_id=category_id,
            budget_id=budget_id,
        )

        self.db.add(goal)
        await self.db.flush()
        await self.db.refresh(goal)

        logger.info(
            "Savings goal created",
            goal_id=str(goal.id),
            user_id=str(user_id),
            name=name,
            target_amount=str(target_amount),
            target_date=str(target_date),
        )

        return goal

    async def get_goal(self, goal_id: UUID, user_id: UUID) -> Optional[SavingsGoal]:
        """Get a goal by ID.

        Args:
            goal_id: Goal ID
            user_id: User ID (for authorization)

        Returns:
            Goal if found and belongs to user, None otherwise
        """
        stmt = select(SavingsGoal).where(
            and_(SavingsGoal.id == goal_id, SavingsGoal.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_goals(self, user_id: UUID) -> List[SavingsGoal]:
        """List all goals for a user, newest first."""
        stmt = (
            select(SavingsGoal)
            .where(SavingsGoal.user_id == user_id)
            .order_by(SavingsGoal.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_goal(
        self,
        goal_id: UUID,
        user_id: UUID,
        name: Optional[str] = None,
        target_amount: Optional[Decimal] = None,
        target_date: Optional[date_type] = None,
        category_id: Optional[UUID] = None,
        budget_id: Optional[UUID] = None,
    ) -> Optional[SavingsGoal]:
        """Update a goal.

        Args:
            goal_id: Goal ID
            user_id: User ID (for authorization)
            name: New name (optional)
            target_amount: New target amount (optional)
            target_date: New target date (optional)
            category_id: New linked category (optional)
            budget_id: New linked budget (optional)

        Returns:
            Updated goal if found, None otherwise
        """
        goal = await self.get_goal(goal_id, user_id)
        if not goal:
            return None

        if name is not None:
            goal.name = name

        if target_amount is not None:
            if target_amount <= 0:
                raise ValueError("Target amount must be positive")
            goal.target_amount = target_amount

        if target_date is not None:
            goal.target_date = target_date

        if category_id is not None:
            goal.category_id = category_id

        if budget_id is not None:
            goal.budget_id = budget_id

        goal.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(goal)

        logger.info("Goal updated", goal_id=str(goal_id), user_id=str(user_id))

        return goal

    async def delete_goal(self, goal_id: UUID, user_id: UUID) -> bool:
        """Delete a goal together with its entries.

        Args:
            goal_id: Goal ID
            user_id: User ID (for authorization)

        Returns:
            True if deleted, False if not found
        """
        goal = await self.get_goal(goal_id, user_id)
        if not goal:
            return False

        entries = await self._entries_for([goal_id])
        for entry in entries:
            await self.db.delete(entry)
        await self.db.delete(goal)
        await self.db.flush()

        logger.info(
            "Goal deleted", goal_id=str(goal_id), user_id=str(user_id), entries_removed=len(entries)
        )

        return True

    async def create_entry(
        self,
        user_id: UUID,
        goal_id: UUID,
        amount: Decimal,
        description: Optional[str] = None,
        entry_date: Optional[date_type] = None,
    ) -> Optional[GoalEntry]:
        """Add money to (positive) or withdraw money from (negative) a goal.

        Args:
            user_id: User ID
            goal_id: Goal ID
            amount: Signed amount, must not be zero
            description: Optional description
            entry_date: Entry date (default: today)

        Returns:
            Created entry, None if the goal does not exist for the user

        Raises:
            ValueError: If amount is zero
        """
        if amount == 0:
            raise ValueError("Entry amount cannot be zero")

        goal = await self.get_goal(goal_id, user_id)
        if not goal:
            return None

        entry = GoalEntry(
            goal_id=goal_id,
            user_id=user_id,
            amount=amount,
            description=description,
            date=entry_date or datetime.utcnow().date(),
        )

        self.db.add(entry)
        await self.db.flush()
        await self.db.refresh(entry)

        logger.info(
            "Goal entry created",
            entry_id=str(entry.id),
            goal_id=str(goal_id),
            user_id=str(user_id),
            amount=str(amount),
        )

        return entry

    async def list_entries(self, goal_id: UUID, user_id: UUID) -> Optional[List[GoalEntry]]:
        """List entries of a goal, newest first.

        Returns:
            Entries, None if the goal does not exist for the user
        """
        goal = await self.get_goal(goal_id, user_id)
        if not goal:
            return None
        return await self._entries_for([goal_id])

    async def delete_entry(self, entry_id: UUID, user_id: UUID) -> bool:
        """Delete a single goal entry.

        Returns:
            True if deleted, False if not found
        """
        stmt = select(GoalEntry).where(
            and_(GoalEntry.id == entry_id, GoalEntry.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        entry = result.scalar_one_or_none()
        if not entry:
            return False

        await self.db.delete(entry)
        await self.db.flush()

        logger.info("Goal entry deleted", entry_id=str(entry_id), user_id=str(user_id))

        return True

    async def list_entries_in_range(
        self, user_id: UUID, start_date: date_type, end_date: date_type
    ) -> List[GoalEntryRecord]:
        """All of a user's goal entries dated within a period."""
        stmt = (
            select(GoalEntry)
            .where(
                and_(
                    GoalEntry.user_id == user_id,
                    GoalEntry.date >= start_date,
                    GoalEntry.date <= end_date,
                )
            )
            .order_by(GoalEntry.date.desc())
        )
        result = await self.db.execute(stmt)
        return [GoalEntryRecord.model_validate(e) for e in result.scalars().all()]

    async def get_goal_insight(
        self, goal_id: UUID, user_id: UUID, now: Optional[datetime] = None
    ) -> Optional[GoalInsight]:
        """Get a goal with its progress and latest entries.

        Args:
            goal_id: Goal ID
            user_id: User ID
            now: Reference instant (default: current UTC time)

        Returns:
            GoalInsight if goal found, None otherwise
        """
        goal = await self.get_goal(goal_id, user_id)
        if not goal:
            return None

        entries = await self._entries_for([goal_id])
        return build_goal_insight(
            GoalRecord.model_validate(goal),
            [GoalEntryRecord.model_validate(e) for e in entries],
            now or datetime.utcnow(),
            DETAIL_RECENT_ENTRIES,
        )

    async def list_goal_insights(
        self, user_id: UUID, now: Optional[datetime] = None
    ) -> List[GoalInsight]:
        """Get every goal of a user with progress, newest goal first."""
        goals = await self.list_goals(user_id)
        if not goals:
            return []

        entries_by_goal: Dict[UUID, List[GoalEntryRecord]] = {goal.id: [] for goal in goals}
        for entry in await self._entries_for(list(entries_by_goal)):
            entries_by_goal[entry.goal_id].append(GoalEntryRecord.model_validate(entry))

        reference = now or datetime.utcnow()
        insights = [
            build_goal_insight(
                GoalRecord.model_validate(goal),
                entries_by_goal[goal.id],
                reference,
                LIST_RECENT_ENTRIES,
            )
            for goal in goals
        ]

        logger.debug("Goal progress calculated", user_id=str(user_id), goals=len(insights))

        return insights

    async def get_goal_stats(self, user_id: UUID, now: Optional[datetime] = None) -> GoalStats:
        """Aggregate goal counters for a user."""
        return compute_goal_stats(await self.list_goal_insights(user_id, now))

    async def _entries_for(self, goal_ids: List[UUID]) -> List[GoalEntry]:
        stmt = (
            select(GoalEntry)
            .where(GoalEntry.goal_id.in_(goal_ids))
            .order_by(GoalEntry.date.desc(), GoalEntry.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
