"""Savings goal and goal entry models."""

from __future__ import annotations

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from financy.models.base import Base

if TYPE_CHECKING:
    from financy.models.user import User


class SavingsGoal(Base):
    """Savings goal. Its current amount is always derived from its entries."""

    __tablename__ = "savings_goals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    budget_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("budgets.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="savings_goals")
    entries: Mapped[list["GoalEntry"]] = relationship(
        "GoalEntry",
        back_populates="goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    # Table constraints
    __table_args__ = (
        CheckConstraint("target_amount >= 0", name="check_goal_target_non_negative"),
        Index("idx_savings_goals_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation of SavingsGoal."""
        return (
            f"<SavingsGoal(id={self.id}, user_id={self.user_id}, "
            f"name={self.name}, target={self.target_amount}, target_date={self.target_date})>"
        )


class GoalEntry(Base):
    """Contribution (positive) or withdrawal (negative) on a savings goal."""

    __tablename__ = "goal_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    goal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("savings_goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    goal: Mapped["SavingsGoal"] = relationship("SavingsGoal", back_populates="entries")

    __table_args__ = (
        CheckConstraint("amount <> 0", name="check_goal_entry_amount_non_zero"),
        Index("idx_goal_entries_goal_date", "goal_id", "date"),
    )

    def __repr__(self) -> str:
        """String representation of GoalEntry."""
        return f"<GoalEntry(id={self.id}, goal_id={self.goal_id}, amount={self.amount})>"
