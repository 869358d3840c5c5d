"""Budget model for per-category spending limits over a period."""

from __future__ import annotations

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from financy.models.base import Base

if TYPE_CHECKING:
    from financy.models.user import User
    from financy.models.category import Category
    from financy.models.expense import Expense


class Budget(Base):
    """Budget allocated to one category for a date period."""

    __tablename__ = "budgets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    period_end: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    allocation_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    rollover_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="budgets")
    category: Mapped["Category"] = relationship("Category", lazy="raise")
    expenses: Mapped[list["Expense"]] = relationship(
        "Expense", back_populates="budget", lazy="raise", passive_deletes=True
    )

    # Table constraints
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_budget_amount_positive"),
        CheckConstraint("period_end >= period_start", name="check_budget_period_order"),
        CheckConstraint("priority BETWEEN 1 AND 10", name="check_budget_priority_range"),
        # Composite indexes for common queries
        Index("idx_budgets_user_period", "user_id", "period_start", "period_end"),
        Index("idx_budgets_user_category", "user_id", "category_id"),
    )

    def __repr__(self) -> str:
        """String representation of Budget."""
        return (
            f"<Budget(id={self.id}, user_id={self.user_id}, category_id={self.category_id}, "
            f"period={self.period_start} to {self.period_end})>"
        )
