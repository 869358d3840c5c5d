"""Expense model for storing spending records."""

from __future__ import annotations

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from financy.models.base import Base

if TYPE_CHECKING:
    from financy.models.user import User
    from financy.models.category import Category
    from financy.models.budget import Budget


PAYMENT_METHODS = (
    "efectivo",
    "tarjeta_debito",
    "tarjeta_credito",
    "transferencia",
    "paypal",
    "bizum",
    "otro",
)

EXPENSE_SOURCES = ("manual", "iphone", "email")


class Expense(Base):
    """Expense record, optionally categorised and linked to a budget."""

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PEN")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    budget_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("budgets.id", ondelete="SET NULL"), nullable=True, index=True
    )
    merchant: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False, default="otro")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="manual")
    confidence_score: Mapped[Optional[float]] = mapped_column(Float)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    raw_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, comment="Original integration payload kept for debugging"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="expenses")
    category: Mapped[Optional["Category"]] = relationship("Category", lazy="raise")
    budget: Mapped[Optional["Budget"]] = relationship(
        "Budget", back_populates="expenses", lazy="raise"
    )

    # Table constraints
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_expense_amount_positive"),
        CheckConstraint("source IN ('manual', 'iphone', 'email')", name="check_expense_source"),
        CheckConstraint(
            "confidence_score IS NULL OR (confidence_score >= 0 AND confidence_score <= 1)",
            name="check_expense_confidence_range",
        ),
        # Composite indexes for common queries
        Index("idx_expenses_user_date", "user_id", "date"),
        Index("idx_expenses_user_category", "user_id", "category_id"),
    )

    def __repr__(self) -> str:
        """String representation of Expense."""
        return (
            f"<Expense(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, date={self.date})>"
        )
