"""Typed records validated at the data-access boundary.

Services convert ORM rows into these records before handing them to the
progress, insight and allocation calculators, so the calculators never see
partially loaded or loosely shaped rows.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class GoalRecord(BaseModel):
    """Savings goal as stored."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    name: str
    target_amount: Decimal
    target_date: date_type
    category_id: Optional[UUID] = None
    budget_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class GoalEntryRecord(BaseModel):
    """Single contribution or withdrawal on a goal."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    goal_id: UUID
    amount: Decimal
    description: Optional[str] = None
    date: date_type
    created_at: datetime
    updated_at: datetime


class ExpenseRow(BaseModel):
    """Expense joined with its category display metadata."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    amount: Decimal
    date: date_type
    description: str
    budget_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    category_color: Optional[str] = None


class BudgetRow(BaseModel):
    """Budget joined with its category name."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    category_id: UUID
    category_name: Optional[str] = None
    amount: Decimal
    period_start: date_type
    period_end: date_type


class IncomeRecord(BaseModel):
    """Income amount and date, enough for monthly summaries."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    amount: Decimal
    date: date_type
