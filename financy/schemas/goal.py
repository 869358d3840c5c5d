"""Goal schemas for request/response validation."""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from financy.services.goal_progress import GoalStatus

MAX_AMOUNT = Decimal("999999999.99")


class GoalCreate(BaseModel):
    """Schema for creating a new savings goal."""

    name: str = Field(..., min_length=1, max_length=100, description="Goal name")
    target_amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, description="Target amount to save")
    target_date: date_type = Field(..., description="Date the goal should be reached by")
    category_id: Optional[UUID] = Field(None, description="Optional linked category")
    budget_id: Optional[UUID] = Field(None, description="Optional linked budget")

    @field_validator("target_amount")
    @classmethod
    def validate_target_amount(cls, v: Decimal) -> Decimal:
        """Validate amount is properly formatted."""
        return round(v, 2)

    @field_validator("target_date")
    @classmethod
    def validate_target_date(cls, v: date_type) -> date_type:
        """Target date must be in the future."""
        if v <= datetime.utcnow().date():
            raise ValueError("Target date must be in the future")
        return v


class GoalUpdate(BaseModel):
    """Schema for updating a goal."""

    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Goal name")
    target_amount: Optional[Decimal] = Field(None, gt=0, le=MAX_AMOUNT, description="Target amount")
    target_date: Optional[date_type] = Field(None, description="Target date")
    category_id: Optional[UUID] = Field(None, description="Linked category")
    budget_id: Optional[UUID] = Field(None, description="Linked budget")

    @field_validator("target_amount")
    @classmethod
    def validate_target_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        """Validate target amount if provided."""
        if v is not None:
            return round(v, 2)
        return v


class GoalEntryCreate(BaseModel):
    """Contribution (positive) or withdrawal (negative) on a goal."""

    amount: Decimal = Field(..., description="Signed amount, non-zero")
    description: Optional[str] = Field(None, max_length=255, description="Entry description")
    date: Optional[date_type] = Field(None, description="Entry date (default: today)")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Amount must be non-zero and within range."""
        if v == 0:
            raise ValueError("Amount cannot be zero")
        if abs(v) > MAX_AMOUNT:
            raise ValueError("Amount is too large")
        return round(v, 2)


class GoalResponse(BaseModel):
    """Schema for goal response."""

    id: UUID
    user_id: UUID
    name: str
    target_amount: Decimal
    target_date: date_type
    category_id: Optional[UUID] = None
    budget_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GoalEntryResponse(BaseModel):
    """Schema for goal entry response."""

    id: UUID
    goal_id: UUID
    amount: Decimal
    description: Optional[str] = None
    date: date_type
    created_at: datetime

    model_config = {"from_attributes": True}


class GoalProgressResponse(BaseModel):
    """Schema for goal progress response."""

    current_amount: Decimal
    percentage: float
    remaining_amount: Decimal
    days_remaining: Optional[int] = None
    daily_target: Optional[Decimal] = None
    monthly_target: Optional[Decimal] = None
    on_track: bool
    status: GoalStatus

    model_config = {"from_attributes": True}

    @field_validator("daily_target", "monthly_target")
    @classmethod
    def round_targets(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None:
            return round(v, 2)
        return v


class GoalInsightResponse(BaseModel):
    """Goal with its progress and latest entries."""

    goal: GoalResponse
    current_amount: Decimal
    progress: GoalProgressResponse
    recent_entries: list[GoalEntryResponse]

    model_config = {"from_attributes": True}


class GoalStatsResponse(BaseModel):
    """Schema for goal statistics response."""

    total_goals: int
    achieved_goals: int
    in_progress_goals: int
    overdue_goals: int
    total_saved: Decimal
    total_target: Decimal

    model_config = {"from_attributes": True}
