"""Budget schemas for request/response validation."""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class BudgetCreate(BaseModel):
    """Schema for creating a new budget."""
    category_id: UUID = Field(..., description="Category the budget limits")
    amount: Decimal = Field(..., gt=0, description="Budgeted amount")
    period_start: date_type = Field(..., description="Budget period start date")
    period_end: date_type = Field(..., description="Budget period end date")
    allocation_percentage: Optional[float] = Field(None, ge=0, le=100, description="Share of available funds")
    priority: int = Field(default=5, ge=1, le=10, description="Higher wins when budgets overlap")
    rollover_amount: Decimal = Field(default=Decimal(0), ge=0, description="Carried over amount")
    assign_to_existing: bool = Field(default=False, description="Link unassigned expenses of the period")

    @field_validator("period_end")
    @classmethod
    def validate_period(cls, v: date_type, info) -> date_type:
        """Validate period_end is after period_start."""
        if "period_start" in info.data and v < info.data["period_start"]:
            raise ValueError("period_end must be after period_start")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)


class BudgetUpdate(BaseModel):
    """Schema for updating a budget."""
    amount: Optional[Decimal] = Field(None, gt=0, description="Budgeted amount")
    period_start: Optional[date_type] = Field(None, description="Budget period start date")
    period_end: Optional[date_type] = Field(None, description="Budget period end date")
    priority: Optional[int] = Field(None, ge=1, le=10, description="Priority")
    rollover_amount: Optional[Decimal] = Field(None, ge=0, description="Carried over amount")


class BudgetResponse(BaseModel):
    """Schema for budget response."""
    id: UUID
    user_id: UUID
    category_id: UUID
    amount: Decimal
    period_start: date_type
    period_end: date_type
    allocation_percentage: Optional[float] = None
    priority: int
    rollover_amount: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BudgetProgressResponse(BaseModel):
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

    model_config = {"from_attributes": True}


class BudgetAlertResponse(BaseModel):
    """Schema for budget alert response."""
    budget_id: UUID
    category_name: str
    type: str
    severity: str
    spent_percentage: float
    message: str

    model_config = {"from_attributes": True}


class ExpenseConflictResponse(BaseModel):
    """Expense already linked to another budget."""
    expense_id: UUID
    description: str
    amount: Decimal
    current_budget_id: UUID

    model_config = {"from_attributes": True}


class AssignmentPreviewResponse(BaseModel):
    """What linking existing expenses would do."""
    matching_expenses: int
    total_amount: Decimal
    conflict_count: int
    has_conflicts: bool

    model_config = {"from_attributes": True}


class BudgetAssignmentResponse(BaseModel):
    """Outcome of linking existing expenses to a budget."""
    budget_id: UUID
    assigned_count: int
    total_amount: Decimal
    skipped_count: int
    conflicts: list[ExpenseConflictResponse]

    model_config = {"from_attributes": True}
