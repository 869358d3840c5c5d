"""Budget wizard schemas for request/response validation."""

from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from financy.services.budget_allocation import BudgetAllocation, BudgetConflict, ConflictAction


class FinancialSummaryResponse(BaseModel):
    """Income, goal savings and what is left for budgets in a month."""
    total_income: Decimal
    goal_savings: Decimal
    available_for_budgets: Decimal
    month: int
    year: int

    model_config = {"from_attributes": True}


class CategorySpendingResponse(BaseModel):
    """Spending for one category inside one window."""
    category_id: UUID
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    total_spending: Decimal
    percentage: float
    transaction_count: int

    model_config = {"from_attributes": True}


class AtypicalExpenseResponse(BaseModel):
    """Category whose spending rose above its quarter average."""
    category_id: UUID
    category_name: str
    last_month_amount: Decimal
    quarter_average: Decimal
    percentage_increase: float
    is_significant: bool

    model_config = {"from_attributes": True}


class SpendingInsightsResponse(BaseModel):
    """Last month against the quarter average."""
    last_month: list[CategorySpendingResponse]
    quarter_average: list[CategorySpendingResponse]
    atypical_expenses: list[AtypicalExpenseResponse]
    total_last_month: Decimal
    total_quarter_average: Decimal

    model_config = {"from_attributes": True}


class EligibleCategoryResponse(BaseModel):
    """Category the wizard may propose a budget for."""
    id: UUID
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    total_spending: Decimal
    is_essential: bool
    has_recent_activity: bool

    model_config = {"from_attributes": True}


class EligibilityResponse(BaseModel):
    """Whether the wizard can be offered today."""
    can_use_wizard: bool
    total_income: Decimal
    eligible_categories: int


class BudgetAllocationSchema(BaseModel):
    """Proposed budget for one category, sent back and forth between steps."""
    category_id: UUID
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    last_month_percentage: float = Field(default=0.0, ge=0)
    suggested_percentage: float = Field(default=0.0, ge=0, le=100)
    user_percentage: float = Field(default=0.0, ge=0, le=100)
    amount: Decimal = Field(default=Decimal(0), ge=0)
    is_essential: bool = False

    model_config = {"from_attributes": True}

    def to_allocation(self) -> BudgetAllocation:
        return BudgetAllocation(**self.model_dump())


class BudgetConflictSchema(BaseModel):
    """Existing budget overlapping the wizard's month, with the chosen action."""
    budget_id: UUID
    category_id: UUID
    category_name: str
    existing_amount: Decimal
    existing_period_start: date_type
    existing_period_end: date_type
    proposed_amount: Decimal = Decimal(0)
    action: ConflictAction = ConflictAction.REPLACE

    model_config = {"from_attributes": True}

    def to_conflict(self) -> BudgetConflict:
        return BudgetConflict(**self.model_dump())


class AdjustmentMode(str, Enum):
    """How the allocator step edits allocations."""
    PERCENTAGE = "percentage"
    AMOUNT = "amount"
    RESET = "reset"
    DISTRIBUTE = "distribute"


class AllocationAdjustRequest(BaseModel):
    """Edit one or all allocations against the available funds."""
    allocations: list[BudgetAllocationSchema]
    available: Decimal = Field(..., description="Funds available for budgets")
    mode: AdjustmentMode
    category_id: Optional[UUID] = Field(None, description="Allocation to edit in percentage/amount mode")
    value: Optional[Decimal] = Field(None, ge=0, description="New percentage or amount")

    @model_validator(mode="after")
    def validate_target(self) -> "AllocationAdjustRequest":
        if self.mode in (AdjustmentMode.PERCENTAGE, AdjustmentMode.AMOUNT):
            if self.category_id is None or self.value is None:
                raise ValueError("category_id and value are required for this mode")
        return self


class ConflictDetectionRequest(BaseModel):
    """Allocations about to be generated."""
    allocations: list[BudgetAllocationSchema]
    reference_date: Optional[date_type] = Field(None, description="Any day of the target month")


class WizardRequest(BaseModel):
    """Allocations and resolved conflicts for the confirmation and generation steps."""
    allocations: list[BudgetAllocationSchema]
    conflicts: list[BudgetConflictSchema] = Field(default_factory=list)
    reference_date: Optional[date_type] = Field(None, description="Any day of the target month")


class WizardSummaryResponse(BaseModel):
    """Totals shown before budgets are generated."""
    new_budgets: list[BudgetAllocationSchema]
    conflicts: list[BudgetConflictSchema]
    total_allocated: Decimal
    total_available: Decimal
    remaining_amount: Decimal
    unassigned_expenses_count: int

    model_config = {"from_attributes": True}


class GenerateBudgetsResponse(BaseModel):
    """Budgets created by the wizard."""
    created_budget_ids: list[UUID]
    replaced_budget_ids: list[UUID]
