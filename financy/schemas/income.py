"""Income schemas for request/response validation."""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class IncomeCreate(BaseModel):
    """Schema for recording an income."""
    amount: Decimal = Field(..., gt=0, description="Income amount")
    description: str = Field(..., min_length=1, max_length=500, description="Income description")
    date: date_type = Field(..., description="Income date")
    source: Optional[str] = Field(None, max_length=100, description="Employer, client, etc.")
    is_recurring: bool = Field(default=False, description="Repeats every month")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)


class IncomeUpdate(BaseModel):
    """Schema for updating an income."""
    amount: Optional[Decimal] = Field(None, gt=0, description="Income amount")
    description: Optional[str] = Field(None, min_length=1, max_length=500, description="Income description")
    date: Optional[date_type] = Field(None, description="Income date")
    source: Optional[str] = Field(None, max_length=100, description="Source")
    is_recurring: Optional[bool] = Field(None, description="Repeats every month")


class IncomeResponse(BaseModel):
    """Schema for income response."""
    id: UUID
    user_id: UUID
    amount: Decimal
    currency: str
    description: str
    source: Optional[str] = None
    date: date_type
    is_recurring: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
