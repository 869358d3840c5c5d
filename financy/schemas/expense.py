"""Expense schemas for request/response validation."""

from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    EFECTIVO = "efectivo"
    TARJETA_DEBITO = "tarjeta_debito"
    TARJETA_CREDITO = "tarjeta_credito"
    TRANSFERENCIA = "transferencia"
    PAYPAL = "paypal"
    BIZUM = "bizum"
    OTRO = "otro"


class ExpenseSource(str, Enum):
    """Where an expense was recorded from."""
    MANUAL = "manual"
    IPHONE = "iphone"
    EMAIL = "email"


class IntegrationSource(str, Enum):
    """Sources accepted by the integration endpoint."""
    IPHONE = "iphone"
    EMAIL = "email"


def _round_amount(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None:
        if v <= 0:
            raise ValueError("Amount must be positive")
        return round(v, 2)
    return v


class ExpenseCreate(BaseModel):
    """Schema for creating a new expense."""
    amount: Decimal = Field(..., gt=0, description="Expense amount")
    date: date_type = Field(..., description="Expense date")
    description: str = Field(..., min_length=1, max_length=500, description="Expense description")
    category_id: Optional[UUID] = Field(None, description="Category ID")
    merchant: Optional[str] = Field(None, max_length=200, description="Merchant name")
    payment_method: PaymentMethod = Field(default=PaymentMethod.OTRO, description="Payment method")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")
    tags: list[str] = Field(default_factory=list, description="Tags")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Validate amount is positive and has max 2 decimal places."""
        return _round_amount(v)


class ExpenseUpdate(BaseModel):
    """Schema for updating an existing expense."""
    amount: Optional[Decimal] = Field(None, gt=0, description="Expense amount")
    date: Optional[date_type] = Field(None, description="Expense date")
    description: Optional[str] = Field(None, min_length=1, max_length=500, description="Expense description")
    category_id: Optional[UUID] = Field(None, description="Category ID")
    merchant: Optional[str] = Field(None, max_length=200, description="Merchant name")
    payment_method: Optional[PaymentMethod] = Field(None, description="Payment method")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")
    tags: Optional[list[str]] = Field(None, description="Tags")
    needs_review: Optional[bool] = Field(None, description="Clear or set the review flag")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        """Validate amount if provided."""
        return _round_amount(v)


class IntegrationExpenseCreate(BaseModel):
    """Expense sent by an iPhone shortcut or an email scraper."""
    amount: Decimal = Field(..., ge=Decimal("0.01"), description="Expense amount")
    description: str = Field(..., min_length=1, max_length=500, description="Expense description")
    source: IntegrationSource = Field(..., description="Either 'iphone' or 'email'")
    merchant: Optional[str] = Field(None, max_length=200, description="Merchant name")
    category: Optional[str] = Field(None, description="Category name or fragment")
    date: Optional[date_type] = Field(None, description="Expense date (default: today)")
    payment_method: Optional[PaymentMethod] = Field(None, description="Payment method")
    tags: list[str] = Field(default_factory=list, description="Tags")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-form notes")
    confidence_score: Optional[float] = Field(None, ge=0, le=1, description="Parser confidence")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code")
    raw_data: Optional[dict[str, Any]] = Field(None, description="Original payload for debugging")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Round to 2 decimal places."""
        return round(v, 2)


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: UUID
    user_id: UUID
    amount: Decimal
    currency: str
    date: date_type
    description: str
    category_id: Optional[UUID] = None
    budget_id: Optional[UUID] = None
    merchant: Optional[str] = None
    payment_method: PaymentMethod
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    source: ExpenseSource
    confidence_score: Optional[float] = None
    needs_review: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class IntegrationExpenseResponse(BaseModel):
    """Short confirmation returned to integrations."""
    id: UUID
    amount: Decimal
    description: str
    category: Optional[str] = None
    source: ExpenseSource
    needs_review: bool
    created_at: datetime


class ExpenseFilters(BaseModel):
    """Schema for filtering expenses."""
    start_date: Optional[date_type] = Field(None, description="Filter expenses from this date")
    end_date: Optional[date_type] = Field(None, description="Filter expenses until this date")
    category_id: Optional[UUID] = Field(None, description="Filter by category")
    needs_review: Optional[bool] = Field(None, description="Filter by review flag")
    search: Optional[str] = Field(None, max_length=200, description="Search in description")

    @field_validator("end_date")
    @classmethod
    def validate_date_range(cls, v: Optional[date_type], info) -> Optional[date_type]:
        """Validate end_date is after start_date."""
        if v is not None and "start_date" in info.data and info.data["start_date"] is not None:
            if v < info.data["start_date"]:
                raise ValueError("end_date must be after start_date")
        return v


class Pagination(BaseModel):
    """Schema for pagination parameters."""
    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=100, description="Number of items per page")

    @property
    def offset(self) -> int:
        """Calculate offset for database query."""
        return (self.page - 1) * self.page_size


class PaginatedExpenseResponse(BaseModel):
    """Schema for paginated expense list response."""
    items: list[ExpenseResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
