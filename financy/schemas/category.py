"""Category schemas for request/response validation."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CategoryCreate(BaseModel):
    """Schema for creating a category."""
    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    icon: Optional[str] = Field(None, max_length=50, description="Icon name or emoji")
    color: Optional[str] = Field(None, max_length=20, description="Display color")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


class CategoryUpdate(BaseModel):
    """Schema for updating a category."""
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Category name")
    icon: Optional[str] = Field(None, max_length=50, description="Icon name or emoji")
    color: Optional[str] = Field(None, max_length=20, description="Display color")


class CategoryResponse(BaseModel):
    """Schema for category response."""
    id: UUID
    user_id: UUID
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
