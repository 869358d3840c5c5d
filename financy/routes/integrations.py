"""Integration endpoints for expenses sent by iPhone shortcuts and email scrapers."""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from financy.config import settings
from financy.database import get_db
from financy.schemas.expense import (
    IntegrationExpenseCreate,
    IntegrationExpenseResponse,
    IntegrationSource,
    PaymentMethod,
)
from financy.services.email_parser import parse_email_to_expense
from financy.services.expense_service import ExpenseService
from financy.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Rate limiter for integration endpoints
limiter = Limiter(key_func=get_remote_address)


class EmailImportRequest(BaseModel):
    """Gmail API message to turn into an expense."""
    message: dict[str, Any] = Field(..., description="Gmail users.messages.get resource")
    confidence_score: Optional[float] = Field(
        None, ge=0, le=1, description="Override the parser's confidence"
    )


async def get_expense_service(db: AsyncSession = Depends(get_db)) -> ExpenseService:
    """Get expense service instance."""
    return ExpenseService(db)


def _to_response(expense, category) -> IntegrationExpenseResponse:
    return IntegrationExpenseResponse(
        id=expense.id,
        amount=expense.amount,
        description=expense.description,
        category=category.name if category else None,
        source=expense.source,
        needs_review=expense.needs_review,
        created_at=expense.created_at,
    )


@router.get("/expenses")
async def describe_expenses_endpoint() -> dict:
    """Describe the expense integration endpoint."""
    return {
        "endpoint": "/api/integrations/expenses",
        "method": "POST",
        "query": {"user_id": "UUID of the user the expense belongs to"},
        "required_fields": ["amount", "description", "source"],
        "optional_fields": [
            "merchant", "category", "date", "payment_method",
            "tags", "notes", "confidence_score", "currency", "raw_data",
        ],
        "sources": [s.value for s in IntegrationSource],
        "payment_methods": [m.value for m in PaymentMethod],
        "rate_limit": settings.integration_rate_limit,
    }


@router.post("/expenses", response_model=IntegrationExpenseResponse, status_code=201)
@limiter.limit(settings.integration_rate_limit)
async def create_integration_expense(
    payload: IntegrationExpenseCreate,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> IntegrationExpenseResponse:
    """Record an expense sent by an integration.

    The category is matched by name fragment. Emails parsed with low
    confidence are flagged for review.

    Args:
        payload: Integration expense data
        request: HTTP request (for rate limiting)
        user_id: User ID
        service: Expense service

    Returns:
        Short confirmation of the created expense
    """
    try:
        expense, category = await service.create_integration_expense(user_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(expense, category)


@router.post("/email", response_model=IntegrationExpenseResponse, status_code=201)
@limiter.limit(settings.integration_rate_limit)
async def import_email_expense(
    payload: EmailImportRequest,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> IntegrationExpenseResponse:
    """Parse a transaction email and record the expense it describes.

    Raises:
        HTTPException: 422 if the message is not a financial email with an amount
    """
    parsed = parse_email_to_expense(payload.message)
    if parsed is None:
        logger.info("Email rejected", user_id=str(user_id), message_id=payload.message.get("id"))
        raise HTTPException(status_code=422, detail="No expense found in email")

    confidence = (
        payload.confidence_score if payload.confidence_score is not None else parsed.confidence
    )
    data = IntegrationExpenseCreate(
        amount=parsed.amount,
        description=parsed.description[:500],
        source=IntegrationSource.EMAIL,
        merchant=parsed.merchant[:200],
        category=parsed.category,
        date=parsed.date,
        confidence_score=confidence,
        currency=parsed.currency,
        raw_data={"message_id": payload.message.get("id"), "parsed": parsed.to_dict()},
    )
    try:
        expense, category = await service.create_integration_expense(user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(expense, category)
