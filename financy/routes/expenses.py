"""Expense API endpoints."""

import math
from datetime import date as date_type
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseFilters,
    Pagination,
    PaginatedExpenseResponse,
)
from financy.services.expense_service import ExpenseService

router = APIRouter()


# Dependencies
async def get_expense_service(db: AsyncSession = Depends(get_db)) -> ExpenseService:
    """Get expense service instance."""
    return ExpenseService(db)


# Endpoints
@router.post("", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    expense: ExpenseCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseResponse:
    """Record an expense.

    The expense is linked to the matching budget of its category, if any.

    Args:
        expense: Expense data
        user_id: User ID
        service: Expense service

    Returns:
        Created expense

    Raises:
        HTTPException: If the category does not belong to the user
    """
    try:
        created = await service.create_expense(user_id, expense)
        return ExpenseResponse.model_validate(created)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=PaginatedExpenseResponse)
async def list_expenses(
    user_id: UUID = Query(..., description="User ID"),
    start_date: Optional[date_type] = Query(None, description="Filter from date"),
    end_date: Optional[date_type] = Query(None, description="Filter to date"),
    category_id: Optional[UUID] = Query(None, description="Filter by category"),
    needs_review: Optional[bool] = Query(None, description="Filter by review flag"),
    search: Optional[str] = Query(None, description="Search in description"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    service: ExpenseService = Depends(get_expense_service),
) -> PaginatedExpenseResponse:
    """List expenses with filtering and pagination.

    Returns:
        Paginated list of expenses, newest first
    """
    try:
        filters = ExpenseFilters(
            start_date=start_date,
            end_date=end_date,
            category_id=category_id,
            needs_review=needs_review,
            search=search,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    pagination = Pagination(page=page, page_size=page_size)

    expenses, total = await service.list_expenses(user_id, filters, pagination)

    return PaginatedExpenseResponse(
        items=[ExpenseResponse.model_validate(e) for e in expenses],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseResponse:
    expense = await service.get_expense(expense_id, user_id)
    if not expense:
        raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found")
    return ExpenseResponse.model_validate(expense)


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: UUID,
    updates: ExpenseUpdate,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseResponse:
    """Update an expense.

    Raises:
        HTTPException: If the expense is not found or the category is unknown
    """
    try:
        expense = await service.update_expense(expense_id, user_id, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not expense:
        raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found")
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: ExpenseService = Depends(get_expense_service),
) -> Response:
    deleted = await service.delete_expense(expense_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found")
    return Response(status_code=204)
