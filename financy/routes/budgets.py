"""Budget API endpoints."""

from datetime import date as date_type
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.budget import (
    BudgetCreate,
    BudgetUpdate,
    BudgetResponse,
    BudgetProgressResponse,
    BudgetAlertResponse,
    AssignmentPreviewResponse,
    BudgetAssignmentResponse,
)
from financy.services.budget_service import BudgetService

router = APIRouter()


# Dependencies
async def get_budget_service(db: AsyncSession = Depends(get_db)) -> BudgetService:
    """Get budget service instance."""
    return BudgetService(db)


# Endpoints
@router.post("", response_model=BudgetResponse, status_code=201)
async def create_budget(
    budget: BudgetCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> BudgetResponse:
    """Create a new budget for a category.

    Args:
        budget: Budget data
        user_id: User ID
        service: Budget service

    Returns:
        Created budget

    Raises:
        HTTPException: If the category is unknown or the period is invalid
    """
    try:
        created = await service.create_budget(
            user_id=user_id,
            category_id=budget.category_id,
            amount=budget.amount,
            period_start=budget.period_start,
            period_end=budget.period_end,
            allocation_percentage=budget.allocation_percentage,
            priority=budget.priority,
            rollover_amount=budget.rollover_amount,
            assign_to_existing=budget.assign_to_existing,
        )
        return BudgetResponse.model_validate(created)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[BudgetResponse])
async def list_budgets(
    user_id: UUID = Query(..., description="User ID"),
    active_only: bool = Query(False, description="Only return budgets covering today"),
    service: BudgetService = Depends(get_budget_service),
) -> list[BudgetResponse]:
    """List budgets, latest period first."""
    budgets = await service.list_budgets(user_id, active_only)
    return [BudgetResponse.model_validate(b) for b in budgets]


@router.get("/progress", response_model=list[BudgetProgressResponse])
async def get_budget_progress(
    user_id: UUID = Query(..., description="User ID"),
    active_only: bool = Query(True, description="Only budgets covering today"),
    service: BudgetService = Depends(get_budget_service),
) -> list[BudgetProgressResponse]:
    """Spent, remaining and spent percentage for each budget."""
    progress = await service.get_budget_progress(user_id, active_only)
    return [BudgetProgressResponse.model_validate(p) for p in progress]


@router.get("/alerts", response_model=list[BudgetAlertResponse])
async def get_budget_alerts(
    user_id: UUID = Query(..., description="User ID"),
    today: Optional[date_type] = Query(None, description="Reference date (default: today)"),
    service: BudgetService = Depends(get_budget_service),
) -> list[BudgetAlertResponse]:
    """Over-budget and near-limit alerts for the active budgets.

    Args:
        user_id: User ID
        today: Reference date
        service: Budget service

    Returns:
        List of alerts
    """
    alerts = await service.get_budget_alerts(user_id, today)
    return [BudgetAlertResponse.model_validate(a) for a in alerts]


@router.get("/{budget_id}", response_model=BudgetResponse)
async def get_budget(
    budget_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> BudgetResponse:
    budget = await service.get_budget(budget_id, user_id)
    if not budget:
        raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
    return BudgetResponse.model_validate(budget)


@router.put("/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: UUID,
    updates: BudgetUpdate,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> BudgetResponse:
    """Update a budget.

    Raises:
        HTTPException: If budget not found or the new values are invalid
    """
    try:
        budget = await service.update_budget(
            budget_id=budget_id,
            user_id=user_id,
            amount=updates.amount,
            period_start=updates.period_start,
            period_end=updates.period_end,
            priority=updates.priority,
            rollover_amount=updates.rollover_amount,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not budget:
        raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
    return BudgetResponse.model_validate(budget)


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> Response:
    """Delete a budget. Its expenses stay, without a budget link."""
    deleted = await service.delete_budget(budget_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
    return Response(status_code=204)


@router.get("/{budget_id}/assignment-preview", response_model=AssignmentPreviewResponse)
async def preview_assignment(
    budget_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> AssignmentPreviewResponse:
    """How many existing expenses assigning would link, and how many belong elsewhere."""
    preview = await service.preview_assignment(budget_id, user_id)
    if not preview:
        raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
    return AssignmentPreviewResponse.model_validate(preview)


@router.post("/{budget_id}/assign", response_model=BudgetAssignmentResponse)
async def assign_existing_expenses(
    budget_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetService = Depends(get_budget_service),
) -> BudgetAssignmentResponse:
    """Link the period's unassigned expenses of the budget's category to it."""
    result = await service.assign_to_existing_expenses(budget_id, user_id)
    if not result:
        raise HTTPException(status_code=404, detail=f"Budget {budget_id} not found")
    return BudgetAssignmentResponse.model_validate(result)
