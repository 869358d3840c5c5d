"""Savings goal API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.goal import (
    GoalCreate,
    GoalUpdate,
    GoalEntryCreate,
    GoalResponse,
    GoalEntryResponse,
    GoalInsightResponse,
    GoalStatsResponse,
)
from financy.services.goal_service import GoalService

router = APIRouter()


# Dependencies
async def get_goal_service(db: AsyncSession = Depends(get_db)) -> GoalService:
    """Get goal service instance."""
    return GoalService(db)


# Endpoints
@router.post("", response_model=GoalResponse, status_code=201)
async def create_goal(
    goal: GoalCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    """Create a new savings goal.

    Args:
        goal: Goal data
        user_id: User ID
        service: Goal service

    Returns:
        Created goal

    Raises:
        HTTPException: If the goal data is rejected
    """
    try:
        created = await service.create_goal(
            user_id=user_id,
            name=goal.name,
            target_amount=goal.target_amount,
            target_date=goal.target_date,
            category_id=goal.category_id,
            budget_id=goal.budget_id,
        )
        return GoalResponse.model_validate(created)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[GoalInsightResponse])
async def list_goals(
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> list[GoalInsightResponse]:
    """List all goals of a user with their progress, newest first."""
    insights = await service.list_goal_insights(user_id)
    return [GoalInsightResponse.model_validate(i) for i in insights]


@router.get("/stats", response_model=GoalStatsResponse)
async def get_goal_stats(
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> GoalStatsResponse:
    """Counts of goals by status and saved/target totals."""
    stats = await service.get_goal_stats(user_id)
    return GoalStatsResponse.model_validate(stats)


@router.delete("/entries/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> Response:
    """Delete a single goal entry."""
    deleted = await service.delete_entry(entry_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Entry {entry_id} not found")
    return Response(status_code=204)


@router.get("/{goal_id}", response_model=GoalInsightResponse)
async def get_goal(
    goal_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> GoalInsightResponse:
    """Get a goal with its progress and latest entries.

    Args:
        goal_id: Goal ID
        user_id: User ID
        service: Goal service

    Returns:
        Goal insight

    Raises:
        HTTPException: If goal not found
    """
    insight = await service.get_goal_insight(goal_id, user_id)
    if not insight:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return GoalInsightResponse.model_validate(insight)


@router.put("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: UUID,
    updates: GoalUpdate,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    """Update a goal.

    Raises:
        HTTPException: If goal not found or the update is rejected
    """
    try:
        goal = await service.update_goal(
            goal_id=goal_id,
            user_id=user_id,
            name=updates.name,
            target_amount=updates.target_amount,
            target_date=updates.target_date,
            category_id=updates.category_id,
            budget_id=updates.budget_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not goal:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return GoalResponse.model_validate(goal)


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> Response:
    """Delete a goal and all of its entries."""
    deleted = await service.delete_goal(goal_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return Response(status_code=204)


@router.post("/{goal_id}/entries", response_model=GoalEntryResponse, status_code=201)
async def create_entry(
    goal_id: UUID,
    entry: GoalEntryCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> GoalEntryResponse:
    """Add a contribution or a withdrawal to a goal.

    Args:
        goal_id: Goal ID
        entry: Signed amount, description and date
        user_id: User ID
        service: Goal service

    Returns:
        Created entry

    Raises:
        HTTPException: If goal not found or the amount is rejected
    """
    try:
        created = await service.create_entry(
            user_id=user_id,
            goal_id=goal_id,
            amount=entry.amount,
            description=entry.description,
            entry_date=entry.date,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not created:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return GoalEntryResponse.model_validate(created)


@router.get("/{goal_id}/entries", response_model=list[GoalEntryResponse])
async def list_entries(
    goal_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: GoalService = Depends(get_goal_service),
) -> list[GoalEntryResponse]:
    """List every entry of a goal, newest first."""
    entries = await service.list_entries(goal_id, user_id)
    if entries is None:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return [GoalEntryResponse.model_validate(e) for e in entries]
