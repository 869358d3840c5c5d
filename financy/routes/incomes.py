"""Income API endpoints."""

from datetime import date as date_type
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.income import IncomeCreate, IncomeUpdate, IncomeResponse
from financy.services.income_service import IncomeService

router = APIRouter()


async def get_income_service(db: AsyncSession = Depends(get_db)) -> IncomeService:
    """Get income service instance."""
    return IncomeService(db)


@router.post("", response_model=IncomeResponse, status_code=201)
async def create_income(
    income: IncomeCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: IncomeService = Depends(get_income_service),
) -> IncomeResponse:
    """Record an income."""
    try:
        created = await service.create_income(
            user_id=user_id,
            amount=income.amount,
            description=income.description,
            income_date=income.date,
            source=income.source,
            is_recurring=income.is_recurring,
            currency=income.currency,
        )
        return IncomeResponse.model_validate(created)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[IncomeResponse])
async def list_incomes(
    user_id: UUID = Query(..., description="User ID"),
    start_date: Optional[date_type] = Query(None, description="Filter from date"),
    end_date: Optional[date_type] = Query(None, description="Filter to date"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of incomes"),
    offset: int = Query(0, ge=0, description="Number of incomes to skip"),
    service: IncomeService = Depends(get_income_service),
) -> list[IncomeResponse]:
    """List incomes, newest first."""
    incomes = await service.list_incomes(user_id, start_date, end_date, limit, offset)
    return [IncomeResponse.model_validate(i) for i in incomes]


@router.get("/{income_id}", response_model=IncomeResponse)
async def get_income(
    income_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: IncomeService = Depends(get_income_service),
) -> IncomeResponse:
    income = await service.get_income(income_id, user_id)
    if not income:
        raise HTTPException(status_code=404, detail=f"Income {income_id} not found")
    return IncomeResponse.model_validate(income)


@router.put("/{income_id}", response_model=IncomeResponse)
async def update_income(
    income_id: UUID,
    updates: IncomeUpdate,
    user_id: UUID = Query(..., description="User ID"),
    service: IncomeService = Depends(get_income_service),
) -> IncomeResponse:
    try:
        income = await service.update_income(
            income_id=income_id,
            user_id=user_id,
            amount=updates.amount,
            description=updates.description,
            income_date=updates.date,
            source=updates.source,
            is_recurring=updates.is_recurring,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not income:
        raise HTTPException(status_code=404, detail=f"Income {income_id} not found")
    return IncomeResponse.model_validate(income)


@router.delete("/{income_id}", status_code=204)
async def delete_income(
    income_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: IncomeService = Depends(get_income_service),
) -> Response:
    deleted = await service.delete_income(income_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Income {income_id} not found")
    return Response(status_code=204)
