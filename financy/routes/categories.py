"""Category API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from financy.services.category_service import CategoryService

router = APIRouter()


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    """Get category service instance."""
    return CategoryService(db)


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    category: CategoryCreate,
    user_id: UUID = Query(..., description="User ID"),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    """Create a category.

    Raises:
        HTTPException: If the user already has a category with that name
    """
    try:
        created = await service.create_category(
            user_id=user_id, name=category.name, icon=category.icon, color=category.color
        )
        return CategoryResponse.model_validate(created)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    user_id: UUID = Query(..., description="User ID"),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryResponse]:
    """List categories sorted by name."""
    categories = await service.list_categories(user_id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.get_category(category_id, user_id)
    if not category:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return CategoryResponse.model_validate(category)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    updates: CategoryUpdate,
    user_id: UUID = Query(..., description="User ID"),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    try:
        category = await service.update_category(
            category_id=category_id,
            user_id=user_id,
            name=updates.name,
            icon=updates.icon,
            color=updates.color,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not category:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: UUID,
    user_id: UUID = Query(..., description="User ID"),
    service: CategoryService = Depends(get_category_service),
) -> Response:
    """Delete a category. Its expenses become uncategorised and its budgets are removed."""
    deleted = await service.delete_category(category_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return Response(status_code=204)
