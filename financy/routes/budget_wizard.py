"""Budget wizard API endpoints.

The wizard runs in steps: eligibility, financial summary, spending insights,
eligible categories and suggested allocations, conflict detection, a
confirmation summary and finally generation of the month's budgets.
"""

from datetime import datetime, date as date_type
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from financy.database import get_db
from financy.schemas.wizard import (
    AdjustmentMode,
    AllocationAdjustRequest,
    BudgetAllocationSchema,
    BudgetConflictSchema,
    ConflictDetectionRequest,
    EligibilityResponse,
    EligibleCategoryResponse,
    FinancialSummaryResponse,
    GenerateBudgetsResponse,
    SpendingInsightsResponse,
    WizardRequest,
    WizardSummaryResponse,
)
from financy.services.budget_allocation import (
    can_use_wizard,
    distribute_evenly,
    reset_to_suggested,
    set_allocation_amount,
    set_allocation_percentage,
)
from financy.services.budget_wizard_service import BudgetWizardService

router = APIRouter()


async def get_wizard_service(db: AsyncSession = Depends(get_db)) -> BudgetWizardService:
    """Get budget wizard service instance."""
    return BudgetWizardService(db)


@router.get("/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    user_id: UUID = Query(..., description="User ID"),
    today: Optional[date_type] = Query(None, description="Reference date (default: today)"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> EligibilityResponse:
    """Whether the wizard can run: early in the month, with income and eligible categories."""
    today = today or datetime.utcnow().date()
    summary = await service.get_financial_summary(user_id, today)
    categories = await service.get_eligible_categories(user_id, today)
    return EligibilityResponse(
        can_use_wizard=can_use_wizard(today, summary.total_income, len(categories)),
        total_income=summary.total_income,
        eligible_categories=len(categories),
    )


@router.get("/summary", response_model=FinancialSummaryResponse)
async def get_financial_summary(
    user_id: UUID = Query(..., description="User ID"),
    reference_date: Optional[date_type] = Query(None, description="Any day of the month"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> FinancialSummaryResponse:
    summary = await service.get_financial_summary(user_id, reference_date)
    return FinancialSummaryResponse.model_validate(summary)


@router.get("/insights", response_model=SpendingInsightsResponse)
async def get_spending_insights(
    user_id: UUID = Query(..., description="User ID"),
    reference_date: Optional[date_type] = Query(None, description="Any day of the current month"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> SpendingInsightsResponse:
    """Last month's spending against the quarter average, with atypical increases."""
    insights = await service.get_spending_insights(user_id, reference_date)
    return SpendingInsightsResponse.model_validate(insights)


@router.get("/categories", response_model=list[EligibleCategoryResponse])
async def get_eligible_categories(
    user_id: UUID = Query(..., description="User ID"),
    today: Optional[date_type] = Query(None, description="Reference date (default: today)"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> list[EligibleCategoryResponse]:
    categories = await service.get_eligible_categories(user_id, today)
    return [EligibleCategoryResponse.model_validate(c) for c in categories]


@router.get("/allocations", response_model=list[BudgetAllocationSchema])
async def get_suggested_allocations(
    user_id: UUID = Query(..., description="User ID"),
    reference_date: Optional[date_type] = Query(None, description="Any day of the target month"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> list[BudgetAllocationSchema]:
    """Suggested allocation for each eligible category."""
    allocations = await service.suggest_allocations(user_id, reference_date)
    return [BudgetAllocationSchema.model_validate(a) for a in allocations]


@router.post("/allocations/adjust", response_model=list[BudgetAllocationSchema])
async def adjust_allocations(request: AllocationAdjustRequest) -> list[BudgetAllocationSchema]:
    """Apply an allocator edit and return the updated allocations.

    Args:
        request: Current allocations, the available funds and the edit to apply

    Returns:
        Updated allocations

    Raises:
        HTTPException: If the edited category is not among the allocations
    """
    allocations = [a.to_allocation() for a in request.allocations]

    if request.mode == AdjustmentMode.RESET:
        updated = reset_to_suggested(allocations, request.available)
    elif request.mode == AdjustmentMode.DISTRIBUTE:
        updated = distribute_evenly(allocations, request.available)
    else:
        if request.category_id not in {a.category_id for a in allocations}:
            raise HTTPException(
                status_code=404, detail=f"No allocation for category {request.category_id}"
            )
        updated = []
        for allocation in allocations:
            if allocation.category_id != request.category_id:
                updated.append(allocation)
            elif request.mode == AdjustmentMode.PERCENTAGE:
                updated.append(
                    set_allocation_percentage(allocation, float(request.value), request.available)
                )
            else:
                updated.append(set_allocation_amount(allocation, request.value, request.available))

    return [BudgetAllocationSchema.model_validate(a) for a in updated]


@router.post("/conflicts", response_model=list[BudgetConflictSchema])
async def detect_conflicts(
    request: ConflictDetectionRequest,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> list[BudgetConflictSchema]:
    """Existing budgets that overlap the new ones, each defaulting to replace."""
    conflicts = await service.detect_budget_conflicts(
        user_id,
        [a.category_id for a in request.allocations],
        request.reference_date,
        {a.category_id: a.amount for a in request.allocations},
    )
    return [BudgetConflictSchema.model_validate(c) for c in conflicts]


@router.post("/preview", response_model=WizardSummaryResponse)
async def preview_wizard(
    request: WizardRequest,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> WizardSummaryResponse:
    """Totals for the confirmation step."""
    summary = await service.get_wizard_summary(
        user_id,
        [a.to_allocation() for a in request.allocations],
        [c.to_conflict() for c in request.conflicts],
        request.reference_date,
    )
    return WizardSummaryResponse.model_validate(summary)


@router.post("/generate", response_model=GenerateBudgetsResponse, status_code=201)
async def generate_budgets(
    request: WizardRequest,
    user_id: UUID = Query(..., description="User ID"),
    service: BudgetWizardService = Depends(get_wizard_service),
) -> GenerateBudgetsResponse:
    """Create the month's budgets, replacing conflicting ones where requested.

    Args:
        request: Allocations and resolved conflicts
        user_id: User ID
        service: Budget wizard service

    Returns:
        IDs of the created and replaced budgets

    Raises:
        HTTPException: If an allocation refers to an unknown category
    """
    try:
        result = await service.generate_budgets(
            user_id,
            [a.to_allocation() for a in request.allocations],
            [c.to_conflict() for c in request.conflicts],
            request.reference_date,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return GenerateBudgetsResponse(
        created_budget_ids=result.created_budget_ids,
        replaced_budget_ids=result.replaced_budget_ids,
    )
