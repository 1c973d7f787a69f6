"""
Budget endpoints.

POST upserts a planned amount, lazily creating the month budget.
PUT updates a planned amount and requires the month budget to exist.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from pocketbook.api.dependencies import get_components, get_correlation_id, get_current_user
from pocketbook.api.schemas import PlannedAmountRequest, to_json
from pocketbook.models.validation import ValidationResult
from pocketbook.orchestrator import AppComponents


router = APIRouter(prefix="/api/budgets", tags=["budgets"])


def _resolve_month(year: Optional[int], month: Optional[int]) -> tuple[int, int]:
    today = date.today()
    return year or today.year, month or today.month


def _raise_for_validation(components: AppComponents, result: ValidationResult) -> None:
    if result.is_valid:
        return
    first = result.first_error()
    status = 404 if first is not None and first.issue_type == "not_found" else 400
    raise HTTPException(
        status_code=status,
        detail=components.validator.get_user_friendly_summary(result),
    )


@router.get("")
async def get_planned_amounts(
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    """Planned amount per category id for the month."""
    year, month = _resolve_month(year, month)
    planned = await components.planner.get_planned_amounts(user_id, year, month)
    return {"budgets": {str(k): str(v) for k, v in planned.items()}}


@router.get("/overview")
async def get_overview(
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    """The reconciled budget table for the month."""
    year, month = _resolve_month(year, month)
    overview = await components.planner.get_month_overview(user_id, year, month)
    return to_json(overview)


@router.post("")
async def set_planned_amount(
    body: PlannedAmountRequest,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    result = await components.validator.validate(user_id, body.category_id, body.amount)
    _raise_for_validation(components, result)

    year, month = _resolve_month(body.year, body.month)
    row = await components.planner.set_planned_amount(
        user_id, body.category_id, body.amount, year, month,
        correlation_id=correlation_id,
    )
    return {"success": True, "data": to_json(row), "warnings": result.warnings}


@router.put("")
async def update_planned_amount(
    body: PlannedAmountRequest,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    result = await components.validator.validate(user_id, body.category_id, body.amount)
    _raise_for_validation(components, result)

    # BudgetNotFoundError is mapped to 404 by the app
    year, month = _resolve_month(body.year, body.month)
    row = await components.planner.update_planned_amount(
        user_id, body.category_id, body.amount, year, month,
        correlation_id=correlation_id,
    )
    return {"success": True, "data": to_json(row), "warnings": result.warnings}
