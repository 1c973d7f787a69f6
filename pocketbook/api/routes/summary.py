"""GET /api/summary"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from pocketbook.api.dependencies import get_components, get_correlation_id, get_current_user
from pocketbook.api.schemas import to_json
from pocketbook.orchestrator import AppComponents


router = APIRouter(prefix="/api/summary", tags=["summary"])


@router.get("")
async def get_summary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    """
    Income, expenses, savings rate and balances between start and end.

    Both start and end are required.
    """
    for name, value in (("start", start), ("end", end)):
        if value is None:
            raise HTTPException(status_code=400, detail=f"Query parameter '{name}' is required")

    # InvalidDateRangeError is mapped to 400 by the app
    summary = await components.reporter.summarize(
        user_id, start, end, correlation_id=correlation_id
    )
    return to_json(summary)
