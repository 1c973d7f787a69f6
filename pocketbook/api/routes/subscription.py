"""Subscription status and seat management."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from pocketbook.api.dependencies import get_components, get_correlation_id, get_current_user
from pocketbook.api.schemas import to_json
from pocketbook.models.subscription import SubscriptionCheckResult
from pocketbook.orchestrator import AppComponents


router = APIRouter(prefix="/api/subscription", tags=["subscription"])


async def _require_subscription(components: AppComponents, user_id: str) -> SubscriptionCheckResult:
    access = await components.seats.check_access(user_id)
    if not access.has_active_subscription:
        raise HTTPException(status_code=403, detail="Active subscription required")
    return access


@router.get("/status")
async def get_status(
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    """Seat limits of the caller's subscription; data is null without one."""
    limits = await components.seats.get_limits(user_id)
    return {"success": True, "data": to_json(limits)}


@router.get("/seats")
async def list_seats(
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    access = await _require_subscription(components, user_id)
    seats = await components.seats.get_seats(access.subscription_id)
    return {"success": True, "data": [to_json(seat) for seat in seats]}


@router.delete("/seats/{member_id}")
async def remove_seat(
    member_id: str,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    access = await _require_subscription(components, user_id)
    removed = await components.seats.deactivate_seat(
        access.subscription_id, member_id, correlation_id=correlation_id
    )
    if not removed:
        raise HTTPException(status_code=404, detail="Seat not found")
    return {"success": True}
