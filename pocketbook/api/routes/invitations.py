"""
Invitation endpoints.

Delivering the invitation (email) happens outside this service; the
created invitation, token included, is returned to the caller.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from pocketbook.api.dependencies import get_components, get_correlation_id, get_current_user
from pocketbook.api.schemas import InvitationRequest, InvitationTokenRequest, to_json
from pocketbook.orchestrator import AppComponents


router = APIRouter(prefix="/api/invitations", tags=["invitations"])


@router.post("")
async def create_invitation(
    body: InvitationRequest,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    limits = await components.seats.get_limits(user_id)
    if limits is None:
        raise HTTPException(status_code=403, detail="Active subscription required")
    if not limits.can_invite:
        raise HTTPException(status_code=403, detail="No seats available")

    invitation = await components.seats.create_invitation(
        user_id, body.email, body.name, correlation_id=correlation_id
    )
    if invitation is None:
        raise HTTPException(status_code=403, detail="No seats available")
    return {"success": True, "data": to_json(invitation)}


@router.post("/accept")
async def accept_invitation(
    body: InvitationTokenRequest,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    accepted = await components.seats.accept_invitation(
        body.token, user_id, correlation_id=correlation_id
    )
    if not accepted:
        raise HTTPException(status_code=400, detail="Invitation could not be accepted")
    return {"success": True}


@router.post("/decline")
async def decline_invitation(
    body: InvitationTokenRequest,
    user_id: str = Depends(get_current_user),
    correlation_id: UUID = Depends(get_correlation_id),
    components: AppComponents = Depends(get_components),
):
    declined = await components.seats.decline_invitation(
        body.token, correlation_id=correlation_id
    )
    if not declined:
        raise HTTPException(status_code=400, detail="Invitation could not be declined")
    return {"success": True}


@router.get("/pending")
async def list_pending(
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    invitations = await components.seats.get_pending_invitations(user_id)
    return {"success": True, "data": [to_json(i) for i in invitations]}
