"""
Subscription Seat Allocator

Enforces per-plan seat caps for shared subscriptions and runs the
invitation lifecycle.

State per subscription:
    max_seats        from the plan
    current_seats    number of active seat rows
    available_seats  max_seats - current_seats
    can_invite       available_seats > 0

CRITICAL: The seat check at acceptance time is the enforcement point.
The check at invitation time is advisory only, since seats can be
taken between sending an invitation and accepting it. Acceptance goes
through reserve_seat, which checks capacity and activates the seat as
one atomic step, so two invitees racing for the last seat cannot both
get it.

Failure policy: seat contention is an expected outcome, not an error.
Seat and invitation operations return False (or None) instead of
raising, and the cause goes to the audit log.
"""

import secrets
from datetime import timedelta
from typing import Optional
from uuid import UUID

from pocketbook.audit import AuditLogger, get_logger
from pocketbook.config import get_settings
from pocketbook.models.audit import AuditEvent, AuditEventBuilder
from pocketbook.models.finance import utcnow
from pocketbook.models.subscription import (
    InvitationStatus,
    SeatInfo,
    SubscriptionCheckResult,
    SubscriptionLimits,
    SubscriptionSeat,
    UserInvitation,
)
from pocketbook.services.storage import StorageError, SubscriptionStorageInterface


logger = get_logger(__name__)

# Bytes of randomness in an invitation token (url-safe encoded)
TOKEN_BYTES = 32


class SeatAllocator:
    """
    Seat accounting and invitation handling for shared subscriptions.

    The subscription a call acts on is always passed in explicitly.
    """

    def __init__(
        self,
        storage: SubscriptionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        invitation_ttl_days: Optional[int] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        if invitation_ttl_days is None:
            invitation_ttl_days = get_settings().app.invitation_ttl_days
        self._invitation_ttl = timedelta(days=invitation_ttl_days)

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _storage_failed(
        self,
        operation: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> None:
        logger.error("seat_storage_failed", operation=operation, error=str(error))
        await self._audit(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # LIMITS
    # =========================================================================

    async def get_limits(self, user_id: str) -> Optional[SubscriptionLimits]:
        """
        Seat accounting for the user's active subscription.

        Returns:
            None when the user has no active subscription (or its plan is
            gone). A subscription with zero seats left still returns limits,
            with can_invite False.
        """
        subscription = await self._storage.get_active_subscription(user_id)
        if subscription is None:
            return None

        plan = await self._storage.get_plan(subscription.plan_id)
        if plan is None:
            logger.warning(
                "subscription_plan_missing",
                subscription_id=str(subscription.id),
                plan_id=subscription.plan_id,
            )
            return None

        current = await self._storage.count_active_seats(subscription.id)
        return SubscriptionLimits.from_counts(subscription.id, plan.max_seats, current)

    async def can_invite(self, user_id: str) -> bool:
        limits = await self.get_limits(user_id)
        return limits is not None and limits.can_invite

    async def check_access(self, user_id: str) -> SubscriptionCheckResult:
        """Whether the user may use shared features."""
        limits = await self.get_limits(user_id)
        if limits is None:
            return SubscriptionCheckResult(
                has_active_subscription=False,
                can_access_feature=False,
            )
        return SubscriptionCheckResult(
            has_active_subscription=True,
            can_access_feature=True,
            subscription_id=limits.subscription_id,
            limits=limits,
        )

    # =========================================================================
    # SEATS
    # =========================================================================

    async def assign_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Give the user an active seat on the subscription.

        Idempotent: an existing row (active or deactivated) is reactivated
        in place, never duplicated. Does not check capacity; callers that
        must respect the cap use reserve_seat.
        """
        try:
            seat = await self._storage.get_seat(subscription_id, user_id)
            if seat is not None and seat.is_active:
                return True

            now = utcnow()
            reactivated = seat is not None
            if seat is None:
                seat = SubscriptionSeat(
                    subscription_id=subscription_id,
                    user_id=user_id,
                    assigned_at=now,
                )
            else:
                seat = seat.model_copy(update={
                    "is_active": True,
                    "deactivated_at": None,
                    "updated_at": now,
                })
            await self._storage.save_seat(seat)
        except StorageError as e:
            await self._storage_failed("assign_seat", e, correlation_id)
            return False

        await self._audit(AuditEventBuilder.seat_assigned(
            subscription_id=subscription_id,
            user_id=user_id,
            reactivated=reactivated,
            correlation_id=correlation_id,
        ))
        return True

    async def deactivate_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Soft-deactivate the user's seat. The row is kept for history.

        Returns:
            False if the user never had a seat on this subscription
        """
        try:
            seat = await self._storage.get_seat(subscription_id, user_id)
            if seat is None:
                logger.info(
                    "seat_not_found",
                    subscription_id=str(subscription_id),
                    user_id=user_id,
                )
                return False
            if not seat.is_active:
                return True

            now = utcnow()
            await self._storage.save_seat(seat.model_copy(update={
                "is_active": False,
                "deactivated_at": now,
                "updated_at": now,
            }))
        except StorageError as e:
            await self._storage_failed("deactivate_seat", e, correlation_id)
            return False

        await self._audit(AuditEventBuilder.seat_deactivated(
            subscription_id=subscription_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))
        return True

    async def reserve_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        max_seats: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Check capacity and activate the user's seat in one atomic step.

        Returns:
            True if the user holds an active seat afterwards
        """
        try:
            reserved = await self._storage.reserve_seat(subscription_id, user_id, max_seats)
        except StorageError as e:
            await self._storage_failed("reserve_seat", e, correlation_id)
            return False

        if reserved:
            await self._audit(AuditEventBuilder.seat_assigned(
                subscription_id=subscription_id,
                user_id=user_id,
                reactivated=False,
                correlation_id=correlation_id,
            ))
        else:
            await self._audit(AuditEventBuilder.seat_unavailable(
                subscription_id=subscription_id,
                user_id=user_id,
                max_seats=max_seats,
                correlation_id=correlation_id,
            ))
        return reserved

    async def get_seats(self, subscription_id: UUID) -> list[SeatInfo]:
        """Every seat of the subscription, active and deactivated."""
        seats = await self._storage.list_seats(subscription_id)
        return [
            SeatInfo(
                user_id=seat.user_id,
                assigned_at=seat.assigned_at,
                is_active=seat.is_active,
                deactivated_at=seat.deactivated_at,
            )
            for seat in seats
        ]

    # =========================================================================
    # INVITATIONS
    # =========================================================================

    async def create_invitation(
        self,
        inviter_id: str,
        email: str,
        name: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[UserInvitation]:
        """
        Invite someone to the inviter's subscription.

        The seat check here is advisory; acceptance checks again.

        Returns:
            The pending invitation, or None if the inviter has no active
            subscription or no free seat
        """
        if not await self.can_invite(inviter_id):
            return None

        now = utcnow()
        invitation = UserInvitation(
            inviter_id=inviter_id,
            invitee_email=email,
            invitee_name=name,
            token=secrets.token_urlsafe(TOKEN_BYTES),
            expires_at=now + self._invitation_ttl,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._storage.save_invitation(invitation)
        except StorageError as e:
            await self._storage_failed("create_invitation", e, correlation_id)
            return None

        await self._audit(AuditEventBuilder.invitation_created(
            invitation_id=invitation.id,
            inviter_id=inviter_id,
            invitee_email=email,
            correlation_id=correlation_id,
        ))
        return invitation

    async def accept_invitation(
        self,
        token: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Accept an invitation and take a seat on the inviter's subscription.

        Never raises. Returns False when the invitation is missing, not
        pending or expired, when the inviter has no active subscription,
        or when no seat is free. On a seat failure the invitation stays
        pending so it can be accepted once a seat frees up.
        If the invitation cannot be marked accepted, a seat taken by this
        call is released again.
        """
        try:
            invitation = await self._storage.get_invitation_by_token(token)
            if invitation is None:
                await self._refuse(user_id, "invitation not found", None, correlation_id)
                return False

            if invitation.status != InvitationStatus.PENDING:
                await self._refuse(
                    user_id,
                    f"invitation is {invitation.status.value}",
                    invitation.id,
                    correlation_id,
                )
                return False

            if invitation.is_expired():
                await self._expire(invitation, correlation_id)
                return False

            subscription = await self._storage.get_active_subscription(invitation.inviter_id)
            if subscription is None:
                await self._refuse(
                    user_id, "inviter has no active subscription", invitation.id, correlation_id
                )
                return False

            plan = await self._storage.get_plan(subscription.plan_id)
            if plan is None:
                await self._refuse(
                    user_id, "subscription plan not found", invitation.id, correlation_id
                )
                return False

            existing = await self._storage.get_seat(subscription.id, user_id)
            held_seat = existing is not None and existing.is_active

            if not await self.reserve_seat(
                subscription.id, user_id, plan.max_seats, correlation_id
            ):
                await self._refuse(user_id, "no seats available", invitation.id, correlation_id)
                return False

            now = utcnow()
            try:
                await self._storage.save_invitation(invitation.model_copy(update={
                    "status": InvitationStatus.ACCEPTED,
                    "accepted_at": now,
                    "updated_at": now,
                }))
            except StorageError:
                # Give back a seat this acceptance took; the invitation stays pending
                if not held_seat:
                    await self.deactivate_seat(subscription.id, user_id, correlation_id)
                raise
        except StorageError as e:
            await self._storage_failed("accept_invitation", e, correlation_id)
            return False

        await self._audit(AuditEventBuilder.invitation_accepted(
            invitation_id=invitation.id,
            user_id=user_id,
            subscription_id=subscription.id,
            correlation_id=correlation_id,
        ))
        return True

    async def decline_invitation(
        self,
        token: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Decline a pending invitation.

        Returns:
            False if the invitation is missing, already settled or expired
        """
        try:
            invitation = await self._storage.get_invitation_by_token(token)
            if invitation is None or invitation.status != InvitationStatus.PENDING:
                return False

            if invitation.is_expired():
                await self._expire(invitation, correlation_id)
                return False

            await self._storage.save_invitation(invitation.model_copy(update={
                "status": InvitationStatus.DECLINED,
                "updated_at": utcnow(),
            }))
        except StorageError as e:
            await self._storage_failed("decline_invitation", e, correlation_id)
            return False

        await self._audit(AuditEventBuilder.invitation_declined(
            invitation_id=invitation.id,
            correlation_id=correlation_id,
        ))
        return True

    async def get_pending_invitations(self, inviter_id: str) -> list[UserInvitation]:
        """Invitations sent by the user that can still be accepted."""
        now = utcnow()
        invitations = await self._storage.list_invitations(
            inviter_id, status=InvitationStatus.PENDING
        )
        return [i for i in invitations if not i.is_expired(now)]

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _refuse(
        self,
        user_id: str,
        reason: str,
        invitation_id: Optional[UUID],
        correlation_id: Optional[UUID],
    ) -> None:
        await self._audit(AuditEventBuilder.invitation_refused(
            user_id=user_id,
            reason=reason,
            invitation_id=invitation_id,
            correlation_id=correlation_id,
        ))

    async def _expire(
        self,
        invitation: UserInvitation,
        correlation_id: Optional[UUID],
    ) -> None:
        await self._storage.save_invitation(invitation.model_copy(update={
            "status": InvitationStatus.EXPIRED,
            "updated_at": utcnow(),
        }))
        await self._audit(AuditEventBuilder.invitation_expired(
            invitation_id=invitation.id,
            correlation_id=correlation_id,
        ))
