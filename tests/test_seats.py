"""
Tests for the subscription seat allocator.

Covers seat limits, idempotent assignment, soft deactivation and the
invitation lifecycle, including concurrent acceptance of the last seat.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from pocketbook.models.audit import AuditEventType
from pocketbook.models.finance import utcnow
from pocketbook.models.subscription import (
    InvitationStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    UserInvitation,
    UserSubscription,
)
from pocketbook.services.storage import StorageError

OWNER = "user-owner"


async def subscribe(storage, user_id=OWNER, max_seats=2, status=SubscriptionStatus.ACTIVE):
    plan = SubscriptionPlan(
        id=f"plan-{max_seats}",
        display_name="Couples",
        price=Decimal("99.00"),
        max_seats=max_seats,
    )
    subscription = UserSubscription(user_id=user_id, plan_id=plan.id, status=status)
    await storage.save_plan(plan)
    await storage.save_subscription(subscription)
    return subscription


class TestLimits:

    @pytest.mark.asyncio
    async def test_no_subscription_is_none(self, allocator):
        assert await allocator.get_limits(OWNER) is None
        assert await allocator.can_invite(OWNER) is False

        access = await allocator.check_access(OWNER)
        assert access.has_active_subscription is False
        assert access.can_access_feature is False

    @pytest.mark.asyncio
    async def test_inactive_subscription_is_none(self, allocator, subscription_storage):
        await subscribe(subscription_storage, status=SubscriptionStatus.CANCELED)
        assert await allocator.get_limits(OWNER) is None

    @pytest.mark.asyncio
    async def test_zero_seat_plan_is_not_none(self, allocator, subscription_storage):
        """No seats left is different from no subscription."""
        await subscribe(subscription_storage, max_seats=0)

        limits = await allocator.get_limits(OWNER)

        assert limits is not None
        assert limits.available_seats == 0
        assert limits.can_invite is False

    @pytest.mark.asyncio
    async def test_two_seat_scenario(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage, max_seats=2)
        await allocator.assign_seat(subscription.id, OWNER)

        limits = await allocator.get_limits(OWNER)
        assert (limits.max_seats, limits.current_seats, limits.available_seats) == (2, 1, 1)
        assert limits.can_invite is True

        await allocator.assign_seat(subscription.id, "user-partner")

        limits = await allocator.get_limits(OWNER)
        assert limits.available_seats == 0
        assert limits.can_invite is False
        assert await allocator.can_invite(OWNER) is False


class TestSeatLifecycle:

    @pytest.mark.asyncio
    async def test_assign_is_idempotent(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage)

        assert await allocator.assign_seat(subscription.id, "user-partner") is True
        assert await allocator.assign_seat(subscription.id, "user-partner") is True

        seats = await subscription_storage.list_seats(subscription.id)
        assert len(seats) == 1
        assert await subscription_storage.count_active_seats(subscription.id) == 1

    @pytest.mark.asyncio
    async def test_deactivate_then_reactivate_reuses_row(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage)
        await allocator.assign_seat(subscription.id, "user-partner")
        original = await subscription_storage.get_seat(subscription.id, "user-partner")

        assert await allocator.deactivate_seat(subscription.id, "user-partner") is True
        seat = await subscription_storage.get_seat(subscription.id, "user-partner")
        assert seat.is_active is False
        assert seat.deactivated_at is not None

        assert await allocator.assign_seat(subscription.id, "user-partner") is True
        seat = await subscription_storage.get_seat(subscription.id, "user-partner")
        assert seat.id == original.id
        assert seat.is_active is True
        assert seat.deactivated_at is None

    @pytest.mark.asyncio
    async def test_deactivate_unknown_seat(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage)
        assert await allocator.deactivate_seat(subscription.id, "nobody") is False

    @pytest.mark.asyncio
    async def test_deactivated_seats_stay_listed(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage)
        await allocator.assign_seat(subscription.id, OWNER)
        await allocator.assign_seat(subscription.id, "user-partner")
        await allocator.deactivate_seat(subscription.id, "user-partner")

        seats = await allocator.get_seats(subscription.id)

        assert {s.user_id: s.is_active for s in seats} == {OWNER: True, "user-partner": False}

    @pytest.mark.asyncio
    async def test_gated_assignments_never_exceed_cap(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage, max_seats=2)

        for user in ["a", "b", "c", "d"]:
            if await allocator.can_invite(OWNER):
                await allocator.assign_seat(subscription.id, user)
        await allocator.deactivate_seat(subscription.id, "a")
        for user in ["e", "f"]:
            if await allocator.can_invite(OWNER):
                await allocator.assign_seat(subscription.id, user)

        assert await subscription_storage.count_active_seats(subscription.id) == 2

    @pytest.mark.asyncio
    async def test_reserve_seat_respects_cap(self, allocator, subscription_storage, audit_storage):
        subscription = await subscribe(subscription_storage, max_seats=1)

        assert await allocator.reserve_seat(subscription.id, "a", 1) is True
        assert await allocator.reserve_seat(subscription.id, "a", 1) is True
        assert await allocator.reserve_seat(subscription.id, "b", 1) is False

        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert AuditEventType.SEAT_UNAVAILABLE in types


class TestInvitations:

    @pytest.mark.asyncio
    async def test_create_and_accept(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage, max_seats=2)
        await allocator.assign_seat(subscription.id, OWNER)

        invitation = await allocator.create_invitation(OWNER, "partner@example.com", "Partner")
        assert invitation is not None
        assert invitation.status == InvitationStatus.PENDING
        assert len(invitation.token) >= 16
        assert [i.id for i in await allocator.get_pending_invitations(OWNER)] == [invitation.id]

        assert await allocator.accept_invitation(invitation.token, "user-partner") is True

        stored = await subscription_storage.get_invitation_by_token(invitation.token)
        assert stored.status == InvitationStatus.ACCEPTED
        assert stored.accepted_at is not None
        assert await subscription_storage.count_active_seats(subscription.id) == 2
        assert await allocator.get_pending_invitations(OWNER) == []

    @pytest.mark.asyncio
    async def test_create_without_subscription_or_seats(self, allocator, subscription_storage):
        assert await allocator.create_invitation(OWNER, "x@example.com") is None

        subscription = await subscribe(subscription_storage, max_seats=1)
        await allocator.assign_seat(subscription.id, OWNER)
        assert await allocator.create_invitation(OWNER, "x@example.com") is None

    @pytest.mark.asyncio
    async def test_accept_with_no_seats_leaves_pending(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage, max_seats=2)
        await allocator.assign_seat(subscription.id, OWNER)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")
        # Seat taken between invitation and acceptance
        await allocator.assign_seat(subscription.id, "user-other")

        assert await allocator.accept_invitation(invitation.token, "user-partner") is False

        stored = await subscription_storage.get_invitation_by_token(invitation.token)
        assert stored.status == InvitationStatus.PENDING
        assert await subscription_storage.get_seat(subscription.id, "user-partner") is None

    @pytest.mark.asyncio
    async def test_concurrent_accepts_take_one_seat(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage, max_seats=2)
        await allocator.assign_seat(subscription.id, OWNER)
        first = await allocator.create_invitation(OWNER, "one@example.com")
        second = await allocator.create_invitation(OWNER, "two@example.com")

        results = await asyncio.gather(
            allocator.accept_invitation(first.token, "user-one"),
            allocator.accept_invitation(second.token, "user-two"),
        )

        assert sorted(results) == [False, True]
        assert await subscription_storage.count_active_seats(subscription.id) == 2

    @pytest.mark.asyncio
    async def test_unknown_token(self, allocator, audit_storage):
        assert await allocator.accept_invitation("no-such-token-at-all", "user-x") is False

        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.INVITATION_REFUSED

    @pytest.mark.asyncio
    async def test_settled_invitation_cannot_be_reused(self, allocator, subscription_storage):
        await subscribe(subscription_storage, max_seats=3)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")

        assert await allocator.accept_invitation(invitation.token, "user-partner") is True
        assert await allocator.accept_invitation(invitation.token, "user-other") is False
        assert await allocator.decline_invitation(invitation.token) is False

    @pytest.mark.asyncio
    async def test_inviter_lost_subscription(self, allocator, subscription_storage):
        subscription = await subscribe(subscription_storage)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")
        await subscription_storage.save_subscription(
            subscription.model_copy(update={"status": SubscriptionStatus.CANCELED})
        )

        assert await allocator.accept_invitation(invitation.token, "user-partner") is False

    @pytest.mark.asyncio
    async def test_expired_invitation(self, allocator, subscription_storage):
        await subscribe(subscription_storage)
        invitation = UserInvitation(
            inviter_id=OWNER,
            invitee_email="late@example.com",
            token="expired-token-0123456789",
            expires_at=utcnow() - timedelta(minutes=1),
        )
        await subscription_storage.save_invitation(invitation)

        assert await allocator.get_pending_invitations(OWNER) == []
        assert await allocator.accept_invitation(invitation.token, "user-late") is False

        stored = await subscription_storage.get_invitation_by_token(invitation.token)
        assert stored.status == InvitationStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_decline(self, allocator, subscription_storage):
        await subscribe(subscription_storage)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")

        assert await allocator.decline_invitation(invitation.token) is True

        stored = await subscription_storage.get_invitation_by_token(invitation.token)
        assert stored.status == InvitationStatus.DECLINED
        assert await allocator.accept_invitation(invitation.token, "user-partner") is False

    @pytest.mark.asyncio
    async def test_storage_failure_reports_false(self, allocator, subscription_storage, monkeypatch):
        async def broken(*args, **kwargs):
            raise StorageError("sheet unavailable")

        monkeypatch.setattr(subscription_storage, "get_invitation_by_token", broken)

        assert await allocator.accept_invitation("any-token-value-123", "user-x") is False

    @pytest.mark.asyncio
    async def test_failed_acceptance_releases_seat(self, allocator, subscription_storage, monkeypatch):
        """The seat goes back when the invitation cannot be marked accepted."""
        subscription = await subscribe(subscription_storage, max_seats=2)
        await allocator.assign_seat(subscription.id, OWNER)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")

        save_invitation = subscription_storage.save_invitation

        async def fail_on_accept(updated):
            if updated.status == InvitationStatus.ACCEPTED:
                raise StorageError("sheet unavailable")
            return await save_invitation(updated)

        monkeypatch.setattr(subscription_storage, "save_invitation", fail_on_accept)

        assert await allocator.accept_invitation(invitation.token, "user-partner") is False

        seat = await subscription_storage.get_seat(subscription.id, "user-partner")
        assert seat.is_active is False
        assert await subscription_storage.count_active_seats(subscription.id) == 1
        stored = await subscription_storage.get_invitation_by_token(invitation.token)
        assert stored.status == InvitationStatus.PENDING

        # Once storage recovers the same invitation can still be accepted
        monkeypatch.setattr(subscription_storage, "save_invitation", save_invitation)
        assert await allocator.accept_invitation(invitation.token, "user-partner") is True

    @pytest.mark.asyncio
    async def test_failed_acceptance_keeps_existing_seat(self, allocator, subscription_storage, monkeypatch):
        """A member who already had a seat keeps it."""
        subscription = await subscribe(subscription_storage, max_seats=2)
        invitation = await allocator.create_invitation(OWNER, "partner@example.com")
        await allocator.assign_seat(subscription.id, "user-partner")

        async def broken(*args, **kwargs):
            raise StorageError("sheet unavailable")

        monkeypatch.setattr(subscription_storage, "save_invitation", broken)

        assert await allocator.accept_invitation(invitation.token, "user-partner") is False
        seat = await subscription_storage.get_seat(subscription.id, "user-partner")
        assert seat.is_active is True
