"""
Subscription Models for Pocketbook

A subscription plan caps how many people can share one subscription.
Each person occupies a seat; seats are soft-deactivated, never deleted,
so membership history stays retrievable.

Invitation lifecycle:
    pending -> accepted
    pending -> declined
    pending -> expired
No transition leaves accepted, declined or expired.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocketbook.models.finance import utcnow


class SubscriptionStatus(str, Enum):
    """Billing status of a subscription. Only ACTIVE grants shared features."""
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    TRIALING = "trialing"


class InvitationStatus(str, Enum):
    """Invitation status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class SubscriptionPlan(BaseModel):
    """A subscription tier defining price and seat capacity."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="couples_basic", min_length=1)
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    billing_interval: str = Field(default="monthly", max_length=20)
    max_seats: int = Field(default=2, ge=0)
    is_active: bool = True


class UserSubscription(BaseModel):
    """A user's subscription to a plan."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: datetime = Field(default_factory=utcnow)
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SubscriptionSeat(BaseModel):
    """
    One occupied slot of a subscription.

    At most one row exists per (subscription, user); leaving and
    rejoining flips is_active on the same row.
    """

    id: UUID = Field(default_factory=uuid4)
    subscription_id: UUID
    user_id: str = Field(..., min_length=1)
    is_active: bool = True
    assigned_at: datetime = Field(default_factory=utcnow)
    deactivated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_deactivation(self) -> 'SubscriptionSeat':
        if self.is_active and self.deactivated_at is not None:
            raise ValueError("An active seat cannot carry a deactivation timestamp")
        return self


class UserInvitation(BaseModel):
    """An invitation to join the inviter's subscription."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    inviter_id: str = Field(..., min_length=1)
    invitee_email: str = Field(..., min_length=3, max_length=320)
    invitee_name: Optional[str] = Field(default=None, max_length=100)
    status: InvitationStatus = InvitationStatus.PENDING
    token: str = Field(..., min_length=16)
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


# =============================================================================
# COMPUTED VIEWS
# =============================================================================

class SubscriptionLimits(BaseModel):
    """
    Seat accounting for one active subscription.

    available_seats can go negative if a plan is downgraded below the
    number of active seats; can_invite is then False.
    """

    subscription_id: UUID
    max_seats: int = Field(..., ge=0)
    current_seats: int = Field(..., ge=0)
    available_seats: int
    can_invite: bool

    @classmethod
    def from_counts(
        cls,
        subscription_id: UUID,
        max_seats: int,
        current_seats: int,
    ) -> 'SubscriptionLimits':
        available = max_seats - current_seats
        return cls(
            subscription_id=subscription_id,
            max_seats=max_seats,
            current_seats=current_seats,
            available_seats=available,
            can_invite=available > 0,
        )


class SubscriptionCheckResult(BaseModel):
    """Whether a user may use shared features, and with what limits."""

    has_active_subscription: bool
    can_access_feature: bool
    subscription_id: Optional[UUID] = None
    limits: Optional[SubscriptionLimits] = None


class SeatInfo(BaseModel):
    """A seat as listed to the subscription owner."""

    user_id: str
    assigned_at: datetime
    is_active: bool
    deactivated_at: Optional[datetime] = None
