"""
Audit Models for Pocketbook

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of budget changes and seat movements
2. Debugging information when things go wrong
3. An operator-visible reason for every refused invitation

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocketbook.models.finance import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Budgeting
    BUDGET_CREATED = "budget_created"
    PLANNED_AMOUNT_SET = "planned_amount_set"
    SPENT_AMOUNTS_REFRESHED = "spent_amounts_refreshed"
    SUMMARY_COMPUTED = "summary_computed"

    # Seats
    SEAT_ASSIGNED = "seat_assigned"
    SEAT_DEACTIVATED = "seat_deactivated"
    SEAT_UNAVAILABLE = "seat_unavailable"

    # Invitations
    INVITATION_CREATED = "invitation_created"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_REFUSED = "invitation_refused"
    INVITATION_DECLINED = "invitation_declined"
    INVITATION_EXPIRED = "invitation_expired"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'seat', 'invitation')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="User on whose behalf the action ran"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one request)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.seat_assigned(subscription_id, user_id)
        event = AuditEventBuilder.invitation_refused(token_hint, reason)
    """

    @staticmethod
    def budget_created(
        budget_id: UUID,
        user_id: str,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            entity_type="budget",
            entity_id=str(budget_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Budget created for {month}/{year}",
            details={"year": year, "month": month},
        )

    @staticmethod
    def planned_amount_set(
        budget_id: UUID,
        user_id: str,
        category_id: int,
        previous: Optional[str],
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_AMOUNT_SET,
            entity_type="budget",
            entity_id=str(budget_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Planned amount for category {category_id} set to {amount}",
            details={
                "category_id": category_id,
                "previous_amount": previous,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def spent_amounts_refreshed(
        budget_id: UUID,
        user_id: str,
        updated_rows: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPENT_AMOUNTS_REFRESHED,
            entity_type="budget",
            entity_id=str(budget_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Spent amounts refreshed on {updated_rows} budget rows",
            details={"updated_rows": updated_rows},
        )

    @staticmethod
    def summary_computed(
        user_id: str,
        start: Optional[str],
        end: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="summary",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Summary computed over {transaction_count} transactions",
            details={"start": start, "end": end, "transaction_count": transaction_count},
        )

    @staticmethod
    def seat_assigned(
        subscription_id: UUID,
        user_id: str,
        reactivated: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEAT_ASSIGNED,
            entity_type="seat",
            entity_id=str(subscription_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                "Seat reactivated" if reactivated else "Seat assigned"
            ),
            details={"reactivated": reactivated},
        )

    @staticmethod
    def seat_deactivated(
        subscription_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEAT_DEACTIVATED,
            entity_type="seat",
            entity_id=str(subscription_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description="Seat deactivated",
            is_user_action=True,
        )

    @staticmethod
    def seat_unavailable(
        subscription_id: UUID,
        user_id: str,
        max_seats: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEAT_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="seat",
            entity_id=str(subscription_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"No seat available (plan allows {max_seats})",
            details={"max_seats": max_seats},
        )

    @staticmethod
    def invitation_created(
        invitation_id: UUID,
        inviter_id: str,
        invitee_email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_CREATED,
            entity_type="invitation",
            entity_id=str(invitation_id),
            user_id=inviter_id,
            correlation_id=correlation_id,
            description=f"Invitation sent to {invitee_email}",
            details={"invitee_email": invitee_email},
            is_user_action=True,
        )

    @staticmethod
    def invitation_accepted(
        invitation_id: UUID,
        user_id: str,
        subscription_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_ACCEPTED,
            entity_type="invitation",
            entity_id=str(invitation_id),
            user_id=user_id,
            correlation_id=correlation_id,
            description="Invitation accepted",
            details={"subscription_id": str(subscription_id)},
            is_user_action=True,
        )

    @staticmethod
    def invitation_refused(
        user_id: str,
        reason: str,
        invitation_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_REFUSED,
            severity=AuditSeverity.WARNING,
            entity_type="invitation",
            entity_id=str(invitation_id) if invitation_id else None,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Invitation could not be accepted: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def invitation_declined(
        invitation_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_DECLINED,
            entity_type="invitation",
            entity_id=str(invitation_id),
            correlation_id=correlation_id,
            description="Invitation declined",
            is_user_action=True,
        )

    @staticmethod
    def invitation_expired(
        invitation_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_EXPIRED,
            entity_type="invitation",
            entity_id=str(invitation_id),
            correlation_id=correlation_id,
            description="Invitation expired before acceptance",
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
