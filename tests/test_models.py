"""
Tests for Pocketbook models

Test strategy:
1. Unit tests for individual components (models, engine, validator)
2. Service tests on in-memory storage
3. No real Google Sheets calls in tests
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pocketbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pocketbook.models.finance import (
    Budget,
    BudgetCategory,
    Category,
    CategoryKind,
    Transaction,
)
from pocketbook.models.subscription import (
    InvitationStatus,
    SubscriptionLimits,
    SubscriptionSeat,
    UserInvitation,
)
from pocketbook.models.validation import ValidationIssue, ValidationResult


class TestFinanceModels:
    """Tests for finance Pydantic models."""

    def test_category_kind(self):
        """Test kind follows the income flag."""
        assert Category(id=1, user_id="u", name="Salary", is_income=True).kind == CategoryKind.INCOME
        assert Category(id=2, user_id="u", name="Food").kind == CategoryKind.EXPENSE

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        assert Category(id=1, user_id="u", name="  Rent  ").name == "Rent"

    def test_category_archive_state(self):
        """Test archived_on requires archived."""
        with pytest.raises(ValueError, match="not archived"):
            Category(
                id=1,
                user_id="u",
                name="Gym",
                archived_on=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    def test_transaction_parses_exact_amount(self):
        """Test amounts from strings stay exact."""
        tx = Transaction(user_id="u", account_id=uuid4(), amount="-120.10", date=date(2024, 3, 1))
        assert tx.amount == Decimal("-120.10")

    def test_transaction_rejects_extra_decimals(self):
        with pytest.raises(ValueError):
            Transaction(user_id="u", account_id=uuid4(), amount="1.005", date=date(2024, 3, 1))

    def test_transaction_rejects_oversized_amount(self):
        """Test amounts are bounded like the stored money columns."""
        with pytest.raises(ValueError):
            Transaction(user_id="u", account_id=uuid4(), amount="-1E+27", date=date(2024, 3, 1))
        tx = Transaction(
            user_id="u", account_id=uuid4(), amount="-9999999999.99", date=date(2024, 3, 1)
        )
        assert tx.amount == Decimal("-9999999999.99")

    def test_budget_date_validation(self):
        """Test that end_date cannot be before start_date."""
        with pytest.raises(ValueError, match="end date cannot be before start date"):
            Budget(
                name="March",
                start_date=date(2024, 3, 31),
                end_date=date(2024, 3, 1),
                user_id="u",
            )

    def test_budget_needs_exactly_one_owner(self):
        with pytest.raises(ValueError, match="exactly one"):
            Budget(name="March", start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))
        with pytest.raises(ValueError, match="exactly one"):
            Budget(
                name="March",
                start_date=date(2024, 3, 1),
                end_date=date(2024, 3, 31),
                user_id="u",
                shared_budget_id="s",
            )

    def test_budget_category_rejects_negative_plan(self):
        """Test that negative planned amounts are rejected."""
        with pytest.raises(ValueError):
            BudgetCategory(budget_id=uuid4(), category_id=1, planned_amount=Decimal("-1"))

    def test_budget_category_rejects_oversized_plan(self):
        with pytest.raises(ValueError):
            BudgetCategory(budget_id=uuid4(), category_id=1, planned_amount=Decimal("1e30"))


class TestSubscriptionModels:
    """Tests for subscription-related models."""

    def test_active_seat_cannot_be_deactivated(self):
        with pytest.raises(ValueError, match="active seat"):
            SubscriptionSeat(
                subscription_id=uuid4(),
                user_id="u",
                is_active=True,
                deactivated_at=datetime.now(timezone.utc),
            )

    def test_invitation_expiry(self):
        now = datetime.now(timezone.utc)
        invitation = UserInvitation(
            inviter_id="u",
            invitee_email="a@example.com",
            token="0123456789abcdef",
            expires_at=now + timedelta(days=1),
        )
        assert invitation.is_expired(now) is False
        assert invitation.is_expired(now + timedelta(days=2)) is True

    def test_invitation_token_too_short(self):
        with pytest.raises(ValueError):
            UserInvitation(
                inviter_id="u",
                invitee_email="a@example.com",
                token="short",
                expires_at=datetime.now(timezone.utc),
            )

    def test_terminal_statuses(self):
        assert InvitationStatus.PENDING.is_terminal is False
        assert all(
            s.is_terminal
            for s in (InvitationStatus.ACCEPTED, InvitationStatus.DECLINED, InvitationStatus.EXPIRED)
        )

    def test_limits_from_counts(self):
        limits = SubscriptionLimits.from_counts(uuid4(), max_seats=2, current_seats=1)
        assert limits.available_seats == 1
        assert limits.can_invite is True

    def test_limits_after_downgrade(self):
        """Test a plan downgraded below active seats cannot invite."""
        limits = SubscriptionLimits.from_counts(uuid4(), max_seats=1, current_seats=3)
        assert limits.available_seats == -2
        assert limits.can_invite is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            description="Budget created",
        )
        assert event.event_type == AuditEventType.BUDGET_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PLANNED_AMOUNT_SET,
            description="Planned amount set",
            details={"category_id": 3, "amount": "500.00"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "planned_amount_set"
        assert log_dict["details"]["amount"] == "500.00"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.SEAT_DEACTIVATED,
            description="Seat deactivated",
            user_id="u",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "seat_deactivated"  # event_type
        assert row[6] == "u"  # user_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_seat_assigned(self):
        """Test AuditEventBuilder.seat_assigned."""
        correlation_id = uuid4()
        subscription_id = uuid4()

        event = AuditEventBuilder.seat_assigned(
            subscription_id=subscription_id,
            user_id="u",
            reactivated=True,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.SEAT_ASSIGNED
        assert event.entity_id == str(subscription_id)
        assert event.correlation_id == correlation_id
        assert event.details["reactivated"] is True

    def test_audit_event_builder_invitation_refused(self):
        """Test refusals are warnings and may lack an invitation id."""
        event = AuditEventBuilder.invitation_refused(user_id="u", reason="invitation not found")

        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id is None
        assert "invitation not found" in event.description


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message="Not a numeric amount",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.first_error().field == "amount"

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="category_id",
                    issue_type="archived",
                    message="Category is archived",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.first_error() is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
