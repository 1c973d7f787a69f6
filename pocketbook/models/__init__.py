"""
Data Models Package

This package contains all Pydantic models used in Pocketbook.
All data flowing through the system must conform to these schemas.
"""

from pocketbook.models.finance import (
    AccountSummary,
    AccountType,
    Budget,
    BudgetCategory,
    BudgetOverview,
    BudgetSideTotals,
    BudgetType,
    Category,
    CategoryBreakdown,
    CategoryBudgetRow,
    CategoryKind,
    DateRange,
    SummaryData,
    Transaction,
    UserAccount,
    utcnow,
)
from pocketbook.models.subscription import (
    InvitationStatus,
    SeatInfo,
    SubscriptionCheckResult,
    SubscriptionLimits,
    SubscriptionPlan,
    SubscriptionSeat,
    SubscriptionStatus,
    UserInvitation,
    UserSubscription,
)
from pocketbook.models.validation import ValidationIssue, ValidationResult
from pocketbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "AccountSummary",
    "AccountType",
    "Budget",
    "BudgetCategory",
    "BudgetOverview",
    "BudgetSideTotals",
    "BudgetType",
    "Category",
    "CategoryBreakdown",
    "CategoryBudgetRow",
    "CategoryKind",
    "DateRange",
    "SummaryData",
    "Transaction",
    "UserAccount",
    "utcnow",
    # Subscription models
    "InvitationStatus",
    "SeatInfo",
    "SubscriptionCheckResult",
    "SubscriptionLimits",
    "SubscriptionPlan",
    "SubscriptionSeat",
    "SubscriptionStatus",
    "UserInvitation",
    "UserSubscription",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
