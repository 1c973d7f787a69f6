"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a relational database later
2. Use in-memory storage for testing
3. Keep the budgeting and seat logic decoupled from storage

The interface is intentionally simple - we're not building a full ORM.
Just point reads ("rows matching these filters") and upserts.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from pocketbook.models.audit import AuditEvent
from pocketbook.models.finance import (
    Budget,
    BudgetCategory,
    BudgetType,
    Category,
    Transaction,
    UserAccount,
)
from pocketbook.models.subscription import (
    InvitationStatus,
    SubscriptionPlan,
    SubscriptionSeat,
    UserInvitation,
    UserSubscription,
)


class FinanceStorageInterface(ABC):
    """
    Abstract interface for categories, accounts, transactions and budgets.

    Every read is scoped to one user; rows of other users are never returned.
    """

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        """Insert or replace a category (keyed by id)."""
        pass

    @abstractmethod
    async def get_category(self, user_id: str, category_id: int) -> Optional[Category]:
        """
        Retrieve a category owned by the user.

        Returns:
            The category if it exists and belongs to the user, None otherwise
        """
        pass

    @abstractmethod
    async def list_categories(
        self,
        user_id: str,
        include_archived: bool = True,
    ) -> list[Category]:
        """List the user's categories."""
        pass

    @abstractmethod
    async def next_category_id(self) -> int:
        """Next unused category id. Ids are unique across all users."""
        pass

    @abstractmethod
    async def save_account(self, account: UserAccount) -> bool:
        """Insert or replace an account (keyed by id)."""
        pass

    @abstractmethod
    async def list_accounts(self, user_id: str) -> list[UserAccount]:
        """List the user's accounts, open and closed."""
        pass

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """Insert or replace a transaction (keyed by id)."""
        pass

    @abstractmethod
    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """Retrieve a transaction owned by the user, None otherwise."""
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        """
        Remove a transaction owned by the user.

        Returns:
            False if no such transaction belongs to the user
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_transfers: bool = False,
        category_id: Optional[int] = None,
        account_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        List the user's transactions with optional filters.

        Args:
            user_id: Owner of the transactions
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
            include_transfers: Include transfers between own accounts
            category_id: Only transactions filed under this category
            account_id: Only transactions of this account

        Returns:
            Matching transactions ordered by date
        """
        pass

    @abstractmethod
    async def find_month_budget(
        self,
        user_id: str,
        budget_type: BudgetType,
        year: int,
        month: int,
    ) -> Optional[Budget]:
        """Find the budget whose start date falls in the given month."""
        pass

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        """Insert or replace a budget (keyed by id)."""
        pass

    @abstractmethod
    async def get_budget_category(
        self,
        budget_id: UUID,
        category_id: int,
    ) -> Optional[BudgetCategory]:
        """Retrieve the single row for (budget, category), if any."""
        pass

    @abstractmethod
    async def save_budget_category(self, row: BudgetCategory) -> bool:
        """
        Insert or replace a budget category row.

        Raises:
            DuplicateError: If another row already exists for the same
                (budget, category) pair
        """
        pass

    @abstractmethod
    async def list_budget_categories(self, budget_id: UUID) -> list[BudgetCategory]:
        """List the rows of one budget."""
        pass


class SubscriptionStorageInterface(ABC):
    """
    Abstract interface for plans, subscriptions, seats and invitations.
    """

    @abstractmethod
    async def save_plan(self, plan: SubscriptionPlan) -> bool:
        pass

    @abstractmethod
    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        pass

    @abstractmethod
    async def save_subscription(self, subscription: UserSubscription) -> bool:
        pass

    @abstractmethod
    async def get_active_subscription(self, user_id: str) -> Optional[UserSubscription]:
        """
        Get the user's subscription with status ACTIVE.

        Returns:
            The first active subscription, None if the user has none
        """
        pass

    @abstractmethod
    async def get_seat(
        self,
        subscription_id: UUID,
        user_id: str,
    ) -> Optional[SubscriptionSeat]:
        """Get the seat row for (subscription, user), active or not."""
        pass

    @abstractmethod
    async def save_seat(self, seat: SubscriptionSeat) -> bool:
        """Insert or replace a seat row (keyed by id)."""
        pass

    @abstractmethod
    async def list_seats(self, subscription_id: UUID) -> list[SubscriptionSeat]:
        """List every seat row of a subscription, active or not."""
        pass

    @abstractmethod
    async def count_active_seats(self, subscription_id: UUID) -> int:
        pass

    @abstractmethod
    async def reserve_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        max_seats: int,
    ) -> bool:
        """
        Atomically check capacity and activate a seat for the user.

        The availability check and the seat write happen as one step, so
        concurrent reservations can never push the active seat count
        above max_seats. A user who already holds an active seat keeps
        it without consuming another one.

        Returns:
            True if the user holds an active seat afterwards,
            False if the subscription is full
        """
        pass

    @abstractmethod
    async def save_invitation(self, invitation: UserInvitation) -> bool:
        """Insert or replace an invitation (keyed by id)."""
        pass

    @abstractmethod
    async def get_invitation_by_token(self, token: str) -> Optional[UserInvitation]:
        pass

    @abstractmethod
    async def list_invitations(
        self,
        inviter_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[UserInvitation]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
