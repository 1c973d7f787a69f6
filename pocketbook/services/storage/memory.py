"""
In-Memory Storage Implementation

Used by the test suite and for local development (STORAGE_BACKEND=memory).
Rows are kept as pydantic models in dictionaries keyed by id; every read
returns a copy so callers can't mutate stored state behind our back,
the same way a database round trip behaves.
"""

import asyncio
from collections import defaultdict
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
    utcnow,
)
from pocketbook.models.subscription import (
    InvitationStatus,
    SubscriptionPlan,
    SubscriptionSeat,
    SubscriptionStatus,
    UserInvitation,
    UserSubscription,
)
from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    SubscriptionStorageInterface,
)


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Finance rows held in process memory."""

    def __init__(self):
        self._categories: dict[int, Category] = {}
        self._accounts: dict[UUID, UserAccount] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._budgets: dict[UUID, Budget] = {}
        self._budget_categories: dict[UUID, BudgetCategory] = {}

    async def save_category(self, category: Category) -> bool:
        self._categories[category.id] = category.model_copy(deep=True)
        return True

    async def get_category(self, user_id: str, category_id: int) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return None
        return category.model_copy(deep=True)

    async def list_categories(
        self,
        user_id: str,
        include_archived: bool = True,
    ) -> list[Category]:
        return [
            c.model_copy(deep=True)
            for c in self._categories.values()
            if c.user_id == user_id and (include_archived or not c.archived)
        ]

    async def next_category_id(self) -> int:
        return max(self._categories, default=0) + 1

    async def save_account(self, account: UserAccount) -> bool:
        self._accounts[account.id] = account.model_copy(deep=True)
        return True

    async def list_accounts(self, user_id: str) -> list[UserAccount]:
        return [
            a.model_copy(deep=True)
            for a in self._accounts.values()
            if a.user_id == user_id
        ]

    async def save_transaction(self, transaction: Transaction) -> bool:
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        tx = self._transactions.get(transaction_id)
        if tx is None or tx.user_id != user_id:
            return None
        return tx.model_copy(deep=True)

    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        if await self.get_transaction(user_id, transaction_id) is None:
            return False
        del self._transactions[transaction_id]
        return True

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_transfers: bool = False,
        category_id: Optional[int] = None,
        account_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        results = []
        for tx in self._transactions.values():
            if tx.user_id != user_id:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_to and tx.date > date_to:
                continue
            if tx.is_transfer and not include_transfers:
                continue
            if category_id is not None and tx.category_id != category_id:
                continue
            if account_id is not None and tx.account_id != account_id:
                continue
            results.append(tx.model_copy(deep=True))

        results.sort(key=lambda t: t.date)
        return results

    async def find_month_budget(
        self,
        user_id: str,
        budget_type: BudgetType,
        year: int,
        month: int,
    ) -> Optional[Budget]:
        for budget in self._budgets.values():
            if (
                budget.user_id == user_id
                and budget.type == budget_type
                and budget.start_date.year == year
                and budget.start_date.month == month
            ):
                return budget.model_copy(deep=True)
        return None

    async def save_budget(self, budget: Budget) -> bool:
        self._budgets[budget.id] = budget.model_copy(deep=True)
        return True

    async def get_budget_category(
        self,
        budget_id: UUID,
        category_id: int,
    ) -> Optional[BudgetCategory]:
        for row in self._budget_categories.values():
            if row.budget_id == budget_id and row.category_id == category_id:
                return row.model_copy(deep=True)
        return None

    async def save_budget_category(self, row: BudgetCategory) -> bool:
        existing = await self.get_budget_category(row.budget_id, row.category_id)
        if existing is not None and existing.id != row.id:
            raise DuplicateError(
                f"Budget {row.budget_id} already has a row for category {row.category_id}"
            )
        self._budget_categories[row.id] = row.model_copy(deep=True)
        return True

    async def list_budget_categories(self, budget_id: UUID) -> list[BudgetCategory]:
        return [
            r.model_copy(deep=True)
            for r in self._budget_categories.values()
            if r.budget_id == budget_id
        ]


class InMemorySubscriptionStorage(SubscriptionStorageInterface):
    """
    Subscription rows held in process memory.

    Seat reservations are serialized per subscription with an asyncio.Lock.
    """

    def __init__(self):
        self._plans: dict[str, SubscriptionPlan] = {}
        self._subscriptions: dict[UUID, UserSubscription] = {}
        self._seats: dict[UUID, SubscriptionSeat] = {}
        self._invitations: dict[UUID, UserInvitation] = {}
        self._seat_locks: defaultdict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def save_plan(self, plan: SubscriptionPlan) -> bool:
        self._plans[plan.id] = plan.model_copy(deep=True)
        return True

    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        plan = self._plans.get(plan_id)
        return plan.model_copy(deep=True) if plan else None

    async def save_subscription(self, subscription: UserSubscription) -> bool:
        self._subscriptions[subscription.id] = subscription.model_copy(deep=True)
        return True

    async def get_active_subscription(self, user_id: str) -> Optional[UserSubscription]:
        for sub in self._subscriptions.values():
            if sub.user_id == user_id and sub.status == SubscriptionStatus.ACTIVE:
                return sub.model_copy(deep=True)
        return None

    async def get_seat(
        self,
        subscription_id: UUID,
        user_id: str,
    ) -> Optional[SubscriptionSeat]:
        for seat in self._seats.values():
            if seat.subscription_id == subscription_id and seat.user_id == user_id:
                return seat.model_copy(deep=True)
        return None

    async def save_seat(self, seat: SubscriptionSeat) -> bool:
        existing = await self.get_seat(seat.subscription_id, seat.user_id)
        if existing is not None and existing.id != seat.id:
            raise DuplicateError(
                f"Subscription {seat.subscription_id} already has a seat for {seat.user_id}"
            )
        self._seats[seat.id] = seat.model_copy(deep=True)
        return True

    async def list_seats(self, subscription_id: UUID) -> list[SubscriptionSeat]:
        seats = [
            s.model_copy(deep=True)
            for s in self._seats.values()
            if s.subscription_id == subscription_id
        ]
        seats.sort(key=lambda s: s.assigned_at)
        return seats

    async def count_active_seats(self, subscription_id: UUID) -> int:
        return sum(
            1 for s in self._seats.values()
            if s.subscription_id == subscription_id and s.is_active
        )

    async def reserve_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        max_seats: int,
    ) -> bool:
        async with self._seat_locks[subscription_id]:
            seat = await self.get_seat(subscription_id, user_id)
            if seat is not None and seat.is_active:
                return True

            if await self.count_active_seats(subscription_id) >= max_seats:
                return False

            now = utcnow()
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
            return await self.save_seat(seat)

    async def save_invitation(self, invitation: UserInvitation) -> bool:
        for other in self._invitations.values():
            if other.token == invitation.token and other.id != invitation.id:
                raise DuplicateError("Invitation token already in use")
        self._invitations[invitation.id] = invitation.model_copy(deep=True)
        return True

    async def get_invitation_by_token(self, token: str) -> Optional[UserInvitation]:
        for invitation in self._invitations.values():
            if invitation.token == token:
                return invitation.model_copy(deep=True)
        return None

    async def list_invitations(
        self,
        inviter_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[UserInvitation]:
        invitations = [
            i.model_copy(deep=True)
            for i in self._invitations.values()
            if i.inviter_id == inviter_id and (status is None or i.status == status)
        ]
        invitations.sort(key=lambda i: i.created_at)
        return invitations


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log in process memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
