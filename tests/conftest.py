"""
Shared fixtures.

All tests run against in-memory storage; nothing talks to Google Sheets.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from pocketbook.audit import AuditLogger
from pocketbook.budgeting import BudgetPlanner
from pocketbook.models.finance import Category, Transaction, UserAccount
from pocketbook.reports import SummaryReporter
from pocketbook.services.storage import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    InMemorySubscriptionStorage,
)
from pocketbook.subscriptions import SeatAllocator


USER = "user-ana"


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def finance_storage():
    return InMemoryFinanceStorage()


@pytest.fixture
def subscription_storage():
    return InMemorySubscriptionStorage()


@pytest.fixture
def planner(finance_storage, audit_logger):
    return BudgetPlanner(finance_storage, audit_logger, default_currency="MXN")


@pytest.fixture
def reporter(finance_storage, audit_logger):
    return SummaryReporter(finance_storage, audit_logger)


@pytest.fixture
def allocator(subscription_storage, audit_logger):
    return SeatAllocator(subscription_storage, audit_logger, invitation_ttl_days=7)


@pytest.fixture
def account():
    return UserAccount(user_id=USER, name="Checking", balance=Decimal("99999.00"))


@pytest.fixture
def groceries():
    return Category(id=1, user_id=USER, name="Groceries", order=2)


@pytest.fixture
def salary():
    return Category(id=2, user_id=USER, name="Salary", is_income=True, order=1)


@pytest.fixture
def make_tx(account):
    """Build a transaction on the default account."""
    def _make(amount, day=date(2024, 3, 10), category=None, **kwargs):
        kwargs.setdefault("account_id", account.id)
        return Transaction(
            id=uuid4(),
            user_id=USER,
            amount=Decimal(amount),
            date=day,
            category_id=category.id if category is not None else None,
            **kwargs,
        )
    return _make
