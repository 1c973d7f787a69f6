"""
Core Finance Models for Pocketbook

These models define the strict schemas for the rows the budgeting
engine works on and for the figures it produces. They are designed to:
1. Enforce type safety at runtime
2. Keep money exact (Decimal, serialized as strings)
3. Be serializable for storage and logging

DESIGN DECISION: Amounts are never floats. Pydantic parses the exact
string stored by the database into a Decimal, so repeated aggregation
cannot drift by a cent.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Stored money columns hold at most this many digits, two of them decimals
MONEY_DIGITS = 12


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of money accounts a user can hold."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    CASH = "cash"


class BudgetType(str, Enum):
    """
    Budget ownership.

    Personal budgets belong to one user; shared budgets belong to a
    shared-budget group.
    """
    PERSONAL = "personal"
    SHARED = "shared"


class CategoryKind(str, Enum):
    """Side of the ledger a category sits on."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# STORED ROWS
# =============================================================================

class Category(BaseModel):
    """
    A user-defined label for transactions.

    Archived categories stay attached to historical transactions but
    are left out of active budgeting views.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=40)
    description: Optional[str] = Field(default=None, max_length=140)
    is_income: bool = False
    exclude_from_budget: bool = False
    exclude_from_totals: bool = False
    archived: bool = False
    archived_on: Optional[datetime] = None
    order: int = 0
    is_group: bool = False
    group_id: Optional[int] = None

    @property
    def kind(self) -> CategoryKind:
        return CategoryKind.INCOME if self.is_income else CategoryKind.EXPENSE

    @model_validator(mode='after')
    def validate_archive_state(self) -> 'Category':
        if self.archived_on and not self.archived:
            raise ValueError("archived_on set on a category that is not archived")
        return self


class Transaction(BaseModel):
    """
    A single movement of money on one account.

    Amounts are signed: money in is positive, money out is negative.
    Transfers between the user's own accounts are flagged so that they
    never count as income or expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    account_id: UUID
    description: str = Field(default="", max_length=200)
    amount: Decimal = Field(..., max_digits=MONEY_DIGITS, decimal_places=2)
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    date: date
    category_id: Optional[int] = None
    payee_id: Optional[int] = None
    is_transfer: bool = False
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator('amount')
    @classmethod
    def reject_non_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        return v


class UserAccount(BaseModel):
    """
    A money account (bank account, card, cash wallet).

    The stored balance is informational; point-in-time summaries derive
    balances from transactions instead.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.CHECKING
    balance: Decimal = Field(default=Decimal("0.00"), max_digits=MONEY_DIGITS, decimal_places=2)
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    is_active: bool = True


class Budget(BaseModel):
    """
    A spending plan for a date range, normally one calendar month.

    Personal budgets are created lazily the first time a planned amount
    is written for the month.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    type: BudgetType = BudgetType.PERSONAL
    amount: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=MONEY_DIGITS, decimal_places=2)
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    start_date: date
    end_date: date
    is_active: bool = True
    user_id: Optional[str] = None
    shared_budget_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_budget(self) -> 'Budget':
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        if (self.user_id is None) == (self.shared_budget_id is None):
            raise ValueError("Budget must belong to exactly one user or shared budget")
        return self


class BudgetCategory(BaseModel):
    """
    Planned and spent amounts for one category inside one budget.

    spent_amount is a cached figure; the reconciliation engine is the
    source of truth.
    """

    id: UUID = Field(default_factory=uuid4)
    budget_id: UUID
    category_id: int = Field(..., ge=1)
    planned_amount: Decimal = Field(..., ge=0, max_digits=MONEY_DIGITS, decimal_places=2)
    spent_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# COMPUTED FIGURES
# =============================================================================

class CategoryBudgetRow(BaseModel):
    """Planned vs spent for one category over one period."""

    category_id: int
    name: str
    kind: CategoryKind
    planned_amount: Decimal
    spent_amount: Decimal = Field(..., ge=0)
    remaining_amount: Decimal
    percentage_used: Decimal = Field(..., ge=0)
    has_plan: bool = Field(
        ...,
        description="False when no planned amount exists (percentage is then 0)"
    )


class BudgetSideTotals(BaseModel):
    """Footer totals for the income or the expense side of a budget."""

    planned: Decimal = Decimal("0")
    spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")


class BudgetOverview(BaseModel):
    """Everything the monthly budget screen shows."""

    year: int
    month: int = Field(..., ge=1, le=12)
    start_date: date
    end_date: date
    income: list[CategoryBudgetRow] = Field(default_factory=list)
    expenses: list[CategoryBudgetRow] = Field(default_factory=list)
    income_totals: BudgetSideTotals = Field(default_factory=BudgetSideTotals)
    expense_totals: BudgetSideTotals = Field(default_factory=BudgetSideTotals)


class AccountSummary(BaseModel):
    """Derived balance of one account as of the summary cutoff."""

    id: UUID
    name: str
    type: AccountType
    balance: Decimal


class CategoryBreakdown(BaseModel):
    """Share of income or expenses attributed to one category."""

    id: int
    name: str
    amount: Decimal = Field(..., ge=0)
    type: CategoryKind
    percent: Decimal = Field(..., ge=0, description="Fraction of the side total (0-1)")


class DateRange(BaseModel):
    start: Optional[date] = None
    end: date


class SummaryData(BaseModel):
    """
    Period summary.

    income - expenses == net_income holds exactly.
    """

    date_range: DateRange
    accounts: list[AccountSummary] = Field(default_factory=list)
    net_worth: Decimal
    income: Decimal
    expenses: Decimal = Field(..., ge=0)
    net_income: Decimal
    savings_rate: Decimal
    categories: list[CategoryBreakdown] = Field(default_factory=list)
