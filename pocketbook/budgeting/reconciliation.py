"""
Budget Reconciliation Engine

Turns raw transaction, category and planned-amount rows into the
figures the user sees: planned / spent / remaining / percentage per
category, and income / expenses / net income / savings rate per period.

Everything here is pure computation over already-fetched rows. No I/O,
no domain errors. All arithmetic is Decimal.

Sign conventions (easy to get backwards, covered by tests):
- Transaction amounts are signed: income positive, spending negative.
- Income categories count only positive amounts as activity, expense
  categories only negative ones (as magnitude). A stray opposite-sign
  row does not move the spent figure.
- Remaining is planned - spent for expenses, but spent - planned for
  income: for income it measures progress past the plan.
"""

import calendar
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from pocketbook.models.finance import (
    AccountSummary,
    BudgetOverview,
    BudgetSideTotals,
    Category,
    CategoryBreakdown,
    CategoryBudgetRow,
    CategoryKind,
    DateRange,
    SummaryData,
    Transaction,
    UserAccount,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")
# Percentages shown with two decimals, rates (fractions) with four
PERCENT_QUANTUM = Decimal("0.01")
RATE_QUANTUM = Decimal("0.0001")

AmountLike = Union[Decimal, int, str]


class AmountParseError(ValueError):
    """A monetary amount could not be read as an exact decimal."""
    pass


def parse_amount(value: AmountLike) -> Decimal:
    """
    Read an amount as an exact Decimal.

    Accepts Decimal, int, or a numeric string such as "-120.00".
    Floats are refused because they have already lost exactness, and
    non-numeric input is refused rather than read as zero.

    Raises:
        AmountParseError: If the value is not an exact, finite number
    """
    if isinstance(value, bool):
        raise AmountParseError(f"Not an amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise AmountParseError(f"Not a numeric amount: {value!r}")
    else:
        raise AmountParseError(
            f"Amounts must be Decimal, int or str, got {type(value).__name__}"
        )

    if not amount.is_finite():
        raise AmountParseError(f"Amount must be finite: {value!r}")
    return amount


def _quantized_ratio(numerator: Decimal, denominator: Decimal, quantum: Decimal) -> Decimal:
    """numerator / denominator rounded to quantum, however large the ratio."""
    with localcontext() as ctx:
        ratio = numerator / denominator
        # quantize fails when the result needs more digits than the precision
        ctx.prec = max(ctx.prec, ratio.adjusted() + 1 - quantum.as_tuple().exponent)
        return ratio.quantize(quantum)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _category_activity(category: Category, transactions: Iterable[Transaction]) -> Decimal:
    activity = ZERO
    for tx in transactions:
        if tx.is_transfer or tx.category_id != category.id:
            continue
        if category.is_income:
            if tx.amount > 0:
                activity += tx.amount
        elif tx.amount < 0:
            activity += -tx.amount
    return activity


def compute_category_budget_row(
    category: Category,
    transactions: Iterable[Transaction],
    planned_amount: Optional[AmountLike] = None,
) -> CategoryBudgetRow:
    """
    Planned vs spent for one category.

    Args:
        category: The category being reconciled
        transactions: Transactions of the reporting period; rows of other
            categories and transfers are ignored
        planned_amount: Planned amount from the budget row, None when the
            category has no budget row yet

    Returns:
        The row; spent is never negative and percentage_used is 0 when
        nothing is planned.
    """
    planned = ZERO if planned_amount is None else parse_amount(planned_amount)
    spent = _category_activity(category, transactions)

    if category.is_income:
        remaining = spent - planned
    else:
        remaining = planned - spent

    if planned > 0:
        percentage = _quantized_ratio(abs(spent) * HUNDRED, planned, PERCENT_QUANTUM)
    else:
        percentage = ZERO

    return CategoryBudgetRow(
        category_id=category.id,
        name=category.name,
        kind=category.kind,
        planned_amount=planned,
        spent_amount=spent,
        remaining_amount=remaining,
        percentage_used=percentage,
        has_plan=planned > 0,
    )


def derive_account_balance(
    account: UserAccount,
    transactions: Iterable[Transaction],
    as_of: date,
) -> Decimal:
    """
    Balance of an account as of a date, rebuilt from its transactions.

    The stored balance field is ignored so the figure is reproducible
    for any historical date.
    """
    return sum(
        (
            tx.amount for tx in transactions
            if tx.account_id == account.id
            and not tx.is_transfer
            and tx.date <= as_of
        ),
        ZERO,
    )


def compute_period_summary(
    transactions: Iterable[Transaction],
    accounts: Iterable[UserAccount],
    categories: Iterable[Category],
    as_of: date,
    period_start: Optional[date] = None,
) -> SummaryData:
    """
    Income, expenses, savings rate and balances for a period.

    Args:
        transactions: Every transaction of the user up to as_of (older
            rows are needed for balances even when period_start is set)
        accounts: The user's accounts
        categories: The user's categories
        as_of: Last day of the period and cutoff for balances
        period_start: First day of the period; None means "since the beginning"

    Uncategorized transactions count as expenses and are left out of
    the category breakdown.
    """
    category_map = {c.id: c for c in categories}
    movements = [
        tx for tx in transactions
        if not tx.is_transfer and tx.date <= as_of
    ]

    income = ZERO
    expense_sum = ZERO
    category_totals: dict[int, Decimal] = {}

    for tx in movements:
        if period_start is not None and tx.date < period_start:
            continue

        category = category_map.get(tx.category_id) if tx.category_id is not None else None
        if category is not None and category.is_income:
            income += tx.amount
        else:
            expense_sum += tx.amount

        if category is not None:
            category_totals[category.id] = category_totals.get(category.id, ZERO) + tx.amount

    expenses = abs(expense_sum)
    net_income = income - expenses
    savings_rate = _quantized_ratio(net_income, income, RATE_QUANTUM) if income > 0 else ZERO

    account_summaries = [
        AccountSummary(
            id=account.id,
            name=account.name,
            type=account.type,
            balance=derive_account_balance(account, movements, as_of),
        )
        for account in accounts
    ]
    net_worth = sum((a.balance for a in account_summaries), ZERO)

    breakdown = []
    for category_id, amount in category_totals.items():
        if amount == 0:
            continue
        category = category_map[category_id]
        side_total = income if category.is_income else expenses
        if side_total > 0:
            percent = _quantized_ratio(abs(amount), side_total, RATE_QUANTUM)
        else:
            percent = ZERO
        breakdown.append(CategoryBreakdown(
            id=category.id,
            name=category.name,
            amount=abs(amount),
            type=category.kind,
            percent=percent,
        ))

    return SummaryData(
        date_range=DateRange(start=period_start, end=as_of),
        accounts=account_summaries,
        net_worth=net_worth,
        income=income,
        expenses=expenses,
        net_income=net_income,
        savings_rate=savings_rate,
        categories=breakdown,
    )


def _side_totals(rows: list[CategoryBudgetRow]) -> BudgetSideTotals:
    return BudgetSideTotals(
        planned=sum((r.planned_amount for r in rows), ZERO),
        spent=sum((r.spent_amount for r in rows), ZERO),
        remaining=sum((r.remaining_amount for r in rows), ZERO),
    )


def build_budget_overview(
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
    planned_amounts: Mapping[int, AmountLike],
    year: int,
    month: int,
) -> BudgetOverview:
    """
    The monthly budget table: one row per active category, split into
    income and expenses, with footer totals per side.

    Archived categories are left out. Rows are ordered by display
    order, then name.
    """
    start, end = month_bounds(year, month)
    in_month = [tx for tx in transactions if start <= tx.date <= end]

    active = sorted(
        (c for c in categories if not c.archived),
        key=lambda c: (c.order, c.name.lower()),
    )

    income_rows = []
    expense_rows = []
    for category in active:
        row = compute_category_budget_row(
            category,
            in_month,
            planned_amounts.get(category.id),
        )
        if row.kind == CategoryKind.INCOME:
            income_rows.append(row)
        else:
            expense_rows.append(row)

    return BudgetOverview(
        year=year,
        month=month,
        start_date=start,
        end_date=end,
        income=income_rows,
        expenses=expense_rows,
        income_totals=_side_totals(income_rows),
        expense_totals=_side_totals(expense_rows),
    )
