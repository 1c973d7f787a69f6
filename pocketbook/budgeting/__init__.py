"""Budget reconciliation and planning."""

from pocketbook.budgeting.planner import (
    BudgetNotFoundError,
    BudgetPlanner,
    CategoryNotFoundError,
)
from pocketbook.budgeting.reconciliation import (
    AmountParseError,
    build_budget_overview,
    compute_category_budget_row,
    compute_period_summary,
    derive_account_balance,
    month_bounds,
    parse_amount,
)

__all__ = [
    "AmountParseError",
    "BudgetNotFoundError",
    "BudgetPlanner",
    "CategoryNotFoundError",
    "build_budget_overview",
    "compute_category_budget_row",
    "compute_period_summary",
    "derive_account_balance",
    "month_bounds",
    "parse_amount",
]
