"""API routers."""

from pocketbook.api.routes import (
    accounts,
    budgets,
    categories,
    invitations,
    subscription,
    summary,
    transactions,
)

__all__ = [
    "accounts",
    "budgets",
    "categories",
    "invitations",
    "subscription",
    "summary",
    "transactions",
]
