"""
Budget Planner

Stores the user's plan for a month and serves the reconciled view of it.

DESIGN DECISION: Month budgets are created lazily. The first time a
user plans an amount for a month, the budget row for that month is
created on the spot (keyed by user, type and month), so there is no
separate "create budget" step and no empty budgets lying around.

Planned amounts live on one BudgetCategory row per (budget, category).
Writing the same amount twice leaves exactly one row with that amount.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pocketbook.audit import AuditLogger, get_logger
from pocketbook.budgeting.reconciliation import (
    AmountLike,
    build_budget_overview,
    compute_category_budget_row,
    month_bounds,
    parse_amount,
)
from pocketbook.config import get_settings
from pocketbook.models.audit import AuditEventBuilder
from pocketbook.models.finance import (
    Budget,
    BudgetCategory,
    BudgetOverview,
    BudgetType,
    utcnow,
)
from pocketbook.services.storage import DuplicateError, FinanceStorageInterface


logger = get_logger(__name__)


class BudgetNotFoundError(Exception):
    """No budget exists for the requested month."""

    def __init__(self, user_id: str, year: int, month: int):
        self.user_id = user_id
        self.year = year
        self.month = month
        super().__init__(f"No budget for {month}/{year}")


class CategoryNotFoundError(Exception):
    """The category does not exist or belongs to another user."""

    def __init__(self, category_id: int):
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found")


class BudgetPlanner:
    """
    Monthly budget planning on top of finance storage.

    Only personal budgets are planned here; shared budgets are owned
    through the subscription they belong to.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: Optional[str] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._currency = default_currency or get_settings().app.default_currency

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def get_or_create_month_budget(
        self,
        user_id: str,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Return the user's budget for the month, creating it if needed.

        A created budget spans the whole calendar month and uses the
        configured default currency.
        """
        budget = await self._storage.find_month_budget(
            user_id, BudgetType.PERSONAL, year, month
        )
        if budget is not None:
            return budget

        start, end = month_bounds(year, month)
        budget = Budget(
            name=f"Budget {month}/{year}",
            type=BudgetType.PERSONAL,
            currency=self._currency,
            start_date=start,
            end_date=end,
            user_id=user_id,
        )
        await self._storage.save_budget(budget)
        logger.info("budget_created", budget_id=str(budget.id), year=year, month=month)
        await self._audit(AuditEventBuilder.budget_created(
            budget_id=budget.id,
            user_id=user_id,
            year=year,
            month=month,
            correlation_id=correlation_id,
        ))
        return budget

    async def set_planned_amount(
        self,
        user_id: str,
        category_id: int,
        amount: AmountLike,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetCategory:
        """
        Create or update the planned amount of a category for a month.

        The month budget and the category row are created if missing.

        Raises:
            AmountParseError: If amount is not numeric
            ValueError: If amount is negative
            CategoryNotFoundError: If the user has no such category
        """
        planned = self._checked_amount(amount)
        await self._require_category(user_id, category_id)

        budget = await self.get_or_create_month_budget(
            user_id, year, month, correlation_id=correlation_id
        )
        return await self._write_planned_amount(
            budget, user_id, category_id, planned, correlation_id
        )

    async def update_planned_amount(
        self,
        user_id: str,
        category_id: int,
        amount: AmountLike,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetCategory:
        """
        Update the planned amount of a category in an existing month budget.

        Unlike set_planned_amount, the month budget must already exist.

        Raises:
            BudgetNotFoundError: If the month has no budget
            AmountParseError: If amount is not numeric
            ValueError: If amount is negative
            CategoryNotFoundError: If the user has no such category
        """
        planned = self._checked_amount(amount)
        await self._require_category(user_id, category_id)

        budget = await self._storage.find_month_budget(
            user_id, BudgetType.PERSONAL, year, month
        )
        if budget is None:
            raise BudgetNotFoundError(user_id, year, month)

        return await self._write_planned_amount(
            budget, user_id, category_id, planned, correlation_id
        )

    async def get_planned_amounts(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> dict[int, Decimal]:
        """Planned amount per category id; empty when the month has no budget."""
        budget = await self._storage.find_month_budget(
            user_id, BudgetType.PERSONAL, year, month
        )
        if budget is None:
            return {}

        rows = await self._storage.list_budget_categories(budget.id)
        return {row.category_id: row.planned_amount for row in rows}

    async def get_month_overview(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> BudgetOverview:
        """The reconciled budget table for one month."""
        start, end = month_bounds(year, month)
        categories = await self._storage.list_categories(user_id, include_archived=False)
        transactions = await self._storage.list_transactions(
            user_id, date_from=start, date_to=end
        )
        planned = await self.get_planned_amounts(user_id, year, month)

        return build_budget_overview(categories, transactions, planned, year, month)

    async def refresh_spent_amounts(
        self,
        user_id: str,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Recompute the cached spent amount of every row of the month budget.

        Returns:
            Number of rows whose cached value changed (0 when the month
            has no budget)
        """
        budget = await self._storage.find_month_budget(
            user_id, BudgetType.PERSONAL, year, month
        )
        if budget is None:
            return 0

        start, end = month_bounds(year, month)
        categories = {
            c.id: c for c in await self._storage.list_categories(user_id)
        }
        transactions = await self._storage.list_transactions(
            user_id, date_from=start, date_to=end
        )

        updated = 0
        for row in await self._storage.list_budget_categories(budget.id):
            category = categories.get(row.category_id)
            if category is None:
                # Category deleted since it was planned
                continue

            spent = compute_category_budget_row(category, transactions).spent_amount
            if spent == row.spent_amount:
                continue

            await self._storage.save_budget_category(row.model_copy(update={
                "spent_amount": spent,
                "updated_at": utcnow(),
            }))
            updated += 1

        await self._audit(AuditEventBuilder.spent_amounts_refreshed(
            budget_id=budget.id,
            user_id=user_id,
            updated_rows=updated,
            correlation_id=correlation_id,
        ))
        return updated

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _checked_amount(amount: AmountLike) -> Decimal:
        planned = parse_amount(amount)
        if planned < 0:
            raise ValueError("Planned amount cannot be negative")
        return planned

    async def _require_category(self, user_id: str, category_id: int) -> None:
        if await self._storage.get_category(user_id, category_id) is None:
            raise CategoryNotFoundError(category_id)

    async def _write_planned_amount(
        self,
        budget: Budget,
        user_id: str,
        category_id: int,
        planned: Decimal,
        correlation_id: Optional[UUID],
    ) -> BudgetCategory:
        row = await self._storage.get_budget_category(budget.id, category_id)
        previous = row.planned_amount if row else None

        if row is None:
            row = BudgetCategory(
                budget_id=budget.id,
                category_id=category_id,
                planned_amount=planned,
            )
            try:
                await self._storage.save_budget_category(row)
            except DuplicateError:
                # Another request created the row first; update theirs
                row = await self._storage.get_budget_category(budget.id, category_id)
                previous = row.planned_amount
                row = row.model_copy(update={"planned_amount": planned, "updated_at": utcnow()})
                await self._storage.save_budget_category(row)
        else:
            row = row.model_copy(update={"planned_amount": planned, "updated_at": utcnow()})
            await self._storage.save_budget_category(row)

        await self._audit(AuditEventBuilder.planned_amount_set(
            budget_id=budget.id,
            user_id=user_id,
            category_id=category_id,
            previous=str(previous) if previous is not None else None,
            amount=str(planned),
            correlation_id=correlation_id,
        ))
        return row
