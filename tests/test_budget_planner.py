"""
Tests for the budget planner and the summary reporter.

Both run on in-memory storage.
"""

from datetime import date
from decimal import Decimal

import pytest

from pocketbook.budgeting import (
    AmountParseError,
    BudgetNotFoundError,
    CategoryNotFoundError,
)
from pocketbook.models.audit import AuditEventType
from pocketbook.models.finance import BudgetType
from pocketbook.reports import InvalidDateRangeError

USER = "user-ana"


async def seed(storage, *items):
    for item in items:
        if hasattr(item, "is_income"):
            await storage.save_category(item)
        elif hasattr(item, "is_transfer"):
            await storage.save_transaction(item)
        else:
            await storage.save_account(item)


class TestLazyBudgetCreation:
    """Budgets appear on the first planned-amount write."""

    @pytest.mark.asyncio
    async def test_no_budget_until_first_write(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        assert await planner.get_planned_amounts(USER, 2024, 3) == {}
        assert await finance_storage.find_month_budget(USER, BudgetType.PERSONAL, 2024, 3) is None

    @pytest.mark.asyncio
    async def test_first_write_creates_month_budget(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        row = await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 2)

        budget = await finance_storage.find_month_budget(USER, BudgetType.PERSONAL, 2024, 2)
        assert budget is not None
        assert budget.id == row.budget_id
        assert budget.name == "Budget 2/2024"
        assert budget.start_date == date(2024, 2, 1)
        assert budget.end_date == date(2024, 2, 29)
        assert budget.currency == "MXN"
        assert budget.user_id == USER

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, planner):
        first = await planner.get_or_create_month_budget(USER, 2024, 5)
        second = await planner.get_or_create_month_budget(USER, 2024, 5)
        assert first.id == second.id


class TestPlannedAmounts:
    """Upsert by (budget, category)."""

    @pytest.mark.asyncio
    async def test_upsert_keeps_single_row(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        first = await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 3)
        second = await planner.set_planned_amount(USER, groceries.id, "650.00", 2024, 3)

        rows = await finance_storage.list_budget_categories(first.budget_id)
        assert len(rows) == 1
        assert first.id == second.id
        assert rows[0].planned_amount == Decimal("650.00")
        assert await planner.get_planned_amounts(USER, 2024, 3) == {groceries.id: Decimal("650.00")}

    @pytest.mark.asyncio
    async def test_same_amount_twice(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 3)
        row = await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 3)

        rows = await finance_storage.list_budget_categories(row.budget_id)
        assert [r.planned_amount for r in rows] == [Decimal("500.00")]

    @pytest.mark.asyncio
    async def test_update_requires_existing_budget(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        with pytest.raises(BudgetNotFoundError):
            await planner.update_planned_amount(USER, groceries.id, "100", 2024, 3)

        await planner.set_planned_amount(USER, groceries.id, "100", 2024, 3)
        row = await planner.update_planned_amount(USER, groceries.id, "120", 2024, 3)
        assert row.planned_amount == Decimal("120")

    @pytest.mark.asyncio
    async def test_unknown_category(self, planner):
        with pytest.raises(CategoryNotFoundError):
            await planner.set_planned_amount(USER, 99, "100", 2024, 3)

    @pytest.mark.asyncio
    async def test_other_users_category_is_unknown(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)
        with pytest.raises(CategoryNotFoundError):
            await planner.set_planned_amount("user-bob", groceries.id, "100", 2024, 3)

    @pytest.mark.asyncio
    async def test_rejects_bad_amounts(self, planner, finance_storage, groceries):
        await seed(finance_storage, groceries)

        with pytest.raises(AmountParseError):
            await planner.set_planned_amount(USER, groceries.id, "lots", 2024, 3)
        with pytest.raises(ValueError):
            await planner.set_planned_amount(USER, groceries.id, "-5", 2024, 3)

    @pytest.mark.asyncio
    async def test_write_is_audited(self, planner, finance_storage, audit_storage, groceries):
        await seed(finance_storage, groceries)

        await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 3)

        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert AuditEventType.BUDGET_CREATED in types
        assert AuditEventType.PLANNED_AMOUNT_SET in types


class TestMonthOverview:

    @pytest.mark.asyncio
    async def test_overview_reconciles_month(
        self, planner, finance_storage, account, groceries, salary, make_tx
    ):
        await seed(
            finance_storage,
            account,
            groceries,
            salary,
            make_tx("-120.00", category=groceries),
            make_tx("-80.00", category=groceries),
            make_tx("-70.00", day=date(2024, 4, 2), category=groceries),
            make_tx("2000.00", category=salary),
        )
        await planner.set_planned_amount(USER, groceries.id, "500.00", 2024, 3)

        overview = await planner.get_month_overview(USER, 2024, 3)

        groceries_row = overview.expenses[0]
        assert groceries_row.spent_amount == Decimal("200.00")
        assert groceries_row.remaining_amount == Decimal("300.00")
        assert groceries_row.percentage_used == Decimal("40.00")
        assert overview.income[0].spent_amount == Decimal("2000.00")
        assert overview.income[0].has_plan is False

    @pytest.mark.asyncio
    async def test_refresh_spent_amounts(
        self, planner, finance_storage, account, groceries, make_tx
    ):
        await seed(finance_storage, account, groceries, make_tx("-45.50", category=groceries))
        row = await planner.set_planned_amount(USER, groceries.id, "100", 2024, 3)

        assert await planner.refresh_spent_amounts(USER, 2024, 3) == 1
        assert await planner.refresh_spent_amounts(USER, 2024, 3) == 0

        stored = await finance_storage.get_budget_category(row.budget_id, groceries.id)
        assert stored.spent_amount == Decimal("45.50")

    @pytest.mark.asyncio
    async def test_refresh_without_budget(self, planner):
        assert await planner.refresh_spent_amounts(USER, 2024, 3) == 0


class TestSummaryReporter:

    @pytest.mark.asyncio
    async def test_summarize(self, reporter, finance_storage, account, groceries, salary, make_tx):
        await seed(
            finance_storage,
            account,
            groceries,
            salary,
            make_tx("1000.00", day=date(2024, 3, 1), category=salary),
            make_tx("-250.00", day=date(2024, 3, 2), category=groceries),
            make_tx("-10.00", day=date(2024, 4, 2), category=groceries),
        )

        summary = await reporter.summarize(USER, date(2024, 3, 1), date(2024, 3, 31))

        assert summary.income == Decimal("1000.00")
        assert summary.expenses == Decimal("250.00")
        assert summary.net_worth == Decimal("750.00")
        assert summary.savings_rate == Decimal("0.7500")

    @pytest.mark.asyncio
    async def test_inverted_range(self, reporter):
        with pytest.raises(InvalidDateRangeError):
            await reporter.summarize(USER, date(2024, 4, 1), date(2024, 3, 1))
