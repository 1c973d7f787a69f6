"""Tests for the two-stage budget input validator."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocketbook.models.finance import Category
from pocketbook.validation import BudgetInputValidator

USER = "user-ana"


@pytest.fixture
def validator(finance_storage):
    return BudgetInputValidator(finance_storage, max_planned_amount=Decimal("100000"))


class TestSchemaStage:
    """Stage 1 runs without storage."""

    @pytest.mark.asyncio
    async def test_valid_input(self):
        result = await BudgetInputValidator(max_planned_amount=Decimal("100000")).validate(
            USER, 1, "250.50"
        )
        assert result.schema_valid is True
        assert result.is_valid is True
        assert result.issues == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["abc", "1,000", "NaN"])
    async def test_non_numeric_amount(self, validator, amount):
        result = await validator.validate(USER, 1, amount)

        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert result.first_error().field == "amount"

    @pytest.mark.asyncio
    async def test_negative_amount(self, validator):
        result = await validator.validate(USER, 1, "-10")
        assert result.first_error().issue_type == "invalid_value"

    @pytest.mark.asyncio
    async def test_too_many_decimals(self, validator):
        result = await validator.validate(USER, 1, "10.005")

        assert result.is_valid is False
        assert result.first_error().suggested_fix is not None

    @pytest.mark.asyncio
    async def test_trailing_zero_decimals_are_fine(self):
        validator = BudgetInputValidator(max_planned_amount=Decimal("100000"))
        result = await validator.validate(USER, 1, "10.500")
        assert result.schema_valid is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("category_id", [None, 0, -3, "7", True])
    async def test_bad_category_id(self, validator, category_id):
        result = await validator.validate(USER, category_id, "10")
        assert result.first_error().field == "category_id"

    @pytest.mark.asyncio
    async def test_missing_amount(self, validator):
        result = await validator.validate(USER, 1, None)
        assert result.first_error().issue_type == "missing"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1e30", "99999999999", "-1e30"])
    async def test_oversized_amount_is_an_error(self, validator, amount):
        result = await validator.validate(USER, 1, amount)

        assert result.schema_valid is False
        assert result.first_error().field == "amount"
        assert result.first_error().issue_type == "invalid_value"

    @pytest.mark.asyncio
    async def test_largest_storable_amount_passes_schema(self, validator):
        result = await validator.validate(USER, 1, "9999999999.99")
        assert result.schema_valid is True

    @pytest.mark.asyncio
    async def test_long_fraction_is_reported(self, validator):
        result = await validator.validate(USER, 1, "0.1000000000000000000000000000000001")

        assert result.first_error().issue_type == "invalid_format"
        assert result.first_error().suggested_fix == "Did you mean 0.10?"


class TestSemanticStage:
    """Stage 2 looks the category up."""

    @pytest.mark.asyncio
    async def test_unknown_category(self, validator):
        result = await validator.validate(USER, 42, "10")

        assert result.schema_valid is True
        assert result.semantic_valid is False
        assert result.first_error().issue_type == "not_found"

    @pytest.mark.asyncio
    async def test_category_of_other_user(self, validator, finance_storage):
        await finance_storage.save_category(Category(id=5, user_id="user-bob", name="Bob's"))

        result = await validator.validate(USER, 5, "10")
        assert result.first_error().issue_type == "not_found"

    @pytest.mark.asyncio
    async def test_archived_and_excluded_warn(self, validator, finance_storage):
        await finance_storage.save_category(Category(
            id=6,
            user_id=USER,
            name="Gym",
            archived=True,
            archived_on=datetime(2024, 1, 1, tzinfo=timezone.utc),
            exclude_from_budget=True,
        ))

        result = await validator.validate(USER, 6, "10")

        assert result.is_valid is True
        assert len(result.warnings) == 2
        assert {i.issue_type for i in result.issues} == {"archived", "excluded"}

    @pytest.mark.asyncio
    async def test_large_amount_warns(self, validator, groceries, finance_storage):
        await finance_storage.save_category(groceries)

        result = await validator.validate(USER, groceries.id, "250000")

        assert result.is_valid is True
        assert result.issues[0].issue_type == "suspicious_value"


class TestSummary:

    @pytest.mark.asyncio
    async def test_friendly_summary(self):
        validator = BudgetInputValidator(max_planned_amount=Decimal("100"))
        ok = await validator.validate(USER, 1, "10")
        high = await validator.validate(USER, 1, "500")
        bad = await validator.validate(USER, 1, "ten")

        assert validator.get_user_friendly_summary(ok) == "All checks passed."
        assert "Please verify" in validator.get_user_friendly_summary(high)
        assert "could not be saved" in validator.get_user_friendly_summary(bad)
