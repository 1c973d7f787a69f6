"""
Two-Stage Validation of Budget Input

DESIGN DECISION: A planned amount is validated in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Category id is a positive integer
- Amount is numeric, never negative, at most two decimals
- Runs without storage

STAGE 2 - SEMANTIC VALIDATION:
- Category exists and belongs to the user
- Category is not archived or excluded from budgeting
- Amount is not absurdly large
- Needs storage for the category lookup

Stage 2 is skipped when stage 1 fails.

IMPORTANT: Validation NEVER silently fixes input. A malformed amount is
reported, not read as zero.
"""

from decimal import Decimal
from typing import Optional

from pocketbook.budgeting.reconciliation import AmountParseError, parse_amount
from pocketbook.config import get_settings
from pocketbook.models.finance import MONEY_DIGITS, Category
from pocketbook.models.validation import ValidationIssue, ValidationResult
from pocketbook.services.storage import FinanceStorageInterface


# Digits allowed before the decimal point of a stored amount
MAX_WHOLE_DIGITS = MONEY_DIGITS - 2


def _decimal_places(value: Decimal) -> int:
    """Decimal places that carry a digit; "10.500" has one."""
    if value == 0:
        return 0
    _, digits, exponent = value.as_tuple()
    while exponent < 0 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    return max(0, -exponent)


class BudgetInputValidator:
    """
    Validates a (category, planned amount) pair before it is stored.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (needs storage for the category)
    """

    def __init__(
        self,
        storage: Optional[FinanceStorageInterface] = None,
        max_planned_amount: Optional[Decimal] = None,
    ):
        """
        Initialize validator.

        Args:
            storage: Finance storage for category lookups.
                     If None, stage 2 only checks the amount.
            max_planned_amount: Amounts above this get a warning.
                     Defaults to the configured maximum.
        """
        self._storage = storage
        if max_planned_amount is None:
            max_planned_amount = get_settings().app.max_planned_amount
        self._max_amount = max_planned_amount

    def _validate_schema(
        self,
        category_id,
        amount,
    ) -> tuple[bool, Optional[Decimal], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, parsed_amount, list_of_issues)
        """
        issues = []
        parsed = None

        if (
            isinstance(category_id, bool)
            or not isinstance(category_id, int)
            or category_id < 1
        ):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="invalid_value",
                message="Category id must be a positive integer",
                severity="error",
            ))

        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        else:
            try:
                parsed = parse_amount(amount)
            except AmountParseError as e:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message=str(e),
                    severity="error",
                    suggested_fix="Enter the amount as a number, e.g. 1500.00",
                ))

        if parsed is not None:
            if parsed < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Planned amount cannot be negative",
                    severity="error",
                ))
            elif parsed != 0 and parsed.adjusted() >= MAX_WHOLE_DIGITS:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message=f"Amount must have at most {MAX_WHOLE_DIGITS} digits before the decimal point",
                    severity="error",
                ))
            elif _decimal_places(parsed) > 2:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message="Amount has more than two decimal places",
                    severity="error",
                    suggested_fix=f"Did you mean {round(parsed, 2)}?",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, parsed, issues

    async def _validate_semantic(
        self,
        user_id: str,
        category_id: int,
        amount: Decimal,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if self._storage is not None:
            category = await self._storage.get_category(user_id, category_id)
            if category is None:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="not_found",
                    message=f"Category {category_id} not found",
                    severity="error",
                ))
            else:
                issues.extend(self._category_warnings(category))

        if amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    @staticmethod
    def _category_warnings(category: Category) -> list[ValidationIssue]:
        issues = []
        if category.archived:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="archived",
                message=f"Category '{category.name}' is archived",
                severity="warning",
                suggested_fix="Archived categories are hidden from the budget table",
            ))
        if category.exclude_from_budget:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="excluded",
                message=f"Category '{category.name}' is excluded from budgeting",
                severity="warning",
            ))
        return issues

    async def validate(
        self,
        user_id: str,
        category_id,
        amount,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            user_id: Owner of the budget
            category_id: Category the amount is planned for
            amount: Raw planned amount (Decimal, int or numeric string)

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, parsed, schema_issues = self._validate_schema(category_id, amount)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = await self._validate_semantic(
                user_id, category_id, parsed
            )
            all_issues.extend(semantic_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("The budget could not be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
