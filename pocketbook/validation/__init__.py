"""Validation package."""

from pocketbook.validation.validator import BudgetInputValidator

__all__ = ["BudgetInputValidator"]
