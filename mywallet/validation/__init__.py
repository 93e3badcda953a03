"""Validation package."""

from mywallet.validation.validator import BudgetValidationError, BudgetValidator

__all__ = ["BudgetValidationError", "BudgetValidator"]
