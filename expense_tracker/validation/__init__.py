"""Validation package."""

from expense_tracker.validation.validator import (
    ExpenseValidator,
    RecordValidationError,
)

__all__ = ["ExpenseValidator", "RecordValidationError"]
