"""Expense wizard package."""

from expense_tracker.wizard.engine import BUSY_MESSAGE, ExpenseWizard, WizardBusyError
from expense_tracker.wizard.steps import StepDescriptor, build_steps

__all__ = [
    "BUSY_MESSAGE",
    "ExpenseWizard",
    "StepDescriptor",
    "WizardBusyError",
    "build_steps",
]
