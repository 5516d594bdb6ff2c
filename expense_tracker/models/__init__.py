"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker system.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.catalog import (
    CATEGORIES,
    MISC_CATEGORY,
    CategoryCatalog,
    UnknownCategoryError,
    get_default_catalog,
)
from expense_tracker.models.expense import (
    ExpenseDraft,
    ExpenseRecord,
    PersistResult,
    ReceiptAttachment,
    StepResult,
    StoredExpense,
    SubmitOutcome,
    SubmitResult,
    ValidationIssue,
    ValidationResult,
    WizardStep,
    as_calendar_date,
    canonical_amount,
    has_at_most_cents,
    parse_amount,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Catalog
    "CATEGORIES",
    "MISC_CATEGORY",
    "CategoryCatalog",
    "UnknownCategoryError",
    "get_default_catalog",
    # Expense models
    "ExpenseDraft",
    "ExpenseRecord",
    "PersistResult",
    "ReceiptAttachment",
    "StepResult",
    "StoredExpense",
    "SubmitOutcome",
    "SubmitResult",
    "ValidationIssue",
    "ValidationResult",
    "WizardStep",
    "as_calendar_date",
    "canonical_amount",
    "has_at_most_cents",
    "parse_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
