"""
Storage Services Package

Provides the primary expense store and the external mirror, plus the
error taxonomy the persistence flow relies on.
"""

from expense_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    ExpenseSyncInterface,
    PersistenceFailure,
    StorageError,
    SyncAuthError,
    SyncFailure,
    SyncNetworkError,
    SyncSchemaError,
)
from expense_tracker.services.storage.memory import InMemoryExpenseStorage
from expense_tracker.services.storage.google_sheets import (
    EXPENSE_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsExpenseSync,
)

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    "ExpenseSyncInterface",
    # Exceptions
    "PersistenceFailure",
    "StorageError",
    "SyncAuthError",
    "SyncFailure",
    "SyncNetworkError",
    "SyncSchemaError",
    # Implementations
    "EXPENSE_COLUMNS",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseSync",
    "InMemoryExpenseStorage",
]
