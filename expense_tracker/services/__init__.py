"""Services package."""

from expense_tracker.services.image import (
    AttachmentResolutionFailure,
    CloudinaryReceiptService,
    ReceiptTooLargeError,
    ReceiptUploadError,
    UnreadableReceiptError,
)
from expense_tracker.services.storage import (
    EXPENSE_COLUMNS,
    ExpenseStorageInterface,
    ExpenseSyncInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseSync,
    InMemoryExpenseStorage,
    PersistenceFailure,
    StorageError,
    SyncAuthError,
    SyncFailure,
    SyncNetworkError,
    SyncSchemaError,
)

__all__ = [
    # Receipt services
    "AttachmentResolutionFailure",
    "CloudinaryReceiptService",
    "ReceiptTooLargeError",
    "ReceiptUploadError",
    "UnreadableReceiptError",
    # Storage services
    "EXPENSE_COLUMNS",
    "ExpenseStorageInterface",
    "ExpenseSyncInterface",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseSync",
    "InMemoryExpenseStorage",
    "PersistenceFailure",
    "StorageError",
    "SyncAuthError",
    "SyncFailure",
    "SyncNetworkError",
    "SyncSchemaError",
]
