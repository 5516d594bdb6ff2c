"""
Abstract Storage Interfaces

DESIGN DECISION: Expenses go to two places with very different contracts.

1. The primary store is authoritative. A write there must succeed or the
   submission fails. It assigns the expense id and creation time.
2. The external mirror is a copy for viewing elsewhere. It is allowed to
   fail, and its failures are classified so they can be reconciled later.

Keeping both behind small interfaces lets us:
1. Use in-memory storage for tests and single-process deployments
2. Swap the mirror backend without touching the persistence flow
3. Keep business logic decoupled from storage implementation
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_tracker.models.expense import ExpenseRecord, StoredExpense


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for the primary expense store.

    Implementations must hand out unique, increasing integer ids even
    when several sessions save at the same time.
    """

    @abstractmethod
    async def create_expense(self, record: ExpenseRecord) -> StoredExpense:
        """
        Save a validated expense.

        Args:
            record: The validated expense to save

        Returns:
            The stored expense with its id and created_at assigned

        Raises:
            PersistenceFailure: If the save fails
        """
        pass

    @abstractmethod
    async def list_expenses(self) -> list[StoredExpense]:
        """
        List all stored expenses.

        Returns:
            Stored expenses in insertion order
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[StoredExpense]:
        """
        Retrieve an expense by its id.

        Returns:
            The expense if found, None otherwise
        """
        pass


class ExpenseSyncInterface(ABC):
    """
    Abstract interface for the external expense mirror.

    sync_expense is blocking; the persistence coordinator runs it in a
    worker thread with a timeout.
    """

    name: str = "external"

    @abstractmethod
    def sync_expense(self, expense: StoredExpense) -> str:
        """
        Copy a stored expense to the external service.

        Args:
            expense: The expense as accepted by the primary store

        Returns:
            The external service's identifier for the copy

        Raises:
            SyncAuthError: Credentials missing or rejected
            SyncSchemaError: The external layout does not match our columns
            SyncNetworkError: The service could not be reached or failed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceFailure(StorageError):
    """The primary store could not save the expense."""
    pass


class SyncFailure(StorageError):
    """The external mirror could not copy the expense."""

    kind = "unknown"


class SyncAuthError(SyncFailure):
    """Credentials for the external service are missing or rejected."""

    kind = "auth"


class SyncSchemaError(SyncFailure):
    """The external service rejected the shape of the data."""

    kind = "schema"


class SyncNetworkError(SyncFailure):
    """The external service could not be reached or returned an error."""

    kind = "network"
