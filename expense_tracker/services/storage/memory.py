"""
In-Memory Expense Storage

The primary store: a dict from integer id to stored expense.

Ids come from one counter starting at 1. The counter and the dict are
guarded by a threading.Lock rather than an asyncio.Lock because the UI
drives each request on its own event loop, and a single process may
serve several sessions from different threads.
"""

import itertools
import threading
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.models.expense import ExpenseRecord, StoredExpense
from expense_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    PersistenceFailure,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Process-local primary store."""

    def __init__(self):
        self._expenses: dict[int, StoredExpense] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    async def create_expense(self, record: ExpenseRecord) -> StoredExpense:
        """Assign the next id and keep the expense."""
        with self._lock:
            expense_id = next(self._ids)
            try:
                stored = StoredExpense(
                    **record.model_dump(),
                    id=expense_id,
                    created_at=datetime.now(timezone.utc),
                )
            except PydanticValidationError as e:
                raise PersistenceFailure(f"Failed to save expense: {e}") from e
            self._expenses[expense_id] = stored
        return stored

    async def list_expenses(self) -> list[StoredExpense]:
        with self._lock:
            return list(self._expenses.values())

    async def get_expense(self, expense_id: int) -> Optional[StoredExpense]:
        with self._lock:
            return self._expenses.get(expense_id)

    def __len__(self) -> int:
        return len(self._expenses)
