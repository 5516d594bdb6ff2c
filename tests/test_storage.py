"""
Tests for the primary store and the Google Sheets mirror.

gspread objects are replaced by small fakes; no network access.
"""

import asyncio
import threading
import pytest
from datetime import date, datetime, timezone

import gspread

from expense_tracker.config import GoogleSheetsSettings
from expense_tracker.models.expense import ExpenseRecord, StoredExpense
from expense_tracker.services.storage import (
    EXPENSE_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsExpenseSync,
    InMemoryExpenseStorage,
    SyncAuthError,
    SyncNetworkError,
    SyncSchemaError,
)


def make_record(**overrides) -> ExpenseRecord:
    fields = {
        "user": "Alexa",
        "category": "Yoshi",
        "sub_category": "Vet",
        "amount": "120.5",
        "date": date(2024, 5, 1),
        "notes": "annual checkup",
    }
    fields.update(overrides)
    return ExpenseRecord(**fields)


def make_stored(**overrides) -> StoredExpense:
    return StoredExpense(
        **make_record(**overrides).model_dump(),
        id=7,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.text = "error"

    def json(self):
        return {"error": {"code": self.status_code, "message": "error", "status": "ERROR"}}


class FakeWorksheet:
    def __init__(self, title="Expenses", header=None, error=None):
        self.title = title
        self.rows = [list(header)] if header is not None else []
        self.error = error

    def row_values(self, index):
        return self.rows[index - 1] if len(self.rows) >= index else []

    def append_row(self, row, value_input_option=None):
        if self.error is not None:
            raise self.error
        self.rows.append(row)
        return {"updates": {"updatedRange": f"{self.title}!A{len(self.rows)}:J{len(self.rows)}"}}


class FakeSpreadsheet:
    def __init__(self, worksheet=None):
        self._worksheet = worksheet
        self.added = []

    def worksheet(self, title):
        if self._worksheet is None:
            raise gspread.WorksheetNotFound(title)
        return self._worksheet

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet(title=title)
        self.added.append(sheet)
        return sheet


class FakeClient:
    def __init__(self, sheet=None, error=None):
        self.sheet = sheet
        self.error = error

    def get_expenses_sheet(self):
        if self.error is not None:
            raise self.error
        return self.sheet


@pytest.fixture
def sheets_settings(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    return GoogleSheetsSettings(
        credentials_path=str(credentials),
        spreadsheet_id="sheet-123",
    )


class TestInMemoryExpenseStorage:

    def test_ids_start_at_one_and_increase(self):
        storage = InMemoryExpenseStorage()
        first = asyncio.run(storage.create_expense(make_record()))
        second = asyncio.run(storage.create_expense(make_record()))
        assert (first.id, second.id) == (1, 2)

    def test_round_trip_keeps_canonical_values(self):
        storage = InMemoryExpenseStorage()
        stored = asyncio.run(storage.create_expense(make_record()))

        fetched = asyncio.run(storage.get_expense(stored.id))
        assert fetched.amount == "120.50"
        assert fetched.date == date(2024, 5, 1)
        assert fetched.notes == "annual checkup"
        assert fetched.created_at.tzinfo is not None

    def test_list_round_trip_is_field_for_field_equal(self):
        storage = InMemoryExpenseStorage()
        record = make_record(amount="45", date=datetime(2024, 5, 1, 18, 45))
        asyncio.run(storage.create_expense(record))

        [listed] = asyncio.run(storage.list_expenses())
        assert listed.model_dump(exclude={"id", "created_at"}) == record.model_dump()
        assert listed.amount == "45.00"

    def test_missing_expense_is_none(self):
        assert asyncio.run(InMemoryExpenseStorage().get_expense(99)) is None

    def test_ids_are_unique_across_threads(self):
        storage = InMemoryExpenseStorage()

        def save_many():
            for _ in range(20):
                asyncio.run(storage.create_expense(make_record()))

        threads = [threading.Thread(target=save_many) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        ids = [expense.id for expense in asyncio.run(storage.list_expenses())]
        assert sorted(ids) == list(range(1, 81))


class TestGoogleSheetsExpenseSync:

    def test_appends_one_row_per_expense(self):
        sheet = FakeWorksheet(header=EXPENSE_COLUMNS)
        sync = GoogleSheetsExpenseSync(client=FakeClient(sheet=sheet))

        external_id = sync.sync_expense(make_stored())

        assert external_id == "Expenses!A2:J2"
        row = dict(zip(EXPENSE_COLUMNS, sheet.rows[1]))
        assert row["id"] == "7"
        assert row["amount"] == "120.50"
        assert row["date"] == "2024-05-01"
        assert row["receipt_url"] == ""

    @pytest.mark.parametrize("status,error_type", [
        (401, SyncAuthError),
        (403, SyncAuthError),
        (400, SyncSchemaError),
        (503, SyncNetworkError),
    ])
    def test_api_errors_are_classified(self, status, error_type):
        sheet = FakeWorksheet(error=gspread.exceptions.APIError(FakeResponse(status)))
        sync = GoogleSheetsExpenseSync(client=FakeClient(sheet=sheet))
        with pytest.raises(error_type):
            sync.sync_expense(make_stored())

    def test_connection_errors_are_network_failures(self):
        sheet = FakeWorksheet(error=ConnectionError("reset by peer"))
        sync = GoogleSheetsExpenseSync(client=FakeClient(sheet=sheet))
        with pytest.raises(SyncNetworkError):
            sync.sync_expense(make_stored())

    def test_client_failures_pass_through(self):
        sync = GoogleSheetsExpenseSync(client=FakeClient(error=SyncAuthError("no credentials")))
        with pytest.raises(SyncAuthError):
            sync.sync_expense(make_stored())


class TestGoogleSheetsClient:

    def test_creates_missing_sheet_with_header(self, sheets_settings):
        client = GoogleSheetsClient(settings=sheets_settings)
        spreadsheet = FakeSpreadsheet()
        client._spreadsheet = spreadsheet

        sheet = client.get_expenses_sheet()

        assert sheet is spreadsheet.added[0]
        assert sheet.rows == [EXPENSE_COLUMNS]

    def test_rejects_unexpected_header(self, sheets_settings):
        client = GoogleSheetsClient(settings=sheets_settings)
        client._spreadsheet = FakeSpreadsheet(FakeWorksheet(header=["id", "amount"]))

        with pytest.raises(SyncSchemaError):
            client.get_expenses_sheet()

    def test_accepts_matching_header(self, sheets_settings):
        worksheet = FakeWorksheet(header=EXPENSE_COLUMNS)
        client = GoogleSheetsClient(settings=sheets_settings)
        client._spreadsheet = FakeSpreadsheet(worksheet)

        assert client.get_expenses_sheet() is worksheet

    def test_missing_credentials_file_is_an_auth_error(self, tmp_path):
        settings = GoogleSheetsSettings.model_construct(
            credentials_path=str(tmp_path / "missing.json"),
            spreadsheet_id="sheet-123",
            expenses_sheet_name="Expenses",
        )
        client = GoogleSheetsClient(settings=settings)
        with pytest.raises(SyncAuthError):
            client.connect()
