"""
Google Sheets Expense Mirror

DESIGN DECISION: Saved expenses are mirrored to a Google Sheet because:
1. The household can browse and chart spending without opening the app
2. No database setup required on the viewing side
3. Built-in sharing and backup (Google's infrastructure)

TRADEOFFS:
- The sheet is a copy, never the source of truth
- No transactions; one appended row per expense
- Failures here are classified and reported, never retried or raised
  into the user's submission (see ExpensePersistenceCoordinator)
"""

from typing import Optional

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.expense import StoredExpense
from expense_tracker.services.storage.interface import (
    ExpenseSyncInterface,
    SyncAuthError,
    SyncFailure,
    SyncNetworkError,
    SyncSchemaError,
)


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Column mappings for the Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "created_at",
    "user",
    "category",
    "sub_category",
    "description",
    "amount",
    "date",
    "receipt_url",
    "notes",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and locating (or creating) the worksheet.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheet: Optional[gspread.Worksheet] = None
        self._settings = settings or get_settings().google_sheets

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise SyncAuthError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except (GoogleAuthError, ValueError) as e:
                raise SyncAuthError(f"Invalid Google credentials: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise SyncAuthError(
                    f"Spreadsheet not found or not shared with the service account: "
                    f"{self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet, checking its header row."""
        if self._worksheet is not None:
            return self._worksheet

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.expenses_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.expenses_sheet_name,
                rows=1000,
                cols=len(EXPENSE_COLUMNS),
            )
            sheet.append_row(EXPENSE_COLUMNS)
            self._worksheet = sheet
            return sheet

        header = sheet.row_values(1)
        if header != EXPENSE_COLUMNS:
            raise SyncSchemaError(
                f"Worksheet {self._settings.expenses_sheet_name!r} has columns {header}, "
                f"expected {EXPENSE_COLUMNS}"
            )
        self._worksheet = sheet
        return sheet


class GoogleSheetsExpenseSync(ExpenseSyncInterface):
    """
    Mirrors stored expenses into a worksheet, one row per expense.

    Dates are written as ISO calendar dates and amounts as their
    canonical decimal string so the sheet matches the primary store.
    """

    name = "google_sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: StoredExpense) -> list:
        """Convert a StoredExpense to a spreadsheet row."""
        return [
            str(expense.id),
            expense.created_at.isoformat(),
            expense.user,
            expense.category,
            expense.sub_category,
            expense.description,
            expense.amount,
            expense.date.isoformat(),
            expense.receipt_url,
            expense.notes,
        ]

    @staticmethod
    def _classify_api_error(error: gspread.exceptions.APIError) -> SyncFailure:
        status = getattr(error.response, "status_code", None)
        if status in (401, 403):
            return SyncAuthError(f"Google Sheets refused access ({status}): {error}")
        if status == 400:
            return SyncSchemaError(f"Google Sheets rejected the row: {error}")
        return SyncNetworkError(f"Google Sheets API error ({status}): {error}")

    def sync_expense(self, expense: StoredExpense) -> str:
        """Append the expense; returns the updated range as the external id."""
        try:
            sheet = self._client.get_expenses_sheet()
            response = sheet.append_row(
                self._expense_to_row(expense),
                value_input_option="RAW",
            )
        except SyncFailure:
            raise
        except gspread.exceptions.APIError as e:
            raise self._classify_api_error(e) from e
        except GoogleAuthError as e:
            raise SyncAuthError(f"Google authentication failed: {e}") from e
        except OSError as e:
            # requests' transport errors are OSErrors
            raise SyncNetworkError(f"Could not reach Google Sheets: {e}") from e

        updated_range = (response or {}).get("updates", {}).get("updatedRange")
        return updated_range or f"{sheet.title}!id={expense.id}"
