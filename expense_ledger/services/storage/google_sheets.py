"""
Key-value store backed by a single Google Sheets worksheet.

Layout: row 1 is the header, then one row per key with the key in
column A and its JSON-encoded value in column B. Keeping the ledger in a
spreadsheet lets the owner inspect and back it up without any database.

There are no transactions here. Each put/delete rewrites one row, and
the ledger orders its writes so a failure leaves at worst a dangling id
or an orphaned record, both of which repair() cleans up. Lookups scan the
key column, which is fine for a personal ledger.
"""

import json
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.config import get_settings
from expense_ledger.services.storage.interface import (
    PersistentKeyValueStore,
    StorageUnavailable,
)


LEDGER_COLUMNS = ["key", "value_json"]
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Quota and transient API errors only; auth and lookup errors fail fast
_api_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Lazily authorized handle on the ledger spreadsheet.

    Credentials, spreadsheet id and worksheet name come from
    GoogleSheetsSettings.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_api_retry
    def connect(self) -> gspread.Client:
        """Authorize with the service account key (once)."""
        if self._client is not None:
            return self._client

        key_file = self._settings.credentials_path
        try:
            credentials = Credentials.from_service_account_file(key_file, scopes=SCOPES)
        except FileNotFoundError as e:
            raise StorageUnavailable(f"Service account key file missing: {key_file}") from e
        except ValueError as e:
            raise StorageUnavailable(f"Invalid service account key file {key_file}: {e}") from e

        self._client = gspread.authorize(credentials)
        return self._client

    @_api_retry
    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            spreadsheet_id = self._settings.spreadsheet_id
            try:
                self._spreadsheet = self.connect().open_by_key(spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise StorageUnavailable(
                    f"No spreadsheet {spreadsheet_id} visible to the service account"
                ) from e
        return self._spreadsheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """The ledger worksheet, created with its header row on first use."""
        spreadsheet = self.get_spreadsheet()
        name = self._settings.worksheet_name
        try:
            return spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=name, rows=100, cols=len(LEDGER_COLUMNS))
            sheet.append_row(LEDGER_COLUMNS)
            return sheet


class GoogleSheetsKeyValueStore(PersistentKeyValueStore):
    """
    Google Sheets implementation of the ledger key-value store.

    Row 1 is the header; keys start at row 2.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_api_retry
    def _rows(self) -> tuple[gspread.Worksheet, list[list[str]]]:
        sheet = self._client.get_ledger_sheet()
        return sheet, sheet.get_all_values()[1:]  # Skip header

    @staticmethod
    def _find_row(rows: list[list[str]], key: str) -> Optional[int]:
        """Sheet row number (1-based, header included) holding key."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == key:
                return idx
        return None

    async def get(self, key: str) -> Optional[Any]:
        try:
            _, rows = self._rows()
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to read key {key!r}: {e}") from e

        idx = self._find_row(rows, key)
        if idx is None:
            return None
        row = rows[idx - 2]
        raw = row[1] if len(row) > 1 else ""
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Corrupt value stored for key {key!r}: {e}") from e

    @_api_retry
    def _write(self, key: str, value_json: str) -> None:
        sheet, rows = self._rows()
        idx = self._find_row(rows, key)
        if idx is None:
            sheet.append_row([key, value_json], value_input_option="RAW")
        else:
            sheet.update(
                range_name=rowcol_to_a1(idx, 2),
                values=[[value_json]],
                value_input_option="RAW",
            )

    async def put(self, key: str, value: Any) -> None:
        try:
            self._write(key, json.dumps(value))
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to write key {key!r}: {e}") from e

    @_api_retry
    def _remove(self, key: str) -> None:
        sheet, rows = self._rows()
        idx = self._find_row(rows, key)
        if idx is not None:
            sheet.delete_rows(idx)

    async def delete(self, key: str) -> None:
        try:
            self._remove(key)
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to delete key {key!r}: {e}") from e

    async def keys(self) -> set[str]:
        try:
            _, rows = self._rows()
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to list keys: {e}") from e
        return {row[0] for row in rows if row and row[0]}
