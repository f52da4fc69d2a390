"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. Users can view and fix their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions: every row is written with a single range update,
  so a failed write never leaves half a row behind
- Positions are row numbers; a second writer appending or removing
  between "/edit N" and the replacement can shift what N points at
- Limited query capabilities (we aggregate in Python)

Row 1 of each worksheet holds the header, so ledger position N lives
on sheet row N + 1.

gspread is synchronous. Every call runs in a worker thread under a
bounded timeout so a slow backend cannot stall the event loop.
"""

import asyncio
import base64
import binascii
import json
from datetime import date, timezone, tzinfo
from typing import Any, Callable, Optional, TypeVar

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import ValueInputOption, ValueRenderOption
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from expense_bot.config import GoogleSheetsSettings, get_settings
from expense_bot.models.ledger import EntryInput, LedgerEntry, UserPreference
from expense_bot.services.storage.cells import (
    LEDGER_HEADER,
    PREFERENCES_HEADER,
    entry_to_row,
    is_blank_row,
    normalize_text,
    preference_to_row,
    row_to_entry,
    row_to_preference,
    written_entry,
)
from expense_bot.services.storage.interface import (
    EmptyLedgerError,
    LedgerStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
    StorageConnectionError,
    StorageError,
    StorageTimeoutError,
)


T = TypeVar("T")

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]

LEDGER_RANGE = "A:E"
PREFERENCES_RANGE = "A:C"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.
    
    Handles authentication, worksheet lookup and the timeout-bounded
    execution of blocking gspread calls.
    """
    
    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets
        self._logger = structlog.get_logger(__name__)
    
    @property
    def timeout(self) -> float:
        return self._settings.backend_timeout_seconds
    
    def _load_credentials(self) -> Credentials:
        if self._settings.credentials_base64:
            try:
                info = json.loads(base64.b64decode(self._settings.credentials_base64))
            except (binascii.Error, ValueError) as e:
                raise StorageConnectionError(f"Failed to decode credentials: {e}")
            return Credentials.from_service_account_info(info, scopes=SCOPES)
        try:
            return Credentials.from_service_account_file(
                self._settings.credentials_path,
                scopes=SCOPES,
            )
        except FileNotFoundError:
            raise StorageConnectionError(
                f"Google credentials file not found: {self._settings.credentials_path}"
            )
    
    # Only the handshake is retried; row operations never are.
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageConnectionError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.
        
        Uses service account credentials for authentication.
        """
        if self._client is None:
            credentials = self._load_credentials()
            self._client = gspread.authorize(credentials)
            # Cut the HTTP request itself off at the same bound as run()
            self._client.set_timeout(self.timeout)
            self._logger.info("sheets_connected")
        
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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet
    
    def _get_or_create(self, title: str, header: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(header),
            )
            sheet.append_row(header)
            self._logger.info("worksheet_created", title=title)
        return sheet
    
    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get the ledger worksheet (the first sheet unless one is named)."""
        if "ledger" not in self._worksheets:
            title = self._settings.ledger_sheet_name
            if title:
                sheet = self._get_or_create(title, LEDGER_HEADER)
            else:
                sheet = self.get_spreadsheet().sheet1
                if not sheet.row_values(1):
                    sheet.update(range_name="A1:E1", values=[LEDGER_HEADER])
            self._worksheets["ledger"] = sheet
        return self._worksheets["ledger"]
    
    def get_preferences_sheet(self) -> gspread.Worksheet:
        """Get or create the Preferences worksheet."""
        if "preferences" not in self._worksheets:
            self._worksheets["preferences"] = self._get_or_create(
                self._settings.preferences_sheet_name,
                PREFERENCES_HEADER,
            )
        return self._worksheets["preferences"]
    
    async def run(self, action: str, func: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking sheet operation off the event loop.
        
        Raises:
            StorageTimeoutError: If the call exceeds the configured timeout
            StorageError: For any other backend failure
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self.timeout,
            )
        except StorageError:
            raise
        except asyncio.TimeoutError:
            self._logger.error("sheets_timeout", action=action, timeout=self.timeout)
            raise StorageTimeoutError(f"{action} timed out after {self.timeout}s")
        except Exception as e:
            self._logger.error("sheets_call_failed", action=action, error=str(e))
            raise StorageError(f"Failed to {action}: {e}") from e


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger.
    
    Columns: Position, Date (DD-MM-YYYY), Amount, Category, Note.
    Values are written RAW so dates stay text and amounts stay numbers;
    reads use unformatted values and go through cell normalization.
    """
    
    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
    
    def _data_rows(self) -> list[list[Any]]:
        sheet = self._client.get_ledger_sheet()
        values = sheet.get_values(
            LEDGER_RANGE,
            value_render_option=ValueRenderOption.unformatted,
        )
        return values[1:]  # Skip header
    
    def _write(self, position: int, row: list) -> None:
        sheet_row = position + 1
        self._client.get_ledger_sheet().update(
            range_name=f"A{sheet_row}:E{sheet_row}",
            values=[row],
            value_input_option=ValueInputOption.raw,
        )
    
    def _read_one(self, position: int) -> LedgerEntry:
        if position < 1:
            raise NotFoundError(f"Entry not found: {position}")
        sheet_row = position + 1
        values = self._client.get_ledger_sheet().get_values(
            f"A{sheet_row}:E{sheet_row}",
            value_render_option=ValueRenderOption.unformatted,
        )
        if not values or is_blank_row(values[0]):
            raise NotFoundError(f"Entry not found: {position}")
        return row_to_entry(position, values[0])
    
    def _append(self, entry_date: date, entry: EntryInput) -> int:
        position = len(self._data_rows()) + 1
        self._write(position, entry_to_row(position, entry_date, entry))
        return position
    
    def _update(self, position: int, entry_date: date, entry: EntryInput) -> LedgerEntry:
        self._read_one(position)
        self._write(position, entry_to_row(position, entry_date, entry))
        return written_entry(position, entry_date, entry)
    
    def _remove_last(self) -> LedgerEntry:
        rows = self._data_rows()
        if not rows:
            raise EmptyLedgerError("No entries to remove")
        position = len(rows)
        removed = row_to_entry(position, rows[-1])
        sheet_row = position + 1
        self._client.get_ledger_sheet().batch_clear([f"A{sheet_row}:E{sheet_row}"])
        return removed
    
    def _scan(self) -> list[LedgerEntry]:
        return [
            row_to_entry(index, row)
            for index, row in enumerate(self._data_rows(), start=1)
            if not is_blank_row(row)
        ]
    
    async def append_row(self, entry_date: date, entry: EntryInput) -> int:
        """Append an entry to the ledger sheet."""
        return await self._client.run("append entry", self._append, entry_date, entry)
    
    async def get_row(self, position: int) -> LedgerEntry:
        """Read the entry at a position."""
        return await self._client.run("read entry", self._read_one, position)
    
    async def update_row(self, position: int, entry_date: date, entry: EntryInput) -> LedgerEntry:
        """Overwrite the entry at a position."""
        return await self._client.run("update entry", self._update, position, entry_date, entry)
    
    async def remove_last_row(self) -> LedgerEntry:
        """Clear the last entry."""
        return await self._client.run("remove entry", self._remove_last)
    
    async def scan_rows(self) -> list[LedgerEntry]:
        """Read every entry."""
        return await self._client.run("read ledger", self._scan)
    
    async def count_rows(self) -> int:
        rows = await self._client.run("count entries", self._data_rows)
        return len(rows)


class GoogleSheetsPreferenceStore(PreferenceStoreInterface):
    """
    Google Sheets implementation of reminder preferences.
    
    Columns: ChatID, ReminderType, LastReminderDate (YYYY-MM-DD).
    """
    
    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        tz: tzinfo = timezone.utc,
    ):
        self._client = client or GoogleSheetsClient()
        self._tz = tz
        self._logger = structlog.get_logger(__name__)
    
    def _load(self) -> list[UserPreference]:
        sheet = self._client.get_preferences_sheet()
        values = sheet.get_values(
            PREFERENCES_RANGE,
            value_render_option=ValueRenderOption.unformatted,
        )
        preferences = []
        for row in values[1:]:  # Skip header
            if is_blank_row(row):
                continue
            preference = row_to_preference(row, self._tz)
            if preference is None:
                self._logger.warning("preference_row_skipped", row=[str(c) for c in row])
                continue
            preferences.append(preference)
        return preferences
    
    def _save(self, preference: UserPreference) -> None:
        sheet = self._client.get_preferences_sheet()
        chat_ids = sheet.col_values(1, value_render_option=ValueRenderOption.unformatted)
        
        # Find the row with this chat id, else the first row after the table
        sheet_row = len(chat_ids) + 1
        for index, cell in enumerate(chat_ids[1:], start=2):
            if normalize_text(cell) == str(preference.chat_id):
                sheet_row = index
                break
        
        sheet.update(
            range_name=f"A{sheet_row}:C{sheet_row}",
            values=[preference_to_row(preference, self._tz)],
            value_input_option=ValueInputOption.raw,
        )
    
    async def load_all(self) -> list[UserPreference]:
        """Read every stored preference."""
        return await self._client.run("load preferences", self._load)
    
    async def save(self, preference: UserPreference) -> None:
        """Upsert one chat's preference."""
        await self._client.run("save preference", self._save, preference)
