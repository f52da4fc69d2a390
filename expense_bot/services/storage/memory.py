"""
In-Memory Storage Implementation

Keeps ledger rows as raw cells, exactly like a worksheet would return
them, so the same boundary normalization runs as with Google Sheets.
Used by the tests and by storage-less development runs.
"""

from datetime import date, timezone, tzinfo
from typing import Any, Optional, Sequence

from expense_bot.models.ledger import EntryInput, LedgerEntry, UserPreference
from expense_bot.services.storage.cells import (
    entry_to_row,
    is_blank_row,
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
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """Ledger held in a list of raw rows (header excluded)."""
    
    def __init__(self, rows: Optional[Sequence[Sequence[Any]]] = None):
        self._rows: list[list[Any]] = [list(row) for row in rows or []]
    
    @property
    def raw_rows(self) -> list[list[Any]]:
        """Copy of the stored cells, for inspection."""
        return [list(row) for row in self._rows]
    
    def _trim(self) -> None:
        # A worksheet read never returns trailing blank rows
        while self._rows and is_blank_row(self._rows[-1]):
            self._rows.pop()
    
    async def append_row(self, entry_date: date, entry: EntryInput) -> int:
        self._trim()
        position = len(self._rows) + 1
        self._rows.append(entry_to_row(position, entry_date, entry))
        return position
    
    async def get_row(self, position: int) -> LedgerEntry:
        self._trim()
        if position < 1 or position > len(self._rows) or is_blank_row(self._rows[position - 1]):
            raise NotFoundError(f"Entry not found: {position}")
        return row_to_entry(position, self._rows[position - 1])
    
    async def update_row(self, position: int, entry_date: date, entry: EntryInput) -> LedgerEntry:
        await self.get_row(position)
        self._rows[position - 1] = entry_to_row(position, entry_date, entry)
        return written_entry(position, entry_date, entry)
    
    async def remove_last_row(self) -> LedgerEntry:
        self._trim()
        if not self._rows:
            raise EmptyLedgerError("No entries to remove")
        position = len(self._rows)
        removed = row_to_entry(position, self._rows[-1])
        self._rows[-1] = ["", "", "", "", ""]
        self._trim()
        return removed
    
    async def scan_rows(self) -> list[LedgerEntry]:
        self._trim()
        return [
            row_to_entry(index, row)
            for index, row in enumerate(self._rows, start=1)
            if not is_blank_row(row)
        ]
    
    async def count_rows(self) -> int:
        self._trim()
        return len(self._rows)


class InMemoryPreferenceStore(PreferenceStoreInterface):
    """Preferences held as raw rows keyed by chat id."""
    
    def __init__(self, tz: tzinfo = timezone.utc):
        self._tz = tz
        self._rows: dict[int, list[Any]] = {}
    
    async def load_all(self) -> list[UserPreference]:
        preferences = []
        for row in self._rows.values():
            preference = row_to_preference(row, self._tz)
            if preference is not None:
                preferences.append(preference)
        return preferences
    
    async def save(self, preference: UserPreference) -> None:
        self._rows[preference.chat_id] = preference_to_row(preference, self._tz)
