"""
Shared fixtures for Expense Bot tests.

Provides:
- In-memory ledger and preference stores
- Stores that fail on demand, for storage error paths
- A recording notifier for reminder dispatch
- A fake gspread worksheet that understands the A1 ranges we use
"""

import asyncio
import re
import time
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from expense_bot.audit import AuditLogger
from expense_bot.conversation import ConversationRouter, EditSessionTable, PreferenceTable
from expense_bot.queries import SummaryEngine
from expense_bot.services.storage import (
    InMemoryLedgerStore,
    InMemoryPreferenceStore,
    StorageError,
)


JAKARTA = ZoneInfo("Asia/Jakarta")

# Monday; the surrounding Sunday-start week is 18-24 October 2026
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=JAKARTA)


# =============================================================================
# STORES
# =============================================================================

class FailingLedgerStore(InMemoryLedgerStore):
    """In-memory ledger whose listed operations raise StorageError."""
    
    def __init__(self, rows=None, fail_on=()):
        super().__init__(rows)
        self.fail_on = set(fail_on)
    
    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed")
    
    async def append_row(self, entry_date, entry):
        self._check("append_row")
        return await super().append_row(entry_date, entry)
    
    async def get_row(self, position):
        self._check("get_row")
        return await super().get_row(position)
    
    async def update_row(self, position, entry_date, entry):
        self._check("update_row")
        return await super().update_row(position, entry_date, entry)
    
    async def remove_last_row(self):
        self._check("remove_last_row")
        return await super().remove_last_row()
    
    async def scan_rows(self):
        self._check("scan_rows")
        return await super().scan_rows()


class FailingPreferenceStore(InMemoryPreferenceStore):
    """In-memory preferences whose save fails while fail_saves is set."""
    
    def __init__(self, tz=JAKARTA):
        super().__init__(tz=tz)
        self.fail_saves = False
        self.fail_loads = False
    
    async def load_all(self):
        if self.fail_loads:
            raise StorageError("load failed")
        return await super().load_all()
    
    async def save(self, preference):
        if self.fail_saves:
            raise StorageError("save failed")
        await super().save(preference)


# =============================================================================
# NOTIFIER
# =============================================================================

class FakeNotifier:
    """Records deliveries; can block, stall or fail on request."""
    
    def __init__(self):
        self.sent: list[tuple[int, str]] = []
        self.error: Optional[Exception] = None
        self.delay: float = 0.0
        self.gate: Optional[asyncio.Event] = None
    
    async def send(self, chat_id: int, text: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((chat_id, text))


# =============================================================================
# GSPREAD
# =============================================================================

_RANGE = re.compile(r"([A-Z])(\d*):([A-Z])(\d*)")


class FakeWorksheet:
    """
    Worksheet stand-in holding sheet rows (row 1 = header).
    
    Reads drop trailing empty cells and rows, like the Sheets API.
    """
    
    def __init__(self, rows=None, delay: float = 0.0, error: Optional[Exception] = None):
        self.rows: list[list] = [list(row) for row in rows or []]
        self.delay = delay
        self.error = error
        self.calls: list[tuple] = []
    
    def _maybe_fail(self) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
    
    def _span(self, range_name: str) -> tuple[int, int, int, int]:
        match = _RANGE.fullmatch(range_name)
        first_col = ord(match.group(1)) - ord("A")
        last_col = ord(match.group(3)) - ord("A")
        first_row = int(match.group(2)) if match.group(2) else 1
        last_row = int(match.group(4)) if match.group(4) else len(self.rows)
        return first_row, last_row, first_col, last_col
    
    @staticmethod
    def _strip(cells: list) -> list:
        cells = list(cells)
        while cells and cells[-1] == "":
            cells.pop()
        return cells
    
    def get_values(self, range_name, value_render_option=None):
        self._maybe_fail()
        self.calls.append(("get_values", range_name, value_render_option))
        first_row, last_row, first_col, last_col = self._span(range_name)
        values = [
            self._strip(self.rows[index - 1][first_col:last_col + 1])
            for index in range(first_row, min(last_row, len(self.rows)) + 1)
        ]
        while values and not values[-1]:
            values.pop()
        return values
    
    def update(self, range_name, values, value_input_option=None):
        self._maybe_fail()
        self.calls.append(("update", range_name, value_input_option))
        first_row, _, first_col, _ = self._span(range_name)
        for offset, row in enumerate(values):
            index = first_row + offset
            while len(self.rows) < index:
                self.rows.append([])
            target = self.rows[index - 1]
            while len(target) < first_col + len(row):
                target.append("")
            target[first_col:first_col + len(row)] = list(row)
    
    def batch_clear(self, ranges):
        self._maybe_fail()
        self.calls.append(("batch_clear", tuple(ranges)))
        for range_name in ranges:
            first_row, last_row, first_col, last_col = self._span(range_name)
            for index in range(first_row, min(last_row, len(self.rows)) + 1):
                row = self.rows[index - 1]
                for col in range(first_col, min(last_col + 1, len(row))):
                    row[col] = ""
    
    def col_values(self, col, value_render_option=None):
        self._maybe_fail()
        self.calls.append(("col_values", col, value_render_option))
        return self._strip([row[col - 1] if len(row) >= col else "" for row in self.rows])
    
    def row_values(self, row):
        if row > len(self.rows):
            return []
        return self._strip(self.rows[row - 1])


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    return InMemoryLedgerStore()


@pytest.fixture
def preference_store():
    return FailingPreferenceStore(tz=JAKARTA)


@pytest.fixture
def preferences(preference_store):
    return PreferenceTable(preference_store)


@pytest.fixture
def summaries(ledger):
    return SummaryEngine(ledger)


@pytest.fixture
def router(ledger, preferences, summaries):
    return ConversationRouter(
        ledger=ledger,
        preferences=preferences,
        sessions=EditSessionTable(),
        summaries=summaries,
        audit_logger=AuditLogger(),
        tz=JAKARTA,
    )


@pytest.fixture
def notifier():
    return FakeNotifier()
