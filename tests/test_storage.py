"""
Tests for cell normalization and the in-memory stores.

The in-memory stores keep raw cells, so these tests also cover the
boundary normalization every backend goes through.
"""

from datetime import date, datetime, timezone

import pytest

from conftest import JAKARTA
from expense_bot.models import EPOCH, EntryInput, ReminderPeriod, UserPreference
from expense_bot.services.storage import (
    EmptyLedgerError,
    InMemoryLedgerStore,
    InMemoryPreferenceStore,
    NotFoundError,
)
from expense_bot.services.storage.cells import (
    normalize_amount,
    parse_ledger_date,
    parse_sent_at,
    preference_to_row,
    row_to_entry,
    row_to_preference,
)


class TestNormalizeAmount:
    """Tests for reading amount cells."""
    
    @pytest.mark.parametrize(
        "cell, expected",
        [
            (15000, 15000),
            (15000.0, 15000),
            (15000.9, 15000),
            ("15000", 15000),
            ("15.000", 15000),
            ("1.500.000", 1500000),
            ("15,000", 15000),
            ("15000.5", 15000),
            (" 2 000 ", 2000),
        ],
    )
    def test_readable_cells(self, cell, expected):
        """Test that every numeric shape a sheet returns becomes an int."""
        assert normalize_amount(cell) == expected
    
    @pytest.mark.parametrize("cell", [None, "", "abc", "Rp 10rb", True, float("nan"), float("inf")])
    def test_unreadable_cells(self, cell):
        """Test that anything else becomes None."""
        assert normalize_amount(cell) is None


class TestRowConversion:
    """Tests for ledger and preference row conversion."""
    
    def test_row_to_entry(self):
        """Test a complete row."""
        entry = row_to_entry(4, [4, "19-10-2026", "15.000", "Makanan", "Siang"])
        assert entry.position == 4
        assert entry.entry_date == date(2026, 10, 19)
        assert entry.amount == 15000
        assert entry.category == "Makanan"
        assert entry.note == "Siang"
    
    def test_row_to_entry_short_row(self):
        """Test that missing trailing cells read as empty."""
        entry = row_to_entry(1, [1, "19-10-2026", 500])
        assert entry.amount == 500
        assert entry.category == ""
        assert entry.note == ""
    
    def test_row_to_entry_bad_date_kept_as_text(self):
        """Test that an unreadable date is kept for display only."""
        entry = row_to_entry(1, [1, "kemarin", 500, "X", ""])
        assert entry.entry_date is None
        assert entry.date_text == "kemarin"

    def test_row_to_entry_reads_date_serials(self):
        """Test that a Date cell stored as a real sheet date is still dated."""
        entry = row_to_entry(1, [1, 46314, 15000, "Makanan", "x"])
        assert entry.entry_date == date(2026, 10, 19)
        assert entry.date_text == "19-10-2026"
        assert row_to_entry(1, [1, 46314.0, 15000, "Makanan", "x"]).entry_date == date(2026, 10, 19)

    def test_parse_ledger_date_rejects_other_formats(self):
        """Test that only DD-MM-YYYY is accepted."""
        assert parse_ledger_date("2026-10-19") is None
        assert parse_ledger_date("31-02-2026") is None
    
    def test_parse_sent_at_date_is_local_midnight(self):
        """Test that a stored date means midnight in the bot's timezone."""
        parsed = parse_sent_at("2026-10-19", JAKARTA)
        assert parsed == datetime(2026, 10, 19, 0, 0, tzinfo=JAKARTA)
    
    def test_parse_sent_at_empty_is_epoch(self):
        """Test that an empty cell means never sent."""
        assert parse_sent_at("", JAKARTA) == EPOCH
    
    def test_parse_sent_at_iso_timestamp(self):
        """Test that a full timestamp is accepted too."""
        parsed = parse_sent_at("2026-10-19T20:00:00+00:00", JAKARTA)
        assert parsed == datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)
    
    def test_parse_sent_at_garbage(self):
        assert parse_sent_at("besok", JAKARTA) is None
    
    def test_row_to_preference(self):
        """Test a stored preference row, numeric chat id included."""
        preference = row_to_preference([12345.0, "Weekly", "2026-10-17"], JAKARTA)
        assert preference.chat_id == 12345
        assert preference.period == ReminderPeriod.WEEKLY
        assert preference.last_reminder_sent_at == datetime(2026, 10, 17, tzinfo=JAKARTA)
    
    @pytest.mark.parametrize(
        "row",
        [[12345], ["abc", "daily", ""], [12345, "hourly", ""], [12345, "daily", "besok"]],
    )
    def test_row_to_preference_rejects_bad_rows(self, row):
        """Test that unreadable rows are skipped rather than guessed."""
        assert row_to_preference(row, JAKARTA) is None
    
    def test_preference_to_row_uses_local_date(self):
        """Test that the stored date is the local calendar date."""
        sent_at = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)  # 03:00 next day in Jakarta
        row = preference_to_row(
            UserPreference(chat_id=7, period=ReminderPeriod.DAILY, last_reminder_sent_at=sent_at),
            JAKARTA,
        )
        assert row == [7, "daily", "2026-10-20"]


class TestInMemoryLedgerStore:
    """Tests for the in-memory ledger."""
    
    @pytest.mark.asyncio
    async def test_append_assigns_consecutive_positions(self):
        """Test that positions count data rows from 1."""
        store = InMemoryLedgerStore()
        first = await store.append_row(date(2026, 10, 19), EntryInput(amount=1000, category="A"))
        second = await store.append_row(date(2026, 10, 19), EntryInput(amount=2000, category="B"))
        assert (first, second) == (1, 2)
        assert store.raw_rows[1] == [2, "19-10-2026", 2000, "B", ""]
    
    @pytest.mark.asyncio
    async def test_append_then_read_back(self):
        """Test that the returned position reads back the same entry."""
        store = InMemoryLedgerStore([[1, "18-10-2026", 500, "A", ""]])
        entry = EntryInput(amount=10_000, category="Makanan", note="Makan Siang")
        
        position = await store.append_row(date(2026, 10, 19), entry)
        stored = await store.get_row(position)
        
        assert (stored.amount, stored.category, stored.note) == (10_000, "Makanan", "Makan Siang")
        assert stored.entry_date == date(2026, 10, 19)
    
    @pytest.mark.asyncio
    async def test_get_row_out_of_range(self):
        """Test that positions outside the ledger are not found."""
        store = InMemoryLedgerStore([[1, "19-10-2026", 1000, "A", ""]])
        with pytest.raises(NotFoundError):
            await store.get_row(0)
        with pytest.raises(NotFoundError):
            await store.get_row(2)
    
    @pytest.mark.asyncio
    async def test_update_row_keeps_position(self):
        """Test that an update rewrites the whole row in place."""
        store = InMemoryLedgerStore([[1, "18-10-2026", 1000, "A", "old"]])
        written = await store.update_row(1, date(2026, 10, 19), EntryInput(amount=5000, category="B"))
        assert written.position == 1
        assert store.raw_rows == [[1, "19-10-2026", 5000, "B", ""]]
    
    @pytest.mark.asyncio
    async def test_update_missing_row(self):
        store = InMemoryLedgerStore()
        with pytest.raises(NotFoundError):
            await store.update_row(1, date(2026, 10, 19), EntryInput(amount=1))
    
    @pytest.mark.asyncio
    async def test_remove_last_row_then_append_reuses_position(self):
        """Test that removing the last row frees its position."""
        store = InMemoryLedgerStore(
            [[1, "19-10-2026", 1000, "A", ""], [2, "19-10-2026", 2000, "B", ""]]
        )
        removed = await store.remove_last_row()
        assert removed.position == 2
        assert removed.amount == 2000
        assert await store.count_rows() == 1
        assert await store.append_row(date(2026, 10, 19), EntryInput(amount=3000)) == 2
    
    @pytest.mark.asyncio
    async def test_remove_from_empty_ledger(self):
        with pytest.raises(EmptyLedgerError):
            await InMemoryLedgerStore().remove_last_row()
    
    @pytest.mark.asyncio
    async def test_scan_skips_blank_rows(self):
        """Test that blank rows in the middle are not entries."""
        store = InMemoryLedgerStore(
            [[1, "19-10-2026", 1000, "A", ""], ["", "", "", "", ""], [3, "19-10-2026", 3000, "C", ""]]
        )
        rows = await store.scan_rows()
        assert [row.position for row in rows] == [1, 3]


class TestInMemoryPreferenceStore:
    """Tests for the in-memory preference store."""
    
    @pytest.mark.asyncio
    async def test_save_overwrites_chat(self):
        """Test that saving twice keeps one row per chat."""
        store = InMemoryPreferenceStore(tz=JAKARTA)
        sent_at = datetime(2026, 10, 19, 10, 0, tzinfo=JAKARTA)
        await store.save(UserPreference(chat_id=1, period=ReminderPeriod.DAILY, last_reminder_sent_at=sent_at))
        await store.save(UserPreference(chat_id=1, period=ReminderPeriod.MONTHLY, last_reminder_sent_at=sent_at))
        
        loaded = await store.load_all()
        assert len(loaded) == 1
        assert loaded[0].period == ReminderPeriod.MONTHLY
        assert loaded[0].last_reminder_sent_at == datetime(2026, 10, 19, tzinfo=JAKARTA)
