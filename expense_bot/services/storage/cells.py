"""
Cell normalization at the storage boundary.

Spreadsheet reads return each cell as whatever the backend felt like:
ints, floats or text, with trailing empty cells dropped. Everything
is converted here into typed values (or None) before it reaches the
rest of the system.
"""

import math
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Sequence

from expense_bot.models.ledger import (
    EPOCH,
    LEDGER_DATE_FORMAT,
    PREFERENCE_DATE_FORMAT,
    EntryInput,
    LedgerEntry,
    ReminderPeriod,
    UserPreference,
)


LEDGER_HEADER = ["Position", "Date", "Amount", "Category", "Note"]
PREFERENCES_HEADER = ["ChatID", "ReminderType", "LastReminderDate"]

_PLAIN_INT = re.compile(r"-?\d+")
_DOT_THOUSANDS = re.compile(r"-?\d{1,3}(\.\d{3})+")
_COMMA_THOUSANDS = re.compile(r"-?\d{1,3}(,\d{3})+")
_DECIMAL = re.compile(r"-?\d+[.,]\d+")

# Day 0 of spreadsheet date serials
SERIAL_DATE_EPOCH = date(1899, 12, 30)


def normalize_amount(cell: Any) -> Optional[int]:
    """
    Read an amount cell as an int.
    
    "15.000" and "15,000" are read as thousands-separated; "15000.0"
    is truncated. Returns None for anything else.
    """
    if cell is None or isinstance(cell, bool):
        return None
    if isinstance(cell, int):
        return cell
    if isinstance(cell, float):
        return int(cell) if math.isfinite(cell) else None
    
    text = str(cell).strip().replace(" ", "")
    if not text:
        return None
    if _PLAIN_INT.fullmatch(text):
        return int(text)
    if _DOT_THOUSANDS.fullmatch(text):
        return int(text.replace(".", ""))
    if _COMMA_THOUSANDS.fullmatch(text):
        return int(text.replace(",", ""))
    if _DECIMAL.fullmatch(text):
        return int(float(text.replace(",", ".")))
    return None


def normalize_text(cell: Any) -> str:
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell).strip()


def parse_ledger_date(text: str) -> Optional[date]:
    """Parse a DD-MM-YYYY cell; None when it does not match."""
    try:
        return datetime.strptime(text.strip(), LEDGER_DATE_FORMAT).date()
    except ValueError:
        return None


def format_ledger_date(value: date) -> str:
    return value.strftime(LEDGER_DATE_FORMAT)


def normalize_ledger_date(cell: Any) -> tuple[str, Optional[date]]:
    """
    Read a Date cell as (display text, date).
    
    Text must be DD-MM-YYYY. A number is a spreadsheet date serial,
    which is what an unformatted read returns for a cell the sheet
    stored as a real date.
    """
    if isinstance(cell, (int, float)) and not isinstance(cell, bool):
        if not math.isfinite(cell):
            return normalize_text(cell), None
        try:
            value = SERIAL_DATE_EPOCH + timedelta(days=int(cell))
        except OverflowError:
            return normalize_text(cell), None
        return format_ledger_date(value), value
    text = normalize_text(cell)
    return text, parse_ledger_date(text)


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(normalize_text(cell) == "" for cell in row)


def row_to_entry(position: int, row: Sequence[Any]) -> LedgerEntry:
    """Convert a raw ledger row to a LedgerEntry."""
    # Handle missing columns gracefully
    def safe_get(index: int) -> Any:
        try:
            return row[index]
        except IndexError:
            return None
    
    date_text, entry_date = normalize_ledger_date(safe_get(1))
    return LedgerEntry(
        position=position,
        date_text=date_text,
        entry_date=entry_date,
        amount=normalize_amount(safe_get(2)),
        category=normalize_text(safe_get(3)),
        note=normalize_text(safe_get(4)),
    )


def entry_to_row(position: int, entry_date: date, entry: EntryInput) -> list:
    """Convert an entry to the spreadsheet row written for it."""
    return [
        position,
        format_ledger_date(entry_date),
        entry.amount,
        entry.category,
        entry.note,
    ]


def written_entry(position: int, entry_date: date, entry: EntryInput) -> LedgerEntry:
    """The LedgerEntry a successful write of this input produces."""
    return LedgerEntry(
        position=position,
        date_text=format_ledger_date(entry_date),
        entry_date=entry_date,
        amount=entry.amount,
        category=entry.category,
        note=entry.note,
    )


# =============================================================================
# PREFERENCES
# =============================================================================

def parse_sent_at(text: str, tz: tzinfo) -> Optional[datetime]:
    """
    Read a LastReminderDate cell.
    
    YYYY-MM-DD is read as local midnight; a full ISO timestamp is also
    accepted. Empty means never sent.
    """
    text = text.strip()
    if not text:
        return EPOCH
    try:
        day = datetime.strptime(text, PREFERENCE_DATE_FORMAT).date()
        return datetime.combine(day, time.min, tzinfo=tz)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def row_to_preference(row: Sequence[Any], tz: tzinfo) -> Optional[UserPreference]:
    """Convert a Preferences row; None when any cell is unreadable."""
    if len(row) < 2:
        return None
    chat_id = normalize_amount(row[0])
    if chat_id is None:
        return None
    try:
        period = ReminderPeriod(normalize_text(row[1]).lower())
    except ValueError:
        return None
    sent_at = parse_sent_at(normalize_text(row[2]) if len(row) > 2 else "", tz)
    if sent_at is None:
        return None
    return UserPreference(chat_id=chat_id, period=period, last_reminder_sent_at=sent_at)


def preference_to_row(preference: UserPreference, tz: tzinfo) -> list:
    """Convert a preference to its spreadsheet row."""
    sent_at = preference.last_reminder_sent_at.astimezone(tz)
    return [
        preference.chat_id,
        preference.period.value,
        sent_at.strftime(PREFERENCE_DATE_FORMAT),
    ]
