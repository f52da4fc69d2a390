"""
Core Data Models for Expense Bot

These models define the schemas for everything flowing between the
conversation layer, the summary engine and the storage backend.

DESIGN DECISION: Spreadsheet cells are untyped (a number may arrive as
15000, 15000.0 or "15.000"). They are normalized exactly once, at the
storage boundary, into LedgerEntry. A cell that cannot be normalized
becomes None, never a string that later leaks into arithmetic.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Storage formats
LEDGER_DATE_FORMAT = "%d-%m-%Y"
PREFERENCE_DATE_FORMAT = "%Y-%m-%d"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class ReminderPeriod(str, Enum):
    """How often a chat wants a spending summary pushed to it."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    NONE = "none"


class PeriodKind(str, Enum):
    """Aggregation windows supported by the summary engine."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# LEDGER
# =============================================================================

class EntryInput(BaseModel):
    """
    An expense as typed by the user, after the nominal was parsed.
    
    This is what gets written; the date and position are assigned
    by the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)
    
    amount: int = Field(..., ge=0, description="Amount in whole currency units")
    category: str = ""
    note: str = ""


class LedgerEntry(BaseModel):
    """
    A ledger row as read back from storage.
    
    position is the 1-based index among data rows. entry_date and amount
    are None when the stored cell could not be parsed; date_text keeps the
    raw date so such rows can still be shown to the user.
    """
    model_config = ConfigDict(frozen=True)
    
    position: int = Field(..., ge=1)
    date_text: str = ""
    entry_date: Optional[date] = None
    amount: Optional[int] = None
    category: str = ""
    note: str = ""
    
    @property
    def amount_or_zero(self) -> int:
        return self.amount if self.amount is not None else 0


class PeriodSummary(BaseModel):
    """Total and matching entries for one aggregation window."""
    
    kind: PeriodKind
    start: date
    end: date
    total: int = 0
    entries: list[LedgerEntry] = Field(default_factory=list)
    
    @property
    def is_empty(self) -> bool:
        return not self.entries


# =============================================================================
# PREFERENCES
# =============================================================================

class UserPreference(BaseModel):
    """Reminder preference of one chat. Overwritten, never deleted."""
    model_config = ConfigDict(frozen=True)
    
    chat_id: int
    period: ReminderPeriod = ReminderPeriod.NONE
    last_reminder_sent_at: datetime = EPOCH
    
    def with_sent_at(self, sent_at: datetime) -> "UserPreference":
        """Copy of this preference stamped with a new dispatch time."""
        return self.model_copy(update={"last_reminder_sent_at": sent_at})
