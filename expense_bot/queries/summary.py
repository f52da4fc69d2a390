"""
Summary Engine

DESIGN DECISION: Summaries are computed from what storage returns,
nothing else. Rows whose date cannot be read are left out of every
window; rows whose amount cannot be read still count as entries but
add nothing to the total.

Windows are inclusive on both ends and built from calendar dates in
the configured local timezone. Weeks start on Sunday.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

import structlog

from expense_bot.models.ledger import LedgerEntry, PeriodKind, PeriodSummary
from expense_bot.services.storage import LedgerStoreInterface


logger = structlog.get_logger(__name__)


def week_start(today: date) -> date:
    """Sunday on or before today."""
    return today - timedelta(days=today.isoweekday() % 7)


def last_day_of_week(today: date) -> date:
    return week_start(today) + timedelta(days=6)


def period_window(kind: PeriodKind, today: date) -> tuple[date, date]:
    """Inclusive (start, end) dates of the window containing today."""
    if kind == PeriodKind.DAILY:
        return today, today
    if kind == PeriodKind.WEEKLY:
        start = week_start(today)
        return start, start + timedelta(days=6)
    if kind == PeriodKind.MONTHLY:
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    raise ValueError(f"Unsupported period: {kind}")


class SummaryEngine:
    """
    Aggregates ledger rows.
    
    GUARANTEES:
    - Only returns real data from storage
    - An empty window is a normal result (PeriodSummary.is_empty),
      a failed read is a StorageError
    """
    
    def __init__(self, storage: LedgerStoreInterface):
        self._storage = storage
    
    async def total(self) -> int:
        """Sum of every readable amount in the ledger."""
        rows = await self._storage.scan_rows()
        return sum(row.amount for row in rows if row.amount is not None)
    
    async def period_summary(
        self,
        kind: PeriodKind,
        now: Union[date, datetime],
    ) -> PeriodSummary:
        """Total and entries of the daily, weekly or monthly window around now."""
        today = now.date() if isinstance(now, datetime) else now
        start, end = period_window(kind, today)
        
        entries = [
            row
            for row in await self._storage.scan_rows()
            if row.entry_date is not None and start <= row.entry_date <= end
        ]
        summary = PeriodSummary(
            kind=kind,
            start=start,
            end=end,
            total=sum(entry.amount_or_zero for entry in entries),
            entries=entries,
        )
        logger.debug(
            "period_summary_computed",
            kind=kind.value,
            start=start.isoformat(),
            end=end.isoformat(),
            entry_count=len(entries),
        )
        return summary
    
    async def last_entry(self) -> Optional[LedgerEntry]:
        """The highest-position entry, or None for an empty ledger."""
        rows = await self._storage.scan_rows()
        return rows[-1] if rows else None
    
    async def history(self, limit: int = 5) -> list[LedgerEntry]:
        """The most recent entries, oldest first."""
        rows = await self._storage.scan_rows()
        return rows[-limit:]
