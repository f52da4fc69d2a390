"""Ledger queries package."""

from expense_bot.queries.summary import (
    SummaryEngine,
    last_day_of_week,
    period_window,
    week_start,
)

__all__ = ["SummaryEngine", "last_day_of_week", "period_window", "week_start"]
