"""
Data Models Package

This package contains all Pydantic models used in Expense Bot.
All data flowing through the system must conform to these schemas.
"""

from expense_bot.models.ledger import (
    EPOCH,
    LEDGER_DATE_FORMAT,
    PREFERENCE_DATE_FORMAT,
    EntryInput,
    LedgerEntry,
    PeriodKind,
    PeriodSummary,
    ReminderPeriod,
    UserPreference,
)
from expense_bot.models.reply import ChoiceButton, Reply

__all__ = [
    # Ledger models
    "EPOCH",
    "LEDGER_DATE_FORMAT",
    "PREFERENCE_DATE_FORMAT",
    "EntryInput",
    "LedgerEntry",
    "PeriodKind",
    "PeriodSummary",
    "ReminderPeriod",
    "UserPreference",
    # Conversation models
    "ChoiceButton",
    "Reply",
]
