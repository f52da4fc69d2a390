"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory stores back the
tests and storage-less runs.
"""

from expense_bot.services.storage.interface import (
    EmptyLedgerError,
    LedgerStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
    StorageConnectionError,
    StorageError,
    StorageTimeoutError,
)
from expense_bot.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsPreferenceStore,
)
from expense_bot.services.storage.memory import (
    InMemoryLedgerStore,
    InMemoryPreferenceStore,
)

__all__ = [
    # Interfaces
    "LedgerStoreInterface",
    "PreferenceStoreInterface",
    # Exceptions
    "EmptyLedgerError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "StorageTimeoutError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "GoogleSheetsPreferenceStore",
    # In-memory implementation
    "InMemoryLedgerStore",
    "InMemoryPreferenceStore",
]
