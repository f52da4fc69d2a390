"""Services package."""

from expense_bot.services.storage import (
    EmptyLedgerError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsPreferenceStore,
    InMemoryLedgerStore,
    InMemoryPreferenceStore,
    LedgerStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
    StorageConnectionError,
    StorageError,
    StorageTimeoutError,
)

__all__ = [
    "EmptyLedgerError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "GoogleSheetsPreferenceStore",
    "InMemoryLedgerStore",
    "InMemoryPreferenceStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "PreferenceStoreInterface",
    "StorageConnectionError",
    "StorageError",
    "StorageTimeoutError",
]
