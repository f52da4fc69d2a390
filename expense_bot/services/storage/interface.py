"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the conversation logic decoupled from the spreadsheet layout

The ledger is position-addressed: position N is the N-th data row.
Rows are appended at the end, overwritten in place, and only the last
one can be removed. Nothing here retries; a failed call is reported once.
"""

from abc import ABC, abstractmethod
from datetime import date

from expense_bot.models.ledger import EntryInput, LedgerEntry, UserPreference


class LedgerStoreInterface(ABC):
    """
    Abstract interface for the expense ledger.
    
    Any storage implementation (Google Sheets, in-memory, ...)
    must implement these methods.
    """
    
    @abstractmethod
    async def append_row(self, entry_date: date, entry: EntryInput) -> int:
        """
        Append an entry after the last row.
        
        Args:
            entry_date: Date recorded for the entry
            entry: Parsed amount, category and note
            
        Returns:
            The position assigned (current row count + 1)
            
        Raises:
            StorageError: If the write fails
        """
        pass
    
    @abstractmethod
    async def get_row(self, position: int) -> LedgerEntry:
        """
        Read one entry by position.
        
        Raises:
            NotFoundError: If the position is out of range or the row is blank
            StorageError: If the read fails
        """
        pass
    
    @abstractmethod
    async def update_row(self, position: int, entry_date: date, entry: EntryInput) -> LedgerEntry:
        """
        Overwrite an existing entry in place.
        
        Returns:
            The entry as written
            
        Raises:
            NotFoundError: If the position does not currently exist
            StorageError: If the write fails
        """
        pass
    
    @abstractmethod
    async def remove_last_row(self) -> LedgerEntry:
        """
        Clear the highest-position entry.
        
        Returns:
            The entry that was removed
            
        Raises:
            EmptyLedgerError: If there is nothing to remove
            StorageError: If the write fails
        """
        pass
    
    @abstractmethod
    async def scan_rows(self) -> list[LedgerEntry]:
        """
        Read every entry in position order, cells normalized.
        
        Raises:
            StorageError: If the read fails
        """
        pass
    
    @abstractmethod
    async def count_rows(self) -> int:
        """Number of data rows currently stored."""
        pass


class PreferenceStoreInterface(ABC):
    """
    Abstract interface for reminder preferences.
    
    One row per chat, upserted by chat id.
    """
    
    @abstractmethod
    async def load_all(self) -> list[UserPreference]:
        """
        Read every stored preference. Malformed rows are skipped.
        
        Raises:
            StorageError: If the read fails
        """
        pass
    
    @abstractmethod
    async def save(self, preference: UserPreference) -> None:
        """
        Insert or overwrite the preference of one chat.
        
        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Referenced ledger position does not exist."""
    pass


class EmptyLedgerError(StorageError):
    """Attempted to remove from an empty ledger."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class StorageTimeoutError(StorageError):
    """Storage backend did not answer in time."""
    pass
