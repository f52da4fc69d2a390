"""
Per-chat conversation state.

DESIGN DECISION: Both tables are reached by the router (once per
message) and by the reminder scheduler (once per tick and per
dispatch). Neither exposes its dict; every read-modify-write runs
under a lock, and reads hand out copies.

- EditSessionTable: chat -> ledger position awaiting replacement data
- PreferenceTable: chat -> reminder preference, persisted through a
  PreferenceStoreInterface; the persisted row is written under the
  chat's lock so a dispatch and a user choice cannot interleave
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Optional

import structlog

from expense_bot.models.ledger import ReminderPeriod, UserPreference
from expense_bot.services.storage import PreferenceStoreInterface, StorageError


logger = structlog.get_logger(__name__)


class EditSessionTable:
    """Which ledger position each chat is currently editing."""
    
    def __init__(self):
        self._sessions: dict[int, int] = {}
        self._lock = asyncio.Lock()
    
    async def begin(self, chat_id: int, position: int) -> None:
        """Start (or retarget) the edit session of a chat."""
        async with self._lock:
            self._sessions[chat_id] = position
    
    async def get(self, chat_id: int) -> Optional[int]:
        async with self._lock:
            return self._sessions.get(chat_id)
    
    async def end(self, chat_id: int, position: Optional[int] = None) -> bool:
        """
        End a chat's session.
        
        With position given, only a session still targeting that
        position is ended. Returns True when a session was removed.
        """
        async with self._lock:
            current = self._sessions.get(chat_id)
            if current is None or (position is not None and current != position):
                return False
            del self._sessions[chat_id]
            return True
    
    async def snapshot(self) -> dict[int, int]:
        async with self._lock:
            return dict(self._sessions)


class PreferenceTable:
    """
    Reminder preferences, in memory and in storage.
    
    Locking is per chat: a slow save for one chat never holds up
    another chat's choice or dispatch.
    """
    
    def __init__(self, store: PreferenceStoreInterface):
        self._store = store
        self._preferences: dict[int, UserPreference] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
    
    async def load(self) -> int:
        """
        Replace the in-memory table with what storage holds.
        
        Returns:
            Number of preferences loaded
            
        Raises:
            StorageError: If the read fails
        """
        preferences = await self._store.load_all()
        for preference in preferences:
            async with self._locks[preference.chat_id]:
                self._preferences[preference.chat_id] = preference
        logger.info("preferences_loaded", count=len(preferences))
        return len(preferences)
    
    async def get(self, chat_id: int) -> Optional[UserPreference]:
        async with self._locks[chat_id]:
            return self._preferences.get(chat_id)
    
    async def snapshot(self) -> list[UserPreference]:
        """Every known preference, as immutable copies."""
        return list(self._preferences.values())
    
    async def choose(self, chat_id: int, period: ReminderPeriod, now: datetime) -> UserPreference:
        """
        Record a user's reminder choice, stamped with now.
        
        Storage is written first; the in-memory table only changes
        once the write succeeded.
        
        Raises:
            StorageError: If the write fails (previous choice kept)
        """
        preference = UserPreference(
            chat_id=chat_id,
            period=period,
            last_reminder_sent_at=now,
        )
        async with self._locks[chat_id]:
            await self._store.save(preference)
            self._preferences[chat_id] = preference
        return preference
    
    async def mark_sent(
        self,
        chat_id: int,
        period: ReminderPeriod,
        sent_at: datetime,
    ) -> Optional[UserPreference]:
        """
        Stamp a delivered reminder.
        
        Skipped when the chat changed its period in the meantime. The
        in-memory stamp is kept even if saving it fails, so a storage
        outage cannot turn into a reminder sent every minute.
        """
        async with self._locks[chat_id]:
            current = self._preferences.get(chat_id)
            if current is None or current.period != period:
                return None
            updated = current.with_sent_at(sent_at)
            self._preferences[chat_id] = updated
            try:
                await self._store.save(updated)
            except StorageError as e:
                logger.error("reminder_stamp_not_saved", chat_id=chat_id, error=str(e))
            return updated
