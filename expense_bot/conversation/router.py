"""
Conversation Router

Maps one incoming chat message (or button callback) to a ledger
mutation, a query, or an edit-session transition, and returns the
reply to send.

Per chat the router is in one of two states:

    Idle                   - "<nominal>, <category>, <note>" appends
    AwaitingEditInput(N)   - "<nominal>, <category>, <note>" replaces N

Commands behave the same in both states and never touch the session,
except /edit which starts (or retargets) one. Malformed replacement
data keeps the session so the user can try again; a commit, or a
backend failure during the commit, ends it.

Every storage error is turned into a reply here. Nothing raised by the
ledger reaches the transport.
"""

from datetime import datetime, timezone, tzinfo
from typing import Awaitable, Callable, Optional

import structlog

from expense_bot.audit import AuditLogger
from expense_bot.conversation import messages
from expense_bot.conversation.state import EditSessionTable, PreferenceTable
from expense_bot.models.ledger import EntryInput, PeriodKind, ReminderPeriod
from expense_bot.models.reply import ChoiceButton, Reply
from expense_bot.parsing import parse_nominal
from expense_bot.queries import SummaryEngine
from expense_bot.services.storage import (
    EmptyLedgerError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
    StorageTimeoutError,
)


logger = structlog.get_logger(__name__)

REMINDER_TOKEN_PREFIX = "reminder_"


def parse_ledger_message(text: str) -> Optional[EntryInput]:
    """
    Read "<nominal>, <category>, <note>".
    
    Returns None unless there are exactly three comma-separated fields.
    The nominal is parsed fail-open (unreadable -> 0).
    """
    parts = [part.strip() for part in text.split(",")]
    if len(parts) != 3:
        return None
    nominal, category, note = parts
    return EntryInput(amount=parse_nominal(nominal), category=category, note=note)


def split_command(text: str) -> Optional[tuple[str, str]]:
    """
    "/edit@MyBot 4" -> ("edit", "4"). None when text is not a command.
    """
    text = text.strip()
    if not text.startswith("/"):
        return None
    head, _, argument = text.partition(" ")
    name = head[1:].split("@", 1)[0].lower()
    return name, argument.strip()


class ConversationRouter:
    """
    Transport-independent command interpreter.
    
    The transport calls handle_message() for every text message and
    handle_callback() for every button press, and sends back the Reply.
    """
    
    def __init__(
        self,
        ledger: LedgerStoreInterface,
        preferences: PreferenceTable,
        sessions: Optional[EditSessionTable] = None,
        summaries: Optional[SummaryEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        tz: tzinfo = timezone.utc,
        history_limit: int = 5,
    ):
        self._ledger = ledger
        self._preferences = preferences
        self._sessions = sessions or EditSessionTable()
        self._summaries = summaries or SummaryEngine(ledger)
        self._audit = audit_logger or AuditLogger()
        self._tz = tz
        self._history_limit = history_limit
        
        self._commands: dict[str, Callable[[int, str, datetime], Awaitable[Reply]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "summary": self._cmd_summary,
            "weekly": self._cmd_weekly,
            "monthly": self._cmd_monthly,
            "last": self._cmd_last,
            "remove": self._cmd_remove,
            "edit": self._cmd_edit,
            "history": self._cmd_history,
            "reminder": self._cmd_reminder,
        }
    
    @property
    def sessions(self) -> EditSessionTable:
        return self._sessions
    
    def _local(self, now: Optional[datetime]) -> datetime:
        return (now or datetime.now(self._tz)).astimezone(self._tz)
    
    # =========================================================================
    # Entry points
    # =========================================================================
    
    async def handle_message(
        self,
        chat_id: int,
        text: str,
        now: Optional[datetime] = None,
    ) -> Reply:
        """Interpret one text message from a chat."""
        now = self._local(now)
        
        command = split_command(text)
        if command is not None:
            name, argument = command
            handler = self._commands.get(name)
            if handler is None:
                return Reply(text=messages.UNKNOWN_COMMAND_TEXT)
            return await handler(chat_id, argument, now)
        
        entry = parse_ledger_message(text)
        target = await self._sessions.get(chat_id)
        
        if target is not None:
            if entry is None:
                return Reply(text=messages.EDIT_FORMAT_TEXT)
            return await self._commit_edit(chat_id, target, entry, now)
        
        if entry is None:
            return Reply(text=messages.USAGE_TEXT)
        return await self._append(chat_id, entry, now)
    
    async def handle_callback(
        self,
        chat_id: int,
        data: str,
        now: Optional[datetime] = None,
    ) -> Reply:
        """Interpret a button press (reminder choice)."""
        now = self._local(now)
        
        if not data.startswith(REMINDER_TOKEN_PREFIX):
            return Reply(text=messages.UNKNOWN_CHOICE_TEXT)
        try:
            period = ReminderPeriod(data[len(REMINDER_TOKEN_PREFIX):])
        except ValueError:
            return Reply(text=messages.UNKNOWN_CHOICE_TEXT)
        
        try:
            await self._preferences.choose(chat_id, period, now)
        except StorageError as e:
            self._audit.storage_error("save preference", str(e), chat_id=chat_id)
            return Reply(text=messages.PREFERENCE_FAILED_TEXT)
        
        self._audit.reminder_preference_set(chat_id, period)
        return Reply(text=messages.REMINDER_CONFIRMATION[period])
    
    # =========================================================================
    # Ledger mutations
    # =========================================================================
    
    async def _append(self, chat_id: int, entry: EntryInput, now: datetime) -> Reply:
        try:
            position = await self._ledger.append_row(now.date(), entry)
        except StorageTimeoutError as e:
            # The write may still land after the wait gives up
            self._audit.storage_error("append entry", str(e), chat_id=chat_id)
            return Reply(text=messages.APPEND_TIMED_OUT_TEXT)
        except StorageError as e:
            self._audit.storage_error("append entry", str(e), chat_id=chat_id)
            return Reply(text=messages.APPEND_FAILED_TEXT)
        
        self._audit.entry_appended(chat_id, position, entry.amount, entry.category)
        
        try:
            total = await self._summaries.total()
        except StorageError as e:
            self._audit.storage_error("read total", str(e), chat_id=chat_id)
            total = None
        return Reply(text=messages.appended_text(position, entry, total))
    
    async def _commit_edit(
        self,
        chat_id: int,
        position: int,
        entry: EntryInput,
        now: datetime,
    ) -> Reply:
        try:
            written = await self._ledger.update_row(position, now.date(), entry)
        except StorageError as e:
            # NotFoundError included: the row vanished since /edit
            await self._sessions.end(chat_id, position)
            self._audit.storage_error("update entry", str(e), chat_id=chat_id)
            return Reply(text=messages.EDIT_FAILED_TEXT)
        
        await self._sessions.end(chat_id, position)
        self._audit.entry_edited(chat_id, position, entry.amount)
        return Reply(text=messages.edited_text(written))
    
    # =========================================================================
    # Commands
    # =========================================================================
    
    async def _cmd_start(self, chat_id: int, argument: str, now: datetime) -> Reply:
        return Reply(text=messages.START_TEXT)
    
    async def _cmd_help(self, chat_id: int, argument: str, now: datetime) -> Reply:
        return Reply(text=messages.HELP_TEXT)
    
    async def _cmd_edit(self, chat_id: int, argument: str, now: datetime) -> Reply:
        try:
            position = int(argument)
        except ValueError:
            return Reply(text=messages.INVALID_POSITION_TEXT)
        
        try:
            entry = await self._ledger.get_row(position)
        except NotFoundError:
            return Reply(text=messages.ENTRY_NOT_FOUND_TEXT)
        except StorageError as e:
            self._audit.storage_error("read entry", str(e), chat_id=chat_id)
            return Reply(text=messages.READ_ENTRY_FAILED_TEXT)
        
        await self._sessions.begin(chat_id, position)
        self._audit.edit_session_started(chat_id, position)
        return Reply(text=messages.edit_prompt_text(entry))
    
    async def _cmd_summary(self, chat_id: int, argument: str, now: datetime) -> Reply:
        try:
            total = await self._summaries.total()
        except StorageError as e:
            self._audit.storage_error("read total", str(e), chat_id=chat_id)
            return Reply(text=messages.TOTAL_FAILED_TEXT)
        return Reply(text=messages.total_text(total))
    
    async def _period(self, chat_id: int, kind: PeriodKind, now: datetime) -> Reply:
        try:
            summary = await self._summaries.period_summary(kind, now)
        except StorageError as e:
            self._audit.storage_error(f"read {kind.value} summary", str(e), chat_id=chat_id)
            return Reply(text=messages.PERIOD_FAILED_TEXT[kind])
        return Reply(text=messages.period_summary_text(summary))
    
    async def _cmd_weekly(self, chat_id: int, argument: str, now: datetime) -> Reply:
        return await self._period(chat_id, PeriodKind.WEEKLY, now)
    
    async def _cmd_monthly(self, chat_id: int, argument: str, now: datetime) -> Reply:
        return await self._period(chat_id, PeriodKind.MONTHLY, now)
    
    async def _cmd_last(self, chat_id: int, argument: str, now: datetime) -> Reply:
        try:
            entry = await self._summaries.last_entry()
        except StorageError as e:
            self._audit.storage_error("read last entry", str(e), chat_id=chat_id)
            return Reply(text=messages.LAST_FAILED_TEXT)
        if entry is None:
            return Reply(text=messages.NO_ENTRIES_TEXT)
        return Reply(text=messages.last_entry_text(entry))
    
    async def _cmd_history(self, chat_id: int, argument: str, now: datetime) -> Reply:
        try:
            entries = await self._summaries.history(self._history_limit)
        except StorageError as e:
            self._audit.storage_error("read history", str(e), chat_id=chat_id)
            return Reply(text=messages.HISTORY_FAILED_TEXT)
        if not entries:
            return Reply(text=messages.NO_ENTRIES_TEXT)
        return Reply(text=messages.history_text(entries))
    
    async def _cmd_remove(self, chat_id: int, argument: str, now: datetime) -> Reply:
        try:
            removed = await self._ledger.remove_last_row()
        except EmptyLedgerError:
            return Reply(text=messages.NOTHING_TO_REMOVE_TEXT)
        except StorageError as e:
            self._audit.storage_error("remove entry", str(e), chat_id=chat_id)
            return Reply(text=messages.REMOVE_FAILED_TEXT)
        
        self._audit.entry_removed(chat_id, removed.position)
        return Reply(text=messages.removed_text(removed))
    
    async def _cmd_reminder(self, chat_id: int, argument: str, now: datetime) -> Reply:
        buttons = [
            [ChoiceButton(label=label, token=token) for label, token in row]
            for row in messages.REMINDER_CHOICES
        ]
        return Reply(text=messages.REMINDER_PROMPT_TEXT, buttons=buttons)
