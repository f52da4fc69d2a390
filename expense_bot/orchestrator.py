"""
Main Orchestrator for Expense Bot

Ties the components together:

    message  -> ConversationRouter -> LedgerStore / SummaryEngine -> Reply
    tick     -> ReminderScheduler  -> SummaryEngine -> Notifier

The router and the scheduler share one PreferenceTable, so a reminder
choice made in chat is seen by the very next tick.

The transport (Telegram) is attached separately because the scheduler's
notifier needs the bot object the transport creates.
"""

from typing import NamedTuple, Optional

import structlog

from expense_bot.audit import AuditLogger
from expense_bot.config import Settings, get_settings
from expense_bot.conversation import ConversationRouter, EditSessionTable, PreferenceTable
from expense_bot.queries import SummaryEngine
from expense_bot.reminders import Notifier, ReminderScheduler
from expense_bot.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsPreferenceStore,
    InMemoryLedgerStore,
    InMemoryPreferenceStore,
    LedgerStoreInterface,
)


logger = structlog.get_logger(__name__)


class AppComponents(NamedTuple):
    """Everything the transport needs to run the bot."""
    router: ConversationRouter
    preferences: PreferenceTable
    summaries: SummaryEngine
    ledger: LedgerStoreInterface
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.
    
    Args:
        settings: Loaded settings (defaults to the cached ones)
        use_storage: Whether to use Google Sheets storage.
                    Set to False to run against in-memory storage.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    tz = app_settings.tzinfo
    
    sheets_client = None
    if use_storage:
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        ledger = GoogleSheetsLedgerStore(sheets_client)
        preference_store = GoogleSheetsPreferenceStore(sheets_client, tz=tz)
    else:
        logger.warning("storage_disabled", detail="ledger is kept in memory only")
        ledger = InMemoryLedgerStore()
        preference_store = InMemoryPreferenceStore(tz=tz)
    
    audit_logger = AuditLogger()
    preferences = PreferenceTable(preference_store)
    summaries = SummaryEngine(ledger)
    router = ConversationRouter(
        ledger=ledger,
        preferences=preferences,
        sessions=EditSessionTable(),
        summaries=summaries,
        audit_logger=audit_logger,
        tz=tz,
        history_limit=app_settings.history_limit,
    )
    
    return AppComponents(
        router=router,
        preferences=preferences,
        summaries=summaries,
        ledger=ledger,
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )


def create_reminder_scheduler(
    components: AppComponents,
    notifier: Notifier,
    settings: Optional[Settings] = None,
) -> ReminderScheduler:
    """Build the scheduler that pushes summaries through notifier."""
    settings = settings or get_settings()
    app_settings = settings.app
    return ReminderScheduler(
        preferences=components.preferences,
        summaries=components.summaries,
        notifier=notifier,
        audit_logger=components.audit_logger,
        tz=app_settings.tzinfo,
        reminder_hour=app_settings.reminder_hour,
        tick_seconds=app_settings.reminder_tick_seconds,
        delivery_timeout=settings.telegram.delivery_timeout_seconds,
    )
