"""
Reminder Scheduler

Once a minute every reminder preference is checked against local wall
clock time:

    daily    hour == 20 and >= 24h since the last reminder
    weekly   Saturday (last day of a Sunday-start week), hour == 20,
             and >= 7 days since the last reminder
    monthly  day 1, hour == 20, and >= 30 days since the last reminder

Each due chat gets its own asyncio task, so a slow delivery never
delays the tick or another chat. A chat with a dispatch in flight is
skipped by later ticks until that dispatch has recorded its
timestamp; together with the elapsed-time rule this means one
reminder per period, even when delivery takes longer than a tick.
"""

import asyncio
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Protocol

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from expense_bot.audit import AuditLogger
from expense_bot.conversation import messages
from expense_bot.conversation.state import PreferenceTable
from expense_bot.models.ledger import PeriodKind, ReminderPeriod, UserPreference
from expense_bot.queries import SummaryEngine, last_day_of_week
from expense_bot.services.storage import StorageError


logger = structlog.get_logger(__name__)

MIN_ELAPSED = {
    ReminderPeriod.DAILY: timedelta(hours=24),
    ReminderPeriod.WEEKLY: timedelta(days=7),
    ReminderPeriod.MONTHLY: timedelta(days=30),
}


class DeliveryError(Exception):
    """An outbound notification could not be delivered."""
    pass


class Notifier(Protocol):
    """Outbound side of the chat transport."""
    
    async def send(self, chat_id: int, text: str) -> None:
        """Deliver a text message; raise DeliveryError on failure."""
        ...


def is_due(preference: UserPreference, now: datetime, reminder_hour: int = 20) -> bool:
    """Whether a reminder should go out at local time now."""
    period = preference.period
    if period == ReminderPeriod.NONE or now.hour != reminder_hour:
        return False
    if now - preference.last_reminder_sent_at < MIN_ELAPSED[period]:
        return False
    if period == ReminderPeriod.WEEKLY:
        return now.date() == last_day_of_week(now.date())
    if period == ReminderPeriod.MONTHLY:
        return now.day == 1
    return True


class ReminderScheduler:
    """
    Periodic reminder evaluation and dispatch.
    
    start() must be called from inside the running event loop;
    stop() stops the tick source and gives in-flight dispatches a
    bounded grace period.
    """
    
    def __init__(
        self,
        preferences: PreferenceTable,
        summaries: SummaryEngine,
        notifier: Notifier,
        audit_logger: Optional[AuditLogger] = None,
        tz: tzinfo = timezone.utc,
        reminder_hour: int = 20,
        tick_seconds: int = 60,
        delivery_timeout: float = 20.0,
    ):
        self._preferences = preferences
        self._summaries = summaries
        self._notifier = notifier
        self._audit = audit_logger or AuditLogger()
        self._tz = tz
        self._reminder_hour = reminder_hour
        self._tick_seconds = tick_seconds
        self._delivery_timeout = delivery_timeout
        
        self._in_flight: set[int] = set()
        self._tasks: set[asyncio.Task] = set()
        self._scheduler: Optional[AsyncIOScheduler] = None
    
    @property
    def in_flight(self) -> frozenset[int]:
        """Chats with a dispatch currently running."""
        return frozenset(self._in_flight)
    
    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
    
    async def tick(self, now: Optional[datetime] = None) -> list[int]:
        """
        Evaluate every preference once and spawn due dispatches.
        
        Returns:
            Chat ids a dispatch was started for
        """
        now = (now or datetime.now(self._tz)).astimezone(self._tz)
        started = []
        
        for preference in await self._preferences.snapshot():
            chat_id = preference.chat_id
            if chat_id in self._in_flight:
                continue
            if not is_due(preference, now, self._reminder_hour):
                continue
            
            # Claimed before the first await so the next tick skips it
            self._in_flight.add(chat_id)
            task = asyncio.create_task(self._dispatch(preference, now))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(chat_id)
        
        if started:
            logger.info("reminders_started", chat_ids=started, at=now.isoformat())
        return started
    
    async def _dispatch(self, preference: UserPreference, now: datetime) -> None:
        chat_id = preference.chat_id
        period = preference.period
        try:
            summary = await self._summaries.period_summary(PeriodKind(period.value), now)
            await asyncio.wait_for(
                self._notifier.send(chat_id, messages.reminder_text(period, summary)),
                timeout=self._delivery_timeout,
            )
            await self._preferences.mark_sent(chat_id, period, now)
            self._audit.reminder_dispatched(chat_id, period)
        except asyncio.CancelledError:
            self._audit.reminder_failed(chat_id, period, "cancelled at shutdown")
            raise
        except asyncio.TimeoutError:
            self._audit.reminder_failed(chat_id, period, "delivery timed out")
        except (StorageError, DeliveryError) as e:
            self._audit.reminder_failed(chat_id, period, str(e))
        except Exception as e:
            # Last stop for a fire-and-forget task
            logger.exception("reminder_dispatch_crashed", chat_id=chat_id)
            self._audit.reminder_failed(chat_id, period, repr(e))
        finally:
            self._in_flight.discard(chat_id)
    
    async def wait_idle(self) -> None:
        """Wait until every dispatch started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
    
    def start(self) -> None:
        """Begin ticking every tick_seconds."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(timezone=self._tz)
        self._scheduler.add_job(
            self.tick,
            "interval",
            seconds=self._tick_seconds,
            id="reminder_tick",
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("reminder_scheduler_started", tick_seconds=self._tick_seconds)
    
    async def stop(self, grace: float = 10.0) -> None:
        """
        Stop ticking, then wait up to grace seconds for dispatches.
        
        Dispatches still running after the grace period are cancelled.
        """
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        
        pending = set(self._tasks)
        if pending:
            _, pending = await asyncio.wait(pending, timeout=grace)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("reminder_scheduler_stopped", cancelled=len(pending))
