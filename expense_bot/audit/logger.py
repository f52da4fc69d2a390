"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every reminder dispatch is
logged as a structured event. This provides:
1. Traceability of who changed which position
2. Debugging capability when a reminder goes missing
3. A record of storage failures the user only saw as "gagal"

Events go to the local structured log only; the ledger sheet itself
is the user-visible history.
"""

import logging
import sys
from typing import Any, Optional

import structlog

from expense_bot.models.ledger import ReminderPeriod


def configure_logging(debug: bool = False) -> None:
    """
    Configure stdlib logging and structlog.
    
    JSON lines in production, a readable console renderer in debug mode.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    
    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """Central audit logging service for ledger and reminder events."""
    
    def __init__(self, logger: Optional[Any] = None):
        self._logger = logger or structlog.get_logger("expense_bot.audit")
    
    def log(self, event: str, severity: str = "info", **fields: Any) -> None:
        if severity == "error":
            self._logger.error(event, **fields)
        elif severity == "warning":
            self._logger.warning(event, **fields)
        else:
            self._logger.info(event, **fields)
    
    def entry_appended(self, chat_id: int, position: int, amount: int, category: str) -> None:
        self.log(
            "entry_appended",
            chat_id=chat_id,
            position=position,
            amount=amount,
            category=category,
        )
    
    def edit_session_started(self, chat_id: int, position: int) -> None:
        self.log("edit_session_started", chat_id=chat_id, position=position)
    
    def entry_edited(self, chat_id: int, position: int, amount: int) -> None:
        self.log("entry_edited", chat_id=chat_id, position=position, amount=amount)
    
    def entry_removed(self, chat_id: int, position: int) -> None:
        self.log("entry_removed", chat_id=chat_id, position=position)
    
    def reminder_preference_set(self, chat_id: int, period: ReminderPeriod) -> None:
        self.log("reminder_preference_set", chat_id=chat_id, period=period.value)
    
    def reminder_dispatched(self, chat_id: int, period: ReminderPeriod) -> None:
        self.log("reminder_dispatched", chat_id=chat_id, period=period.value)
    
    def reminder_failed(self, chat_id: int, period: ReminderPeriod, error: str) -> None:
        self.log(
            "reminder_failed",
            severity="error",
            chat_id=chat_id,
            period=period.value,
            error=error,
        )
    
    def storage_error(self, action: str, error: str, chat_id: Optional[int] = None) -> None:
        self.log(
            "storage_error",
            severity="error",
            action=action,
            error=error,
            chat_id=chat_id,
        )
