"""Periodic reminder package."""

from expense_bot.reminders.scheduler import (
    DeliveryError,
    Notifier,
    ReminderScheduler,
    is_due,
)

__all__ = ["DeliveryError", "Notifier", "ReminderScheduler", "is_due"]
