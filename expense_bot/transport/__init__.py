"""Telegram transport for the expense bot."""

from expense_bot.transport.telegram_bot import (
    TelegramNotifier,
    TelegramTransport,
    reply_markup,
)

__all__ = [
    "TelegramNotifier",
    "TelegramTransport",
    "reply_markup",
]
