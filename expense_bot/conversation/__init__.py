"""Conversation package: router, per-chat state and reply texts."""

from expense_bot.conversation.router import (
    ConversationRouter,
    parse_ledger_message,
    split_command,
)
from expense_bot.conversation.state import EditSessionTable, PreferenceTable

__all__ = [
    "ConversationRouter",
    "EditSessionTable",
    "PreferenceTable",
    "parse_ledger_message",
    "split_command",
]
