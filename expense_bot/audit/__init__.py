"""Audit logging package."""

from expense_bot.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
