"""
Expense Bot - Source Package

A chat bot that records household expenses typed as short free-text
messages into a Google Sheets ledger, answers summary questions and
sends periodic spending reminders.

DESIGN PRINCIPLES:
1. The spreadsheet is the only source of truth for the ledger
2. Every failure becomes a reply, never a crash
3. Conversation state is owned, never shared raw
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Bot Team"
