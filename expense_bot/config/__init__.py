"""Configuration package."""

from expense_bot.config.settings import (
    AppSettings,
    ConfigError,
    GoogleSheetsSettings,
    Settings,
    TelegramSettings,
    get_settings,
    load_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ConfigError",
    "GoogleSheetsSettings",
    "Settings",
    "TelegramSettings",
    "get_settings",
    "load_settings",
    "validate_all_settings",
]
