"""
Configuration Management for Expense Bot

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every required value is validated once at startup by load_settings();
a missing bot token, spreadsheet or credential is a ConfigError and the
process never starts half-configured.

The variable names used by earlier deployments (BOT_TOKEN, SPREADSHEET_ID,
GOOGLE_CREDENTIALS_BASE64, MODE, WEBHOOK_URL, PORT) are accepted as aliases.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Required configuration is missing or invalid. Fatal at startup."""
    pass


class TelegramSettings(BaseSettings):
    """Telegram transport configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
    
    bot_token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN"),
        description="Bot API token issued by BotFather"
    )
    mode: Literal["polling", "webhook"] = Field(
        default="polling",
        validation_alias=AliasChoices("TELEGRAM_MODE", "MODE"),
        description="How updates are received"
    )
    webhook_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_WEBHOOK_URL", "WEBHOOK_URL"),
        description="Public URL Telegram posts updates to (webhook mode)"
    )
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("TELEGRAM_PORT", "PORT"),
        description="Local port the webhook server listens on"
    )
    delivery_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Upper bound for a single outbound message"
    )
    
    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Empty MODE means polling, as it always has."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return "polling"
        return v.strip().lower() if isinstance(v, str) else v
    
    @model_validator(mode="after")
    def check_webhook_requirements(self) -> "TelegramSettings":
        if self.mode == "webhook" and (not self.webhook_url or self.port is None):
            raise ValueError("WEBHOOK_URL and PORT are required in webhook mode")
        return self


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
    
    spreadsheet_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("GOOGLE_SHEETS_SPREADSHEET_ID", "SPREADSHEET_ID"),
        description="ID of the Google Sheets spreadsheet to use"
    )
    credentials_base64: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_SHEETS_CREDENTIALS_BASE64", "GOOGLE_CREDENTIALS_BASE64"
        ),
        description="Base64-encoded service account credentials JSON"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_SHEETS_CREDENTIALS_PATH"),
        description="Path to Google service account credentials JSON"
    )
    
    # Sheet names within the spreadsheet
    ledger_sheet_name: Optional[str] = Field(
        default=None,
        description="Name of the ledger sheet (first sheet when unset)"
    )
    preferences_sheet_name: str = Field(
        default="Preferences",
        description="Name of the sheet for reminder preferences"
    )
    backend_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for a single spreadsheet call"
    )
    
    @field_validator("credentials_path")
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v
    
    @model_validator(mode="after")
    def check_credentials_source(self) -> "GoogleSheetsSettings":
        if not self.credentials_base64 and not self.credentials_path:
            raise ValueError(
                "Either GOOGLE_CREDENTIALS_BASE64 or GOOGLE_SHEETS_CREDENTIALS_PATH is required"
            )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    
    # Local time
    timezone: str = Field(
        default="Asia/Jakarta",
        description="IANA timezone used for entry dates and reminder hours"
    )
    
    # Reminders
    reminder_hour: int = Field(
        default=20,
        ge=0,
        le=23,
        description="Local hour at which reminders are sent"
    )
    reminder_tick_seconds: int = Field(
        default=60,
        ge=1,
        description="Interval between reminder evaluations"
    )
    shutdown_grace_seconds: float = Field(
        default=10.0,
        ge=0,
        description="How long in-flight reminders may run after shutdown"
    )
    
    # Queries
    history_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of entries shown by /history"
    )
    
    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v
    
    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for the configured zone."""
        return ZoneInfo(self.timezone)


class Settings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Sub-settings are loaded lazily so a storage-less run only needs
    # the sections it touches.
    
    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()
    
    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()
    
    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings(use_storage: bool = True) -> dict[str, bool]:
    """
    Validate all settings are properly configured.
    
    Returns a dict of {setting_name: is_valid}, with a
    "<name>_error" entry for every section that failed.
    """
    results = {}
    
    settings = get_settings()
    sections = ["telegram", "app"]
    if use_storage:
        sections.append("google_sheets")
    
    for name in sections:
        try:
            _ = getattr(settings, name)
            results[name] = True
        except ValidationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results


def load_settings(use_storage: bool = True) -> Settings:
    """
    Load and validate every section needed to run.
    
    Raises:
        ConfigError: naming each section that failed validation
    """
    results = validate_all_settings(use_storage=use_storage)
    failures = [
        f"{key[:-len('_error')]}: {message}"
        for key, message in results.items()
        if key.endswith("_error")
    ]
    if failures:
        raise ConfigError("Invalid configuration:\n" + "\n".join(failures))
    return get_settings()
