"""
Entry point for the Expense Bot.

Run with (after `pip install -e .`):
    python app/main.py

Configuration comes from the environment (or a .env file); see
expense_bot/config/settings.py for every variable.

Startup order:
1. Validate configuration - a missing token, spreadsheet or credential exits
2. Configure structured logging
3. Build the components and the Telegram transport
4. Poll or serve the webhook until SIGINT/SIGTERM
"""

import sys

import structlog

from expense_bot.audit import configure_logging
from expense_bot.config import ConfigError, load_settings
from expense_bot.orchestrator import create_app_components
from expense_bot.transport import TelegramTransport


def main() -> int:
    try:
        settings = load_settings(use_storage=True)
    except ConfigError as e:
        configure_logging()
        structlog.get_logger("expense_bot").critical("config_invalid", error=str(e))
        return 1
    
    configure_logging(debug=settings.app.debug_mode)
    logger = structlog.get_logger("expense_bot")
    
    components = create_app_components(settings=settings, use_storage=True)
    transport = TelegramTransport(settings, components)
    
    logger.info(
        "starting",
        environment=settings.app.app_environment,
        mode=settings.telegram.mode,
        timezone=settings.app.timezone,
    )
    transport.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
