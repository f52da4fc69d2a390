"""
Telegram Transport

Connects the ConversationRouter to the Telegram Bot API using
python-telegram-bot.

DESIGN DECISION: The transport holds no conversation logic.
Every text message (commands included) goes to router.handle_message,
every button press goes to router.handle_callback, and the returned
Reply is rendered as-is. The router recognizes commands itself so that
unknown commands get the same answer in every mode.

Lifecycle:
    post_init  -> verify storage, load preferences, start reminders
    post_stop  -> stop reminders, let in-flight deliveries finish
"""

from typing import Optional

import structlog
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from expense_bot.config import Settings
from expense_bot.models import Reply
from expense_bot.orchestrator import AppComponents, create_reminder_scheduler
from expense_bot.reminders import DeliveryError, ReminderScheduler
from expense_bot.services.storage import StorageError


logger = structlog.get_logger(__name__)

ALLOWED_UPDATES = ["message", "callback_query"]
CALLBACK_PATTERN = r"^reminder_"
WEBHOOK_PATH = "webhook"
WEBHOOK_LISTEN = "0.0.0.0"


class TelegramNotifier:
    """Notifier used by the reminder scheduler."""
    
    def __init__(self, bot, timeout: float = 20.0):
        self._bot = bot
        self._timeout = timeout
    
    async def send(self, chat_id: int, text: str) -> None:
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                read_timeout=self._timeout,
                write_timeout=self._timeout,
            )
        except TelegramError as e:
            raise DeliveryError(f"sendMessage to {chat_id} failed: {e}") from e


def reply_markup(reply: Reply) -> Optional[InlineKeyboardMarkup]:
    """Render the reply's choice rows as an inline keyboard."""
    if not reply.buttons:
        return None
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(button.label, callback_data=button.token) for button in row]
            for row in reply.buttons
        ]
    )


class TelegramTransport:
    """
    Owns the python-telegram-bot Application and the reminder scheduler.
    
    Usage:
        transport = TelegramTransport(settings, components)
        transport.run()
    """
    
    def __init__(self, settings: Settings, components: AppComponents):
        self.settings = settings
        self.components = components
        self.telegram = settings.telegram
        self.app = self._build_application()
        self.scheduler: ReminderScheduler = create_reminder_scheduler(
            components,
            TelegramNotifier(self.app.bot, timeout=self.telegram.delivery_timeout_seconds),
            settings,
        )
        self._register_handlers()
    
    def _build_application(self) -> Application:
        return (
            ApplicationBuilder()
            .token(self.telegram.bot_token)
            .post_init(self._post_init)
            .post_stop(self._post_stop)
            .build()
        )
    
    def _register_handlers(self) -> None:
        self.app.add_handler(CallbackQueryHandler(self.on_callback, pattern=CALLBACK_PATTERN))
        self.app.add_handler(MessageHandler(filters.TEXT, self.on_message))
        self.app.add_error_handler(self.on_error)
    
    # =========================================================================
    # Lifecycle
    # =========================================================================
    
    async def _post_init(self, application: Application) -> None:
        client = self.components.sheets_client
        if client is not None:
            # Unreachable storage at startup is fatal
            await client.run("connect", client.get_spreadsheet)
        
        try:
            loaded = await self.components.preferences.load()
            logger.info("preferences_loaded", count=loaded)
        except StorageError as e:
            logger.warning("preferences_load_failed", error=str(e))
        
        self.scheduler.start()
        logger.info("bot_started", mode=self.telegram.mode)
    
    async def _post_stop(self, application: Application) -> None:
        await self.scheduler.stop(grace=self.settings.app.shutdown_grace_seconds)
        logger.info("bot_stopped")
    
    # =========================================================================
    # Handlers
    # =========================================================================
    
    async def on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None or not message.text:
            return
        
        reply = await self.components.router.handle_message(chat.id, message.text)
        await message.reply_text(reply.text, reply_markup=reply_markup(reply))
    
    async def on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        chat = update.effective_chat
        if query is None or chat is None:
            return
        
        await query.answer()
        reply = await self.components.router.handle_callback(chat.id, query.data or "")
        await context.bot.send_message(
            chat_id=chat.id,
            text=reply.text,
            reply_markup=reply_markup(reply),
        )
    
    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = None
        if isinstance(update, Update) and update.effective_chat is not None:
            chat_id = update.effective_chat.id
        logger.error(
            "update_failed",
            chat_id=chat_id,
            error=str(context.error),
            error_type=type(context.error).__name__,
        )
    
    # =========================================================================
    # Run
    # =========================================================================
    
    def run(self) -> None:
        """Block until the process is stopped (SIGINT/SIGTERM)."""
        if self.telegram.mode == "webhook":
            logger.info("webhook_listening", port=self.telegram.port, url=self.telegram.webhook_url)
            self.app.run_webhook(
                listen=WEBHOOK_LISTEN,
                port=self.telegram.port,
                url_path=WEBHOOK_PATH,
                webhook_url=self.telegram.webhook_url,
                allowed_updates=ALLOWED_UPDATES,
            )
        else:
            # run_polling removes any registered webhook before polling
            self.app.run_polling(allowed_updates=ALLOWED_UPDATES)
