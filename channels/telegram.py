"""
Telegram channel adapter for Wish Granter.

Uses python-telegram-bot (v20+) in polling mode. Updates are processed
concurrently so one participant waiting on the backend never holds up
another; per-participant ordering is the session store's job.

Every update passes two pre-handlers before reaching a command or the
conversation handler:
  group -2: log who sent what kind of update
  group -1: per-participant rate limit (stops the update when exceeded)

Required env var:
    BOT_TOKEN: bot token from @BotFather
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import BotCommand, BotCommandScopeChat, BotCommandScopeDefault, Update
from telegram.constants import ChatAction
from telegram.ext import (
    Application,
    ApplicationHandlerStop,
    CommandHandler,
    ContextTypes,
    MessageHandler as TGMessageHandler,
    TypeHandler,
    filters,
)

from channels.base import ChannelAdapter, IncomingMessage
from channels.messages import THROTTLED_TEXT

if TYPE_CHECKING:
    from channels.base import MessageHandler
    from security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

# Telegram message length limit (UTF-8)
_MAX_MESSAGE_LENGTH = 4096


class TelegramAdapter(ChannelAdapter):
    """Telegram Bot API adapter.

    Lifecycle:
        adapter = TelegramAdapter(token="...", rate_limiter=limiter)
        await adapter.start(handler, {"start": on_start, ...})
        await adapter.stop()           # graceful shutdown
    """

    def __init__(
        self,
        token: str,
        *,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        super().__init__()
        if not token:
            raise ValueError("BOT_TOKEN is required")
        self._token = token
        self._rate_limiter = rate_limiter
        self._app: Application | None = None
        self._handler: MessageHandler | None = None

    @property
    def name(self) -> str:
        return "telegram"

    # -- Lifecycle -----------------------------------------------------------

    async def start(
        self,
        handler: MessageHandler,
        commands: dict[str, MessageHandler] | None = None,
    ) -> None:
        """Start the Telegram bot in polling mode.

        Returns once polling has started. If the bot token is invalid or the
        network is unreachable, this raises immediately.
        """
        self._handler = handler

        self._app = (
            Application.builder()
            .token(self._token)
            .concurrent_updates(True)
            .build()
        )

        self._app.add_handler(TypeHandler(Update, self._log_update), group=-2)
        if self._rate_limiter is not None:
            self._app.add_handler(TypeHandler(Update, self._throttle), group=-1)

        for command, command_handler in (commands or {}).items():
            self._app.add_handler(CommandHandler(command, self._command_callback(command_handler)))
        self._app.add_handler(
            TGMessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )

        # Initialize validates the token (get_me call)
        await self._app.initialize()
        self._running = True

        bot_info = await self._app.bot.get_me()
        logger.info("Telegram adapter started as @%s (id: %s)", bot_info.username, bot_info.id)

        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)

    async def stop(self) -> None:
        """Gracefully shut down the Telegram bot."""
        if not self._app:
            return

        logger.info("Telegram adapter shutting down...")
        self._running = False

        if self._app.updater and self._app.updater.running:
            await self._app.updater.stop()
        if self._app.running:
            await self._app.stop()
        await self._app.shutdown()

        self._app = None
        self._handler = None
        logger.info("Telegram adapter stopped.")

    async def set_commands(
        self,
        user_commands: list[tuple[str, str]],
        admin_commands: list[tuple[str, str]] | None = None,
        admin_ids: list[str] | None = None,
    ) -> None:
        """Register the command menu. Operators get their own chat-scoped menu."""
        self._check_running()
        assert self._app is not None

        await self._app.bot.set_my_commands(
            [BotCommand(c, d) for c, d in user_commands],
            scope=BotCommandScopeDefault(),
        )
        logger.info("User commands registered in bot menu")

        for admin_id in admin_ids or []:
            await self._app.bot.set_my_commands(
                [BotCommand(c, d) for c, d in admin_commands or user_commands],
                scope=BotCommandScopeChat(chat_id=int(admin_id)),
            )
            logger.info("Admin commands registered for admin user %s", admin_id)

    # -- Transport -----------------------------------------------------------

    async def send(self, identity: str, text: str, *, parse_mode: str | None = None) -> int:
        """Send text to a chat, split to Telegram's limit.

        Returns the message_id of the last chunk sent.
        """
        self._check_running()
        assert self._app is not None

        message_id = 0
        for chunk in _split_message(text):
            sent = await self._app.bot.send_message(
                chat_id=int(identity),
                text=chunk,
                parse_mode=parse_mode,
            )
            message_id = sent.message_id
        return message_id

    async def delete(self, identity: str, handle: int) -> None:
        self._check_running()
        assert self._app is not None
        await self._app.bot.delete_message(chat_id=int(identity), message_id=handle)

    async def typing(self, identity: str) -> None:
        self._check_running()
        assert self._app is not None
        await self._app.bot.send_chat_action(chat_id=int(identity), action=ChatAction.TYPING)

    # -- Telegram handlers ---------------------------------------------------

    async def _log_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log every inbound update before anything else sees it."""
        user = update.effective_user
        message = update.effective_message
        kind = "unknown"
        if message is not None:
            kind = "text" if message.text else "other"
        logger.info(
            "Message from user %s (@%s): %s",
            user.id if user else None,
            user.username if user else None,
            kind,
        )

    async def _throttle(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Stop the update if its sender exceeded the rate limit."""
        user = update.effective_user
        if user is None or self._rate_limiter is None:
            return

        admission = self._rate_limiter.admit(str(user.id))
        if admission.allowed:
            return

        if update.effective_message is not None:
            try:
                await update.effective_message.reply_text(THROTTLED_TEXT)
            except Exception as e:
                logger.warning("Failed to send throttle notice to %s: %s", user.id, e)
        raise ApplicationHandlerStop

    def _command_callback(self, handler: MessageHandler):
        async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            await self._dispatch(update, handler)

        return callback

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle incoming text messages."""
        if not self._handler:
            return
        await self._dispatch(update, self._handler)

    async def _dispatch(self, update: Update, handler: MessageHandler) -> None:
        incoming = _to_incoming(update)
        if incoming is None:
            return

        replies = await self._safe_handle(handler, incoming)
        for out in replies:
            try:
                await self.send(incoming.conversation_id, out.text, parse_mode=out.parse_mode)
            except Exception:
                logger.exception("Failed to deliver reply to %s", incoming.conversation_id)


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _to_incoming(update: Update) -> IncomingMessage | None:
    """Convert a text update into an IncomingMessage, or None if it has no text."""
    message = update.effective_message
    user = update.effective_user
    chat = update.effective_chat
    if message is None or user is None or chat is None or not message.text:
        return None

    return IncomingMessage(
        text=message.text,
        sender_id=str(user.id),
        conversation_id=str(chat.id),
        channel="telegram",
        sender_name=user.full_name,
        username=user.username,
        timestamp=message.date,
        metadata={
            "message_id": message.message_id,
            "chat_type": chat.type,
        },
    )


def _split_message(text: str) -> list[str]:
    """Split a long message into chunks that fit Telegram's limit.

    Tries to split on newlines to preserve formatting. Falls back to
    hard splits at the character limit.
    """
    if len(text) <= _MAX_MESSAGE_LENGTH:
        return [text]

    chunks: list[str] = []
    remaining = text

    while remaining:
        if len(remaining) <= _MAX_MESSAGE_LENGTH:
            chunks.append(remaining)
            break

        # Try to find a good split point (newline near the limit)
        split_at = remaining.rfind("\n", 0, _MAX_MESSAGE_LENGTH)
        if split_at <= 0 or split_at < _MAX_MESSAGE_LENGTH // 2:
            # No good newline, hard split
            split_at = _MAX_MESSAGE_LENGTH

        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip("\n")

    return chunks


def create_telegram_adapter(token: str, *, rate_limiter: RateLimiter | None = None) -> TelegramAdapter:
    """Factory that creates a TelegramAdapter from config values."""
    if rate_limiter is None:
        logger.warning("Telegram adapter created without a rate limiter; throttling disabled.")
    return TelegramAdapter(token=token, rate_limiter=rate_limiter)
