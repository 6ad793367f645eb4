"""
Channel handler registry.

Creates the Telegram adapter from config and the handlers that bridge
channel messages to the conversation brain, the session store and the
operator relay.
"""

from __future__ import annotations

import logging
import resource
import sys
import threading
import time
from typing import TYPE_CHECKING

from channels.base import IncomingMessage, MessageHandler, OutgoingMessage, reply
from channels.messages import (
    EMPTY_REPLY_TEXT,
    HELP_TEXT,
    RESET_TEXT,
    WELCOME_EN,
    WELCOME_RU,
    myid_text,
    status_text,
)

if TYPE_CHECKING:
    from channels.admin_relay import AdminRelay
    from channels.telegram import TelegramAdapter
    from llm.brain import ConversationOrchestrator
    from security.rate_limit import RateLimiter
    from session.store import SessionStore

logger = logging.getLogger(__name__)

USER_COMMANDS = [
    ("start", "Запустить бота"),
    ("reset", "Начать новый диалог"),
    ("who", "Проверить безопасность соединения"),
    ("myid", "Получить ваш Telegram ID"),
    ("help", "Показать справку"),
]

ADMIN_COMMANDS = USER_COMMANDS[:-1] + [
    ("send", "Отправить сообщение пользователю"),
    ("help", "Показать справку"),
]

_STARTED_AT = time.monotonic()


def create_adapter_from_config(settings, rate_limiter: RateLimiter) -> TelegramAdapter:
    """Create the Telegram adapter. Raises ValueError if BOT_TOKEN is missing."""
    from channels.telegram import create_telegram_adapter

    return create_telegram_adapter(settings.bot_token, rate_limiter=rate_limiter)


def _peak_memory_mb() -> int:
    """Peak resident set size of this process, in MB."""
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor)


def create_message_handler(orchestrator: ConversationOrchestrator) -> MessageHandler:
    """Create the handler that sends plain text through the brain."""

    async def handler(message: IncomingMessage) -> list[OutgoingMessage]:
        text = await orchestrator.converse(message.sender_id, message.text)
        return reply(text or EMPTY_REPLY_TEXT)

    return handler


def create_command_handlers(
    store: SessionStore,
    relay: AdminRelay,
    rate_limiter: RateLimiter | None = None,
) -> dict[str, MessageHandler]:
    """Create handlers for every slash command, keyed by command name."""

    async def start(message: IncomingMessage) -> list[OutgoingMessage]:
        return reply(WELCOME_RU, WELCOME_EN)

    async def help_(message: IncomingMessage) -> list[OutgoingMessage]:
        return reply(HELP_TEXT)

    async def reset(message: IncomingMessage) -> list[OutgoingMessage]:
        await store.clear(message.sender_id)
        return reply(RESET_TEXT)

    async def myid(message: IncomingMessage) -> list[OutgoingMessage]:
        logger.info(f"User {message.sender_id} (@{message.username}) requested their ID")
        return reply(myid_text(message.sender_id, message.username), parse_mode="Markdown")

    async def who(message: IncomingMessage) -> list[OutgoingMessage]:
        uptime = int(time.monotonic() - _STARTED_AT)
        threads = threading.active_count()
        memory_mb = _peak_memory_mb()
        tracked = rate_limiter.tracked_identities() if rate_limiter else 0
        logger.info(
            f"Process status checked by user {message.sender_id}: "
            f"threads={threads}, uptime={uptime}, memory={memory_mb}MB, throttled_ids={tracked}"
        )
        return reply(status_text(uptime, threads, memory_mb))

    async def send(message: IncomingMessage) -> list[OutgoingMessage]:
        await relay.relay(message.sender_id, message.text)
        return []

    return {
        "start": start,
        "help": help_,
        "reset": reset,
        "new_chat": reset,
        "myid": myid,
        "who": who,
        "send": send,
    }
