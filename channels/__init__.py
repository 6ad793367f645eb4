"""
Channel adapters for Wish Granter.

Each adapter translates between a platform (Telegram) and the bot's
internal message format, and provides the Transport primitives the
conversation core uses.
"""

from channels.base import (
    ChannelAdapter,
    IncomingMessage,
    MessageHandler,
    OutgoingMessage,
    Transport,
    reply,
)
from channels.admin_relay import AdminCommand, AdminRelay, parse_send_command
from channels.telegram import TelegramAdapter, create_telegram_adapter

__all__ = [
    "ChannelAdapter",
    "IncomingMessage",
    "MessageHandler",
    "OutgoingMessage",
    "Transport",
    "reply",
    "AdminCommand",
    "AdminRelay",
    "parse_send_command",
    "TelegramAdapter",
    "create_telegram_adapter",
]
