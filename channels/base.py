"""
Channel adapter protocol for Wish Granter.

Defines the transport primitives the conversation core depends on, the
message types exchanged with handlers, and the base class channel adapters
implement. The core only ever sees Transport (structural typing) so it can
be driven by a fake in tests; adapters use ABC because they carry state
(connections, tokens, update loops).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field

from channels.messages import HANDLER_ERROR_TEXT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transport protocol: what the conversation core needs from a channel
# ---------------------------------------------------------------------------


class Transport(Protocol):
    """Send / delete / typing primitives, keyed by participant identity."""

    async def send(
        self,
        identity: str,
        text: str,
        *,
        parse_mode: str | None = None,
    ) -> Any:
        """Send text to identity's chat. Returns a handle usable with delete()."""
        ...

    async def delete(self, identity: str, handle: Any) -> None:
        """Delete a message previously returned by send()."""
        ...

    async def typing(self, identity: str) -> None:
        """Show a typing indicator in identity's chat."""
        ...


# ---------------------------------------------------------------------------
# Message types
# ---------------------------------------------------------------------------


class IncomingMessage(BaseModel):
    """Message received from an external channel."""

    text: str = Field(max_length=50_000)
    """Message content (capped at 50K chars)."""

    sender_id: str
    """Platform-specific user ID; also the participant identity."""

    conversation_id: str
    """Platform-specific chat ID."""

    channel: str
    """Channel identifier: 'telegram', etc."""

    sender_name: str | None = None
    """Display name if available."""

    username: str | None = None
    """Handle without the leading @, if the platform has one."""

    timestamp: datetime | None = None
    """When the message was sent (platform time, not receive time)."""

    metadata: dict = Field(default_factory=dict)
    """Platform-specific extras (e.g., telegram message_id)."""


class OutgoingMessage(BaseModel):
    """Message to send back through a channel."""

    text: str
    """Response content."""

    parse_mode: str | None = None
    """Formatting hint for the platform, e.g. 'Markdown'."""


# ---------------------------------------------------------------------------
# Handler type
# ---------------------------------------------------------------------------

MessageHandler = Callable[[IncomingMessage], Awaitable[list[OutgoingMessage]]]
"""
Coroutine that handles one inbound message and returns the replies to send,
in order, to the same chat. May return [] when it replies on its own.
"""


def reply(*texts: str, parse_mode: str | None = None) -> list[OutgoingMessage]:
    """Shorthand for building a handler's reply list."""
    return [OutgoingMessage(text=t, parse_mode=parse_mode) for t in texts]


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class ChannelAdapter(ABC):
    """Base class for channel adapters.

    Subclasses must implement:
      - name (property): channel identifier string
      - start(handler, commands): begin listening for messages
      - stop(): gracefully shut down
      - send / delete / typing: the Transport primitives

    Shared behavior provided:
      - _running state tracking
      - _safe_handle() wrapper for error handling
    """

    def __init__(self) -> None:
        self._running: bool = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Abstract interface --------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier (e.g., 'telegram')."""

    @abstractmethod
    async def start(
        self,
        handler: MessageHandler,
        commands: dict[str, MessageHandler] | None = None,
    ) -> None:
        """Start listening. Plain text goes to handler, /name to commands[name].

        Must set self._running = True on success. If the adapter cannot start
        (bad token, network error, etc.), it must raise instead of failing silently.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Gracefully shut down the adapter.

        Contract:
          - Stop accepting new messages immediately
          - Finish any in-flight message handling before returning
          - Set self._running = False when done
        """

    @abstractmethod
    async def send(self, identity: str, text: str, *, parse_mode: str | None = None) -> Any:
        """Send a message. Raises RuntimeError if the adapter is not running."""

    @abstractmethod
    async def delete(self, identity: str, handle: Any) -> None:
        """Delete a sent message."""

    @abstractmethod
    async def typing(self, identity: str) -> None:
        """Show a typing indicator."""

    # -- Shared behavior -----------------------------------------------------

    async def _safe_handle(
        self,
        handler: MessageHandler,
        message: IncomingMessage,
    ) -> list[OutgoingMessage]:
        """Wrap a handler call with error handling.

        Catches exceptions from the handler, logs them, and returns an error
        reply so the user always gets feedback.

        Adapters should call this instead of invoking the handler directly.
        """
        try:
            return await handler(message)
        except Exception:
            logger.exception(
                "Handler error for message from %s on %s (conversation %s)",
                message.sender_id,
                self.name,
                message.conversation_id,
            )
            return reply(HANDLER_ERROR_TEXT)

    def _check_running(self) -> None:
        """Raise RuntimeError if the adapter hasn't been started.

        Call this at the top of send() implementations.
        """
        if not self._running:
            raise RuntimeError(
                f"{self.name} adapter is not running. Call start() first."
            )
