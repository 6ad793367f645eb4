"""
Operator relay: lets an operator write into a participant's chat.

    /send <numeric user id> <message, may span lines>

The sender is checked against the OperatorRegistry before the command is
even parsed, so nothing reaches a target unless the sender is an operator.
All feedback goes to the sender's own chat; relay() never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from channels.base import Transport
from channels.messages import (
    RELAY_DENIED_TEXT,
    RELAY_FAILED_TEXT,
    RELAY_USAGE_TEXT,
    relay_confirm_text,
    relay_forward_text,
)
from security.audit import audit
from security.operators import OperatorRegistry

logger = logging.getLogger(__name__)

# Telegram appends @botname to commands in groups
_SEND_COMMAND = re.compile(r"^/send(?:@\w+)?\s+([0-9]+)\s+(.+)$", re.DOTALL)


@dataclass(frozen=True)
class AdminCommand:
    """A parsed /send command."""
    target: str
    body: str


def parse_send_command(raw: str) -> AdminCommand | None:
    """Parse `/send <digits> <text>`. Returns None if raw doesn't match."""
    match = _SEND_COMMAND.match((raw or "").strip())
    if not match:
        return None
    target, body = match.groups()
    return AdminCommand(target=target, body=body)


class AdminRelay:
    """Authorizes the sender, then forwards the message body to the target."""

    def __init__(self, transport: Transport, registry: OperatorRegistry):
        self._transport = transport
        self._registry = registry

    async def relay(self, sender: str, raw_command: str) -> None:
        sender = str(sender)

        if not self._registry.is_active_operator(sender):
            logger.warning(f"Non-operator {sender} attempted /send")
            audit.admin_relay(sender=sender, outcome="denied")
            await self._notify(sender, RELAY_DENIED_TEXT)
            return

        command = parse_send_command(raw_command)
        if command is None:
            audit.admin_relay(sender=sender, outcome="malformed")
            await self._notify(sender, RELAY_USAGE_TEXT)
            return

        try:
            await self._transport.send(command.target, relay_forward_text(command.body))
        except Exception as e:
            logger.error(f"Error handling admin send message to user {command.target}: {e}")
            audit.admin_relay(sender=sender, target=command.target, outcome="failed")
            await self._notify(sender, RELAY_FAILED_TEXT)
            return

        audit.admin_relay(sender=sender, target=command.target, outcome="sent")
        logger.info(f"Admin {sender} sent message to user {command.target}")
        await self._notify(sender, relay_confirm_text(command.target))

    async def _notify(self, sender: str, text: str) -> None:
        """Best-effort feedback to the operator's own chat."""
        try:
            await self._transport.send(sender, text)
        except Exception as e:
            logger.error(f"Failed to notify {sender} about /send: {e}")
