"""
Operator registry.

Operators are the Telegram users allowed to relay messages with /send. The
list comes from ADMIN_TELEGRAM_ID (one id, or comma-separated ids) and is
re-read from settings on every lookup so a changed environment takes effect
without restarting.
"""

import logging
from typing import Callable

from security.crypto import token_matches_any

logger = logging.getLogger(__name__)


class OperatorRegistry:
    """Answers "is this identity an active operator?"."""

    def __init__(self, source: Callable[[], str]) -> None:
        self._source = source

    @classmethod
    def from_settings(cls, settings) -> "OperatorRegistry":
        return cls(lambda: settings.admin_telegram_id)

    def operator_ids(self) -> list[str]:
        from config import PLACEHOLDER_ADMIN_ID

        raw = self._source() or ""
        ids = [i.strip() for i in raw.split(",") if i.strip()]
        return [i for i in ids if i != PLACEHOLDER_ADMIN_ID]

    def is_active_operator(self, identity: str) -> bool:
        ids = self.operator_ids()
        if not ids:
            logger.debug("No operators configured")
            return False
        return token_matches_any(str(identity), ",".join(ids))
