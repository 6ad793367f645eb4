"""
Session module for Wish Granter.

Provides encrypted, per-participant conversation history.
"""

from .store import (
    SessionStore,
    Message,
    HISTORY_CLEARED_TEXT,
    cap_history,
    serialize_history,
    deserialize_history,
)

__all__ = [
    "SessionStore",
    "Message",
    "HISTORY_CLEARED_TEXT",
    "cap_history",
    "serialize_history",
    "deserialize_history",
]
