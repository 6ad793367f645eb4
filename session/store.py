"""
Encrypted per-participant conversation history.

Each participant's history is one encrypted blob on disk,
`<history_dir>/<identity>.json`, replaced whole on every save. The blob is
encrypted under the process EncryptionContext, so history written by an
earlier process decrypts to garbage and loads as empty.

The store never raises from load/save/clear: unreadable history is treated
as no history, and a failed write only costs durability.
"""

import asyncio
import json
import logging
import re
import time
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import AsyncIterator, Literal, Optional

from security.audit import audit
from security.crypto import DecryptionError, EncryptionContext
from security.file_io import atomic_text_write, remove_file

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]
ROLES = ("user", "assistant")

# Sent to the participant's chat after an explicit clear
HISTORY_CLEARED_TEXT = "🗑 История диалога удалена\n\n🗑 Chat history has been cleared"

_SAFE_IDENTITY = re.compile(r"^[A-Za-z0-9_-]+$")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single message in a participant's conversation."""
    role: Role  # "user" is the participant
    content: str
    timestamp: int  # epoch millis

    @classmethod
    def participant(cls, content: str, timestamp: Optional[int] = None) -> "Message":
        return cls(role="user", content=content, timestamp=_now_ms() if timestamp is None else timestamp)

    @classmethod
    def assistant(cls, content: str, timestamp: Optional[int] = None) -> "Message":
        return cls(role="assistant", content=content, timestamp=_now_ms() if timestamp is None else timestamp)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        role = data["role"]
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role!r}")
        content = data["content"]
        if not isinstance(content, str):
            raise TypeError("Message content must be a string")
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError("Message timestamp must be a number")
        return cls(role=role, content=content, timestamp=int(timestamp))


def serialize_history(history: list[Message]) -> str:
    return json.dumps([m.to_dict() for m in history], ensure_ascii=False, separators=(",", ":"))


def deserialize_history(payload: str) -> list[Message]:
    """Parse a JSON array of messages. Raises DecryptionError on any bad shape."""
    try:
        data = json.loads(payload)
        if not isinstance(data, list):
            raise TypeError("History payload is not a list")
        return [Message.from_dict(item) for item in data]
    except (ValueError, KeyError, TypeError) as e:
        raise DecryptionError(f"Malformed history payload: {e}") from e


def cap_history(history: list[Message], max_messages: int) -> list[Message]:
    """
    Keep at most max_messages of the newest messages.

    The kept tail always starts with a participant message so the backend
    never sees a conversation opening with an assistant turn.
    """
    if max_messages <= 0 or len(history) <= max_messages:
        return history

    trimmed = history[-max_messages:]
    while trimmed and trimmed[0].role != "user":
        trimmed = trimmed[1:]
    return trimmed


class SessionStore:
    """
    Persists, loads and erases participants' message histories.

    Features:
    - AES-CBC encrypted blob per identity (see security.crypto)
    - Whole-file atomic replacement on save
    - Per-identity asyncio locks so one participant's turns never interleave
    - Blocking disk I/O runs in worker threads, off the event loop
    """

    def __init__(
        self,
        history_dir: Path,
        encryption: EncryptionContext,
        *,
        notifier=None,
        max_messages: int = 0,
    ):
        self._dir = Path(history_dir)
        self._encryption = encryption
        self._notifier = notifier
        self._max_messages = max_messages
        # identity -> lock, alive only while some turn holds or waits on it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def history_dir(self) -> Path:
        return self._dir

    def set_notifier(self, notifier) -> None:
        """Set the transport used to tell a participant their history was cleared."""
        self._notifier = notifier

    def path_for(self, identity: str) -> Path:
        identity = str(identity)
        if not _SAFE_IDENTITY.match(identity):
            raise ValueError(f"Unsafe identity for history path: {identity!r}")
        return self._dir / f"{identity}.json"

    def lock(self, identity: str) -> asyncio.Lock:
        """Return the lock serialising load/append/save cycles for identity."""
        identity = str(identity)
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    @asynccontextmanager
    async def session(self, identity: str) -> AsyncIterator[None]:
        """Hold identity's lock for the duration of a conversation turn."""
        lock = self.lock(identity)
        async with lock:
            yield

    # -- Public operations ---------------------------------------------------

    async def load(self, identity: str) -> list[Message]:
        """Return identity's history, or [] if missing or unreadable."""
        try:
            path = self.path_for(identity)
        except ValueError as e:
            logger.error(f"Failed to load chat history for user {identity}: {e}")
            return []

        if not path.exists():
            return []

        try:
            return await asyncio.to_thread(self._read, path)
        except (DecryptionError, OSError) as e:
            logger.error(f"Failed to load chat history for user {identity}: {e}")
            return []

    async def save(self, identity: str, history: list[Message]) -> bool:
        """Encrypt and replace identity's persisted history. Returns False on failure."""
        history = cap_history(list(history), self._max_messages)
        try:
            path = self.path_for(identity)
            blob = self._encryption.encrypt(serialize_history(history))
            await asyncio.to_thread(atomic_text_write, path, blob)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to save chat history for user {identity}: {e}")
            return False

        logger.info(f"Chat history saved for user {identity} ({len(history)} messages)")
        return True

    async def clear(self, identity: str) -> bool:
        """Delete identity's history (no-op if absent) and notify their chat.

        Returns True if a blob was deleted.
        """
        existed = False
        try:
            path = self.path_for(identity)
            # Wait out an in-flight turn so its save can't resurrect the blob
            async with self.session(identity):
                existed = await asyncio.to_thread(remove_file, path)
            if existed:
                logger.info(f"Chat history deleted for user {identity}")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to clear chat history for user {identity}: {e}")

        audit.history_cleared(identity=str(identity), existed=existed)

        if self._notifier is not None:
            try:
                await self._notifier.send(str(identity), HISTORY_CLEARED_TEXT)
            except Exception as e:
                logger.warning(f"Failed to notify user {identity} about cleared history: {e}")

        return existed

    def stored_identities(self) -> list[str]:
        """Identities that have a persisted blob on disk."""
        if not self._dir.exists():
            return []
        return sorted(
            p.stem for p in self._dir.glob("*.json")
            if _SAFE_IDENTITY.match(p.stem)
        )

    # -- Internals -----------------------------------------------------------

    def _read(self, path: Path) -> list[Message]:
        raw = path.read_bytes()
        try:
            blob = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"History blob is not UTF-8 text: {e}") from e
        return deserialize_history(self._encryption.decrypt(blob))
