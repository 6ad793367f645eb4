"""Per-participant rate limiting for Wish Granter.

Implements a sliding-window limiter keyed by participant identity. Every
admitted request is timestamped; a new request is admitted only while fewer
than `limit` admitted requests fall inside the trailing window. Rejected
requests are not recorded, so hammering the bot does not extend the wait.

State lives in memory only and resets on restart.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass

from security.audit import audit

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60_000
DEFAULT_LIMIT = 10


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Admission:
    """Outcome of a rate limit check."""

    allowed: bool
    retry_after_ms: int | None = None


class RateLimiter:
    """Sliding-window rate limiter per identity.

    Timestamps older than the window are pruned on each check. Identities
    whose every timestamp has expired are swept from the map at most once per
    window, so idle participants don't accumulate forever.
    """

    def __init__(self, window_ms: int = DEFAULT_WINDOW_MS, limit: int = DEFAULT_LIMIT) -> None:
        if window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self._window = window_ms
        self._max = limit
        # identity -> admitted timestamps, oldest first
        self._records: dict[str, deque[int]] = {}
        self._lock = threading.Lock()
        self._last_sweep: int | None = None

    @property
    def window_ms(self) -> int:
        return self._window

    @property
    def limit(self) -> int:
        return self._max

    def admit(self, identity: str, now: int | None = None) -> Admission:
        """Check and record a request for identity.

        Returns Admission(allowed=False, retry_after_ms=...) when the identity
        already has `limit` admitted requests inside the window.
        """
        if now is None:
            now = now_ms()
        cutoff = now - self._window

        with self._lock:
            self._maybe_sweep(now)

            timestamps = self._records.get(identity)
            if timestamps is None:
                timestamps = deque()
                self._records[identity] = timestamps

            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            if len(timestamps) >= self._max:
                retry_after = max(timestamps[0] + self._window - now, 0)
                denied = Admission(allowed=False, retry_after_ms=retry_after)
            else:
                timestamps.append(now)
                return Admission(allowed=True)

        logger.warning(
            f"User {identity} exceeded rate limit: "
            f"{self._max} requests per {self._window / 1000:g}s"
        )
        audit.rate_limit(identity=identity, limit=self._max, retry_after_ms=denied.retry_after_ms)
        return denied

    def tracked_identities(self) -> int:
        """Number of identities currently holding throttle state."""
        with self._lock:
            return len(self._records)

    def reset(self, identity: str | None = None) -> None:
        """Forget throttle state for one identity, or for everyone."""
        with self._lock:
            if identity is None:
                self._records.clear()
            else:
                self._records.pop(identity, None)

    def _maybe_sweep(self, now: int) -> None:
        """Drop identities with no timestamps inside the window. Caller holds the lock."""
        if self._last_sweep is not None and now - self._last_sweep < self._window:
            return
        self._last_sweep = now

        cutoff = now - self._window
        expired = [
            identity
            for identity, timestamps in self._records.items()
            if not timestamps or timestamps[-1] <= cutoff
        ]
        for identity in expired:
            del self._records[identity]
        if expired:
            logger.debug(f"Swept {len(expired)} idle identities from rate limiter")
