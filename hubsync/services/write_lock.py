"""
Write lock: ignore change notifications for paths the engine just wrote.

Suppression is by path and time window only. An external edit to the same
path inside the window is ignored too; the next full pass picks it up.
"""

import time
from collections.abc import Callable


class WriteLock:
    """Path -> time of the engine's last write, expiring after a TTL."""

    def __init__(self, ttl: float = 1.2, clock: Callable[[], float] | None = None):
        """
        Initialize write lock.

        Args:
            ttl: Seconds a written path stays locked
            clock: Monotonic time source (seconds)
        """
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._locks: dict[str, float] = {}

    def mark(self, *paths: str) -> None:
        """Mark paths as just written by the engine."""
        now = self._clock()
        for path in paths:
            self._locks[path] = now

    def is_locked(self, path: str) -> bool:
        """True if path was written within the TTL. Expired entries are dropped."""
        written_at = self._locks.get(path)
        if written_at is None:
            return False
        if self._clock() - written_at >= self.ttl:
            del self._locks[path]
            return False
        return True

    def __len__(self) -> int:
        return len(self._locks)
