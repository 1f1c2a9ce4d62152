"""In-process counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a lock guards the map, which makes ``increment`` atomic.
- Expiry is lazy: entries are dropped when read after their deadline.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from quotagate.adapters.counter_store.base import CounterStore


@dataclass
class _Entry:
    count: int
    expires_at: float | None


class InMemoryCounterStore(CounterStore):
    """Map-backed counter store with lazy expiry.

    Important:
        State is not shared between processes. Use the Redis store when the
        service runs with more than one worker or instance.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def _live_entry(self, key: str, now: float) -> _Entry | None:
        """Return the entry for ``key`` unless it has expired.

        Expired entries are removed. Caller must hold the lock.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and now >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            return entry.count if entry else 0

    def increment(self, key: str, window_seconds: float) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live_entry(key, now)
            if entry is None:
                entry = _Entry(count=0, expires_at=None)
                self._entries[key] = entry

            entry.count += 1
            if entry.expires_at is None:
                entry.expires_at = now + window_seconds
            return entry.count

    def set(self, key: str, value: int, expiry_seconds: float) -> None:
        with self._lock:
            if expiry_seconds <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = _Entry(
                count=value,
                expires_at=self._clock() + expiry_seconds,
            )

    def ttl(self, key: str) -> float:
        with self._lock:
            now = self._clock()
            entry = self._live_entry(key, now)
            if entry is None or entry.expires_at is None:
                return 0.0
            return entry.expires_at - now

    def close(self) -> None:
        with self._lock:
            self._entries.clear()
