"""Counter store interface.

The rate limiter depends on this abstraction only, so the backing store can be
an in-process map (tests, single instance) or Redis (shared across instances).

All durations are expressed in seconds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class CounterStore(ABC):
    """Key/value store with atomic counting and per-key expiry."""

    @abstractmethod
    def get(self, key: str) -> int:
        """Return the current count for ``key``.

        Args:
            key: Namespaced key (e.g., ``ip:1.2.3.4``).

        Returns:
            The stored count, or 0 when the key is absent or expired.
        """
        raise NotImplementedError

    @abstractmethod
    def increment(self, key: str, window_seconds: float) -> int:
        """Atomically add 1 to ``key`` and return the new value.

        When the key has no expiry yet, it is set to ``now + window_seconds``
        in the same atomic step. An existing expiry is left untouched, so the
        window start is fixed by the first increment.

        Args:
            key: Namespaced key.
            window_seconds: Window length applied to a fresh key.

        Returns:
            The post-increment count.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: int, expiry_seconds: float) -> None:
        """Overwrite ``key`` with ``value`` expiring in ``expiry_seconds``.

        A non-positive expiry removes the key.
        """
        raise NotImplementedError

    @abstractmethod
    def ttl(self, key: str) -> float:
        """Return seconds until ``key`` expires, or 0 when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release held resources. Safe to call more than once."""
        raise NotImplementedError
