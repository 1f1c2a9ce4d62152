"""Counter store adapters.

The rate limiter talks to a ``CounterStore``; this package provides an
in-memory implementation and a Redis implementation behind that interface.
"""

from __future__ import annotations

from quotagate.adapters.counter_store.base import CounterStore
from quotagate.adapters.counter_store.in_memory import InMemoryCounterStore
from quotagate.adapters.counter_store.redis_store import RedisCounterStore

SUPPORTED_BACKENDS = ("memory", "redis")


def build_counter_store(
    backend: str,
    *,
    redis_url: str | None = None,
    timeout_seconds: float = 5.0,
    key_prefix: str = "",
) -> CounterStore:
    """Create the counter store selected by configuration.

    Args:
        backend: ``memory`` or ``redis`` (case-insensitive).
        redis_url: Redis URL, required for the ``redis`` backend.
        timeout_seconds: Redis socket timeout.
        key_prefix: Redis key namespace.

    Returns:
        A ready-to-use counter store.

    Raises:
        ValueError: If the backend is unknown or the Redis URL is missing.
        StoreUnavailable: If Redis cannot be reached.
    """
    name = backend.strip().lower()
    if name == "memory":
        return InMemoryCounterStore()
    if name == "redis":
        if not redis_url:
            raise ValueError("redis_url is required for the redis backend")
        return RedisCounterStore(
            redis_url,
            timeout_seconds=timeout_seconds,
            key_prefix=key_prefix,
        )
    raise ValueError(
        f"Unsupported counter store backend: {backend!r}. "
        f"Supported: {', '.join(SUPPORTED_BACKENDS)}"
    )


__all__ = [
    "CounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "SUPPORTED_BACKENDS",
    "build_counter_store",
]
