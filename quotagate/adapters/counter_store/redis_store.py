"""Redis-backed counter store.

Counters live in Redis so every instance of the service shares the same
quota. Increment and expiry run inside one MULTI/EXEC transaction:

- ``INCR key``
- ``PEXPIRE key <window_ms> NX`` (only sets the expiry when none exists)

``PEXPIRE ... NX`` requires Redis 7.0 or newer.

Any ``redis.RedisError`` (connection refused, socket timeout, bad response)
is raised as ``StoreUnavailable``. Nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Any

import redis

from quotagate.adapters.counter_store.base import CounterStore
from quotagate.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def _to_millis(seconds: float) -> int:
    return max(1, int(round(seconds * 1000)))


class RedisCounterStore(CounterStore):
    """Counter store backed by a Redis server."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 5.0,
        key_prefix: str = "",
        client: Any | None = None,
    ) -> None:
        """Connect to Redis and verify the connection.

        Args:
            url: Redis URL (``redis://host:port/db``).
            timeout_seconds: Socket connect/read timeout for every command.
            key_prefix: Optional namespace prepended to every key.
            client: Pre-built client (tests); ``url`` is ignored when given.

        Raises:
            StoreUnavailable: If the URL is invalid or the initial PING fails.
        """
        self._key_prefix = key_prefix
        self._closed = False

        try:
            self._client = client if client is not None else redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
            self._client.ping()
        except (redis.RedisError, ValueError) as exc:
            logger.error(
                "counter_store.connect_failed",
                extra={"error_type": type(exc).__name__},
            )
            raise StoreUnavailable(
                code="store_unavailable",
                message="Could not connect to the counter store",
            ) from exc

        logger.info("counter_store.connected", extra={"backend": "redis"})

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailable:
        logger.error(
            "counter_store.operation_failed",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        return StoreUnavailable(
            code="store_unavailable",
            message=f"Counter store {operation} failed",
        )

    def get(self, key: str) -> int:
        try:
            value = self._client.get(self._key(key))
        except redis.RedisError as exc:
            raise self._unavailable("get", exc) from exc
        return int(value) if value is not None else 0

    def increment(self, key: str, window_seconds: float) -> int:
        name = self._key(key)
        try:
            with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(name)
                pipe.pexpire(name, _to_millis(window_seconds), nx=True)
                count, _ = pipe.execute()
        except redis.RedisError as exc:
            raise self._unavailable("increment", exc) from exc
        return int(count)

    def set(self, key: str, value: int, expiry_seconds: float) -> None:
        name = self._key(key)
        try:
            if expiry_seconds <= 0:
                self._client.delete(name)
            else:
                self._client.set(name, value, px=_to_millis(expiry_seconds))
        except redis.RedisError as exc:
            raise self._unavailable("set", exc) from exc

    def ttl(self, key: str) -> float:
        try:
            remaining_ms = self._client.pttl(self._key(key))
        except redis.RedisError as exc:
            raise self._unavailable("ttl", exc) from exc
        # -2: missing key, -1: key without expiry
        if remaining_ms is None or remaining_ms < 0:
            return 0.0
        return remaining_ms / 1000.0

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
        except redis.RedisError as exc:
            logger.warning(
                "counter_store.close_failed",
                extra={"error_type": type(exc).__name__},
            )
