"""Rate decision engine.

Turns a (client IP, token) pair into an allow/deny decision using a fixed
window counter plus a block record, both kept in a ``CounterStore``.

Subject resolution:
- A non-empty token with a registered policy -> ``token:<value>`` and that
  token's policy.
- Anything else (no token, unknown token) -> ``ip:<address>`` and the
  default IP policy.

Decision order:
1. If ``blocked:<subject>`` is set, deny without touching the counter.
2. Increment the subject counter (window starts on the first request).
3. Past the limit: write the block record for ``block_seconds`` and deny.
4. Otherwise allow and report the remaining quota.

Store errors (``StoreUnavailable``) propagate to the caller unchanged.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from quotagate.adapters.counter_store.base import CounterStore

logger = logging.getLogger(__name__)

BLOCKED_PREFIX = "blocked:"


class LimitKind(str, Enum):
    """Which policy family produced a decision."""

    IP = "ip"
    TOKEN = "token"


@dataclass(frozen=True)
class Policy:
    """Rate limit policy.

    Attributes:
        limit: Maximum requests allowed per window (inclusive).
        window_seconds: Length of the fixed window.
        block_seconds: How long a subject stays blocked after exceeding the
            limit. Zero denies only the offending request.
    """

    limit: int
    window_seconds: float
    block_seconds: float

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if self.block_seconds < 0:
            raise ValueError("block_seconds must be >= 0")


@dataclass(frozen=True)
class Decision:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window (0 when denied).
        reset_at: UNIX epoch seconds when the window or block clears.
        limit_kind: Policy family applied (``ip`` or ``token``).
        limit: Configured limit of the applied policy.
    """

    allowed: bool
    remaining: int
    reset_at: float
    limit_kind: LimitKind
    limit: int

    def retry_after_seconds(self, now: float) -> int:
        """Whole seconds until ``reset_at``, never negative."""
        return max(0, int(math.ceil(self.reset_at - now)))


def _hash_subject(subject_key: str) -> str:
    """Hash a subject key for logging without exposing tokens."""
    return hashlib.sha256(subject_key.encode()).hexdigest()[:16]


class RateLimiter:
    """Fixed-window rate limiter with temporary blocking."""

    def __init__(
        self,
        store: CounterStore,
        ip_policy: Policy,
        token_policies: Mapping[str, Policy] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Counter store used for counters and block records.
            ip_policy: Policy applied to IP-identified subjects.
            token_policies: Optional per-token overrides (copied).
            clock: Time source returning UNIX time in seconds.
        """
        self._store = store
        self._ip_policy = ip_policy
        self._token_policies: dict[str, Policy] = {}
        self._clock = clock
        for token, policy in (token_policies or {}).items():
            self.register_token_policy(token, policy)

    @property
    def store(self) -> CounterStore:
        return self._store

    @property
    def ip_policy(self) -> Policy:
        return self._ip_policy

    @property
    def token_policies(self) -> dict[str, Policy]:
        """Snapshot of the registered per-token policies."""
        return dict(self._token_policies)

    def register_token_policy(self, token: str, policy: Policy) -> None:
        """Register (or replace) the policy for an exact token value.

        Raises:
            ValueError: If ``token`` is empty.
        """
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token_policies[token] = policy

    def resolve(self, ip: str, token: str | None) -> tuple[str, Policy, LimitKind]:
        """Return the subject key, policy and limit kind for a caller."""
        if token:
            policy = self._token_policies.get(token)
            if policy is not None:
                return f"token:{token}", policy, LimitKind.TOKEN
        return f"ip:{ip}", self._ip_policy, LimitKind.IP

    def check_limit(self, ip: str, token: str | None = None) -> Decision:
        """Consume one request for the caller and decide whether it passes.

        Args:
            ip: Client IP address.
            token: API token from the request, if any.

        Returns:
            Decision for this request.

        Raises:
            StoreUnavailable: If any counter store operation fails.
        """
        subject_key, policy, kind = self.resolve(ip, token)
        blocked_key = f"{BLOCKED_PREFIX}{subject_key}"

        if self._store.get(blocked_key) > 0:
            block_ttl = self._store.ttl(blocked_key)
            logger.info(
                "rate_limit.denied",
                extra={
                    "limit_type": kind.value,
                    "subject_hash": _hash_subject(subject_key),
                    "block_ttl_s": round(block_ttl, 3),
                },
            )
            return Decision(
                allowed=False,
                remaining=0,
                reset_at=self._clock() + block_ttl,
                limit_kind=kind,
                limit=policy.limit,
            )

        count = self._store.increment(subject_key, policy.window_seconds)

        if count > policy.limit:
            self._store.set(blocked_key, 1, policy.block_seconds)
            logger.warning(
                "rate_limit.blocked",
                extra={
                    "limit_type": kind.value,
                    "subject_hash": _hash_subject(subject_key),
                    "limit": policy.limit,
                    "count": count,
                    "block_s": policy.block_seconds,
                },
            )
            return Decision(
                allowed=False,
                remaining=0,
                reset_at=self._clock() + policy.block_seconds,
                limit_kind=kind,
                limit=policy.limit,
            )

        window_ttl = self._store.ttl(subject_key)
        return Decision(
            allowed=True,
            remaining=max(0, policy.limit - count),
            reset_at=self._clock() + window_ttl,
            limit_kind=kind,
            limit=policy.limit,
        )
