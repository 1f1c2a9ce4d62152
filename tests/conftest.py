"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``quotagate`` import so the global
settings object never tries to reach a real Redis.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fakeredis  # noqa: E402
import pytest  # noqa: E402

from quotagate.adapters.counter_store import (  # noqa: E402
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
)


class FakeTime:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def fake_redis_client() -> fakeredis.FakeRedis:
    """Isolated fakeredis client (one server per test)."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(params=["memory", "redis"])
def store(request: pytest.FixtureRequest, fake_redis_client) -> CounterStore:
    """Run a test against both counter store implementations."""
    if request.param == "memory":
        backend: CounterStore = InMemoryCounterStore()
    else:
        backend = RedisCounterStore("redis://fake", client=fake_redis_client)
    yield backend
    backend.close()
