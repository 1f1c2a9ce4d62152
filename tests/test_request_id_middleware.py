from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quotagate.adapters.counter_store.in_memory import InMemoryCounterStore
from quotagate.core.app_factory import create_app
from quotagate.services.rate_limiter import Policy, RateLimiter


@pytest.fixture
def client() -> TestClient:
    limiter = RateLimiter(
        InMemoryCounterStore(),
        Policy(limit=100, window_seconds=60, block_seconds=60),
    )
    return TestClient(create_app(limiter))


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None
