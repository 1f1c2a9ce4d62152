"""Tests for configuration parsing."""

import pytest
from pydantic import ValidationError

from quotagate.core.config import AppSettings, RateLimitSettings, parse_duration


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1s", 1.0),
        ("250ms", 0.25),
        ("5m", 300.0),
        ("1h", 3600.0),
        ("1m30s", 90.0),
        ("1.5s", 1.5),
        ("2", 2.0),
        ("0.5", 0.5),
        (10, 10.0),
        (" 5M ", 300.0),
    ],
)
def test_parse_duration(raw, expected: float) -> None:
    assert parse_duration(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "abc", "5x", "1s5", "s", True])
def test_parse_duration_rejects_garbage(raw) -> None:
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_rate_limit_settings_parse_duration_strings() -> None:
    limits = RateLimitSettings(ip_rate_limit=3, ip_rate_window="1s", ip_block_time="5m")

    policy = limits.ip_policy()

    assert policy.limit == 3
    assert policy.window_seconds == 1.0
    assert policy.block_seconds == 300.0


def test_rate_limit_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IP_RATE_LIMIT", "7")
    monkeypatch.setenv("IP_RATE_WINDOW", "2s")
    monkeypatch.setenv("IP_BLOCK_TIME", "1m")

    limits = RateLimitSettings()

    assert limits.ip_rate_limit == 7
    assert limits.ip_rate_window == 2.0
    assert limits.ip_block_time == 60.0


def test_rate_limit_settings_reject_invalid_values() -> None:
    with pytest.raises(ValidationError):
        RateLimitSettings(ip_rate_limit=0)
    with pytest.raises(ValidationError):
        RateLimitSettings(ip_rate_window="soon")


def test_token_policies_discovered_from_environment() -> None:
    limits = RateLimitSettings(token_rate_limit=100, token_rate_window="1s", token_block_time="5m")
    environ = {
        "TOKEN_RATE_LIMIT": "100",
        "TOKEN_RATE_WINDOW": "1s",
        "TOKEN_vip_LIMIT": "50",
        "TOKEN_vip_WINDOW": "2s",
        "TOKEN_abc123_LIMIT": "5",
        "TOKEN_abc123_BLOCK_TIME": "10s",
        "PATH": "/usr/bin",
    }

    policies = limits.token_policies(environ)

    assert set(policies) == {"vip", "abc123"}
    assert policies["vip"].limit == 50
    assert policies["vip"].window_seconds == 2.0
    assert policies["vip"].block_seconds == 300.0
    assert policies["abc123"].limit == 5
    assert policies["abc123"].window_seconds == 1.0
    assert policies["abc123"].block_seconds == 10.0


def test_invalid_token_override_fails() -> None:
    limits = RateLimitSettings()

    with pytest.raises(ValidationError):
        limits.token_policies({"TOKEN_bad_LIMIT": "zero"})


def test_store_backend_is_validated() -> None:
    assert AppSettings(store_backend="MEMORY").store_backend == "memory"
    with pytest.raises(ValidationError):
        AppSettings(store_backend="memcached")
