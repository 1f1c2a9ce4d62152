"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from quotagate.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


def _build_logger(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_tokens_and_redis_url():
    logger, stream = _build_logger("test_redaction")

    logger.info(
        "server.starting",
        extra={
            "token": "vip-secret",
            "api_key": "another-secret",
            "redis_url": "redis://:hunter2@cache:6379/0",
            "port": 8080,
        },
    )

    output = stream.getvalue()
    assert "vip-secret" not in output
    assert "another-secret" not in output
    assert "hunter2" not in output
    assert "[REDACTED]" in output
    assert "8080" in output


def test_sensitive_filter_allows_rate_limit_fields():
    logger, stream = _build_logger("test_safe_fields")

    logger.warning(
        "rate_limit.blocked",
        extra={
            "limit_type": "token",
            "subject_hash": "0123456789abcdef",
            "limit": 10,
            "block_s": 300.0,
        },
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.blocked"
    assert record["level"] == "warning"
    assert record["limit_type"] == "token"
    assert record["subject_hash"] == "0123456789abcdef"
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts():
    logger, stream = _build_logger("test_nested")

    logger.info(
        "request_headers",
        extra={
            "headers": {"Authorization": "Bearer abc", "user-agent": "pytest"},
        },
    )

    output = stream.getvalue()
    assert "Bearer abc" not in output
    assert "pytest" in output


def test_request_id_attached_from_context():
    logger, stream = _build_logger("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"
