"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file; a plain .env is used
  when the environment-specific file is missing

Per-token overrides are discovered from variables named
``TOKEN_<token>_LIMIT`` (with optional ``TOKEN_<token>_WINDOW`` and
``TOKEN_<token>_BLOCK_TIME``).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}


def _resolve_env_file() -> str | None:
    candidates = [ENV_FILE_MAP.get(APP_ENV, ".env.development"), ".env"]
    for filename in candidates:
        path = PROJECT_ROOT / filename
        if path.is_file():
            return str(path)
    return None


_env_file = _resolve_env_file()

# Load .env file early to populate os.environ before creating nested settings.
# Token overrides are scanned from os.environ, so they need it too.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> float:
    """Parse a duration into seconds.

    Accepts numbers (seconds) and compact strings such as ``"1s"``,
    ``"250ms"``, ``"5m"`` or ``"1h30m"``.

    Examples:
        >>> parse_duration("1m30s")
        90.0
        >>> parse_duration("250ms")
        0.25
        >>> parse_duration(2)
        2.0

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower()
    if not text:
        raise ValueError("Duration must not be empty")

    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total


class PolicySettings(BaseModel):
    """Validated limit/window/block triple read from configuration."""

    limit: int = Field(..., ge=1)
    window_seconds: float = Field(..., gt=0)
    block_seconds: float = Field(..., ge=0)

    @field_validator("window_seconds", "block_seconds", mode="before")
    @classmethod
    def _parse_duration(cls, value: object) -> float:
        return parse_duration(value)  # type: ignore[arg-type]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings populates values from environment variables; static
    type checkers still see required constructor arguments.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_redis_settings() -> "RedisSettings":
    return RedisSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """HTTP service configuration."""

    host: str = Field("0.0.0.0", description="Interface the server binds to")
    port: int = Field(8080, description="Port the server listens on", ge=1, le=65535)
    token_header: str = Field(
        "API_KEY",
        description="Request header carrying the caller's API token",
    )
    store_backend: str = Field(
        "redis",
        description="Counter store backend: redis or memory",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("store_backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"redis", "memory"}:
            raise ValueError("store_backend must be 'redis' or 'memory'")
        return normalized


class RedisSettings(BaseSettings):
    """Redis connection configuration."""

    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
    )
    timeout_seconds: float = Field(
        5.0,
        description="Socket connect/read timeout for every Redis command",
        gt=0,
    )
    key_prefix: str = Field(
        "",
        description="Namespace prepended to every counter key",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Default IP and token policies.

    Durations accept seconds or compact strings (``1s``, ``5m``).
    """

    ip_rate_limit: int = Field(10, ge=1)
    ip_rate_window: float = Field(1.0, gt=0)
    ip_block_time: float = Field(300.0, ge=0)
    token_rate_limit: int = Field(100, ge=1)
    token_rate_window: float = Field(1.0, gt=0)
    token_block_time: float = Field(300.0, ge=0)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @field_validator(
        "ip_rate_window",
        "ip_block_time",
        "token_rate_window",
        "token_block_time",
        mode="before",
    )
    @classmethod
    def _parse_duration(cls, value: object) -> float:
        return parse_duration(value)  # type: ignore[arg-type]

    def ip_policy(self) -> PolicySettings:
        return PolicySettings(
            limit=self.ip_rate_limit,
            window_seconds=self.ip_rate_window,
            block_seconds=self.ip_block_time,
        )

    def token_policies(
        self, environ: Mapping[str, str] | None = None
    ) -> dict[str, PolicySettings]:
        """Discover per-token policies from the environment.

        Every ``TOKEN_<token>_LIMIT`` variable registers ``<token>`` (case
        preserved). Window and block time fall back to the ``TOKEN_RATE_*``
        defaults when their variables are absent.

        Args:
            environ: Mapping to scan; defaults to ``os.environ``.

        Returns:
            Mapping of token value to its validated policy.

        Raises:
            pydantic.ValidationError: If an override value is invalid.
        """
        env = os.environ if environ is None else environ
        policies: dict[str, PolicySettings] = {}

        for name, raw_limit in env.items():
            match = _TOKEN_LIMIT_VAR.match(name)
            if not match:
                continue
            token = match.group("token")
            if token.upper() == "RATE":
                # TOKEN_RATE_LIMIT is the default, not a token named RATE
                continue
            policies[token] = PolicySettings(
                limit=raw_limit,  # type: ignore[arg-type]
                window_seconds=env.get(f"TOKEN_{token}_WINDOW", self.token_rate_window),
                block_seconds=env.get(f"TOKEN_{token}_BLOCK_TIME", self.token_block_time),
            )

        return policies


_TOKEN_LIMIT_VAR = re.compile(r"^TOKEN_(?P<token>.+)_LIMIT$")


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if values are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    limits: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
