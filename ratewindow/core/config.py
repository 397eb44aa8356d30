"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings.
# Nested BaseSettings don't inherit env_file.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_rate_limit_settings() -> "RateLimitSettings":
    """Build rate limit settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return RateLimitSettings()  # type: ignore[call-arg]


def _build_redis_settings() -> "RedisSettings":
    return RedisSettings()  # type: ignore[call-arg]


def _build_auth_settings() -> "AuthSettings":
    return AuthSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class RateLimitSettings(BaseSettings):
    """Sliding-window limiter configuration.

    Field names map directly onto unprefixed environment variables
    (REQUESTS_LIMIT_PER_WINDOW, RATE_LIMIT_WINDOW_MS, ...).
    """

    requests_limit_per_window: int = Field(
        10,
        description="Maximum number of admitted requests per sliding window",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        60,
        description="Sliding window length in seconds (converted to ms by the limiter)",
        ge=1,
    )
    allow_requests_if_redis_down: bool = Field(
        False,
        description="Admit every request when the shared store is unreachable",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable the rate limiting dependency",
    )
    rate_limit_backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Window store backend (memory is single-process only)",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Connection parameters for the shared window store."""

    host: str = Field("localhost", description="Redis host")
    port: int = Field(6379, description="Redis port")
    db: int = Field(0, description="Redis logical database")
    password: str | None = Field(None, description="Redis password")
    timeout_ms: int = Field(
        500,
        description="Upper bound for a single store round-trip in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Caller identity configuration."""

    api_keys: str | None = Field(
        None,
        description="Comma-separated list of API keys that identify callers",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate log file at this size (0 disables rotation)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
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
    Raises validation errors on startup if settings are invalid, so a
    non-positive limit or window refuses to serve instead of disabling limiting.
    """

    app_env: str = APP_ENV
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
