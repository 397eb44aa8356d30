"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``ratewindow``, because
settings are read once at import time.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from ratewindow.adapters.window_store.base import AbstractWindowStore
from ratewindow.core.errors import StoreUnavailableAppError


class FakeClock:
    """Deterministic clock returning UNIX seconds, advanced in milliseconds."""

    def __init__(self, start_ms: int = 0) -> None:
        self.current_ms = start_ms

    def __call__(self) -> float:
        return self.current_ms / 1000

    def set_ms(self, value: int) -> None:
        self.current_ms = value


class UnavailableWindowStore(AbstractWindowStore):
    """Window store that fails every call, simulating a store outage."""

    backend = "unavailable"

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, operation: str) -> StoreUnavailableAppError:
        self.calls += 1
        return StoreUnavailableAppError(
            code="store_unavailable",
            message=f"Window store failed during {operation}",
            details={"operation": operation, "backend": self.backend},
        )

    async def admit(self, key: str, now_ms: int, window_ms: int, limit: int) -> bool:
        raise self._fail("admit")

    async def remaining(self, key: str, now_ms: int, window_ms: int, limit: int) -> int:
        raise self._fail("remaining")

    async def ping(self) -> bool:
        return False


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def unavailable_store() -> UnavailableWindowStore:
    return UnavailableWindowStore()


@pytest.fixture
def rate_limit_settings(monkeypatch):
    """Reset the cached limiter and pin rate limit settings for one test."""
    from ratewindow.core import rate_limit
    from ratewindow.core.config import settings

    monkeypatch.setattr(settings.rate_limit, "rate_limit_enabled", True)
    monkeypatch.setattr(settings.rate_limit, "rate_limit_backend", "memory")
    monkeypatch.setattr(settings.rate_limit, "requests_limit_per_window", 3)
    monkeypatch.setattr(settings.rate_limit, "rate_limit_window_ms", 60)
    monkeypatch.setattr(settings.rate_limit, "allow_requests_if_redis_down", False)
    monkeypatch.setattr(settings.auth, "api_keys", "test-api-key-123,test-api-key-456")
    monkeypatch.setattr(rate_limit, "_limiter", None)
    monkeypatch.setattr(rate_limit, "_limiter_signature", None)
    return settings.rate_limit
