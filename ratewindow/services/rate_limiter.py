"""Sliding-window rate limiter facade.

Composes the window store, key derivation and the degraded-mode policy into
the contract consumed by the HTTP layer:

- ``generate_key(identity, origin)``
- ``should_proceed(key)``
- ``get_remaining_requests_quota(key)``
- ``get_rate_limit()``

The limiter holds no counters of its own. All coordination happens in the
store, which runs prune/count/append atomically per key. The current time is
taken from the injected clock, not the store's; if that clock moves backward
fewer entries are pruned, which only makes the limiter stricter for a while.

When the store is unavailable the configured fallback decides: admit
everything and report the full limit, or reject everything as if the quota
were exhausted. Store failures never propagate to the caller.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from ratewindow.adapters.window_store.base import AbstractWindowStore
from ratewindow.core.auth import CallerIdentity
from ratewindow.core.errors import ConfigurationAppError, StoreUnavailableAppError
from ratewindow.core.keys import derive_rate_limit_key
from ratewindow.core.logging import hash_for_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LimiterConfig:
    """Immutable limiter configuration.

    Attributes:
        request_limit_per_window: Maximum admitted requests inside any window.
        window_size_ms: Sliding window length in milliseconds.
        allow_if_store_down: Degraded-mode policy when the store is unreachable.
    """

    request_limit_per_window: int
    window_size_ms: int
    allow_if_store_down: bool = False

    def __post_init__(self) -> None:
        if self.request_limit_per_window < 1:
            raise ConfigurationAppError(
                code="invalid_rate_limit",
                message="request_limit_per_window must be >= 1",
                details={"field": "request_limit_per_window", "actual_value": self.request_limit_per_window},
            )
        if self.window_size_ms < 1:
            raise ConfigurationAppError(
                code="invalid_rate_limit_window",
                message="window_size_ms must be >= 1",
                details={"field": "window_size_ms", "actual_value": self.window_size_ms},
            )


class SlidingWindowRateLimiter:
    """Distributed sliding-window limiter backed by a shared window store."""

    def __init__(
        self,
        config: LimiterConfig,
        store: AbstractWindowStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Immutable limiter configuration.
            store: Shared window store executing the atomic operations.
            clock: Time source returning UNIX time in seconds.
        """
        self._config = config
        self._store = store
        self._clock = clock

    @property
    def config(self) -> LimiterConfig:
        return self._config

    @property
    def store(self) -> AbstractWindowStore:
        return self._store

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def generate_key(self, identity: CallerIdentity, origin: str | None) -> str:
        return derive_rate_limit_key(identity, origin)

    def get_rate_limit(self) -> int:
        return self._config.request_limit_per_window

    def _log_degraded(self, operation: str, key: str, exc: StoreUnavailableAppError) -> None:
        logger.warning(
            "rate_limit.degraded",
            extra={
                "operation": operation,
                "key_hash": hash_for_log(key),
                "allow_if_store_down": self._config.allow_if_store_down,
                "error_code": exc.code,
                "backend": self._store.backend,
            },
        )

    async def should_proceed(self, key: str) -> bool:
        """Decide whether the request for ``key`` is admitted.

        An admitted request is recorded in the window. Store outages resolve
        through the degraded-mode policy instead of raising.
        """
        try:
            return await self._store.admit(
                key,
                self._now_ms(),
                self._config.window_size_ms,
                self._config.request_limit_per_window,
            )
        except StoreUnavailableAppError as exc:
            self._log_degraded("should_proceed", key, exc)
            return self._config.allow_if_store_down

    async def get_remaining_requests_quota(self, key: str) -> int:
        """Return how many more requests ``key`` may make in the current window.

        Reports the full limit when the store is down and the fallback admits,
        and 0 when it rejects.
        """
        try:
            return await self._store.remaining(
                key,
                self._now_ms(),
                self._config.window_size_ms,
                self._config.request_limit_per_window,
            )
        except StoreUnavailableAppError as exc:
            self._log_degraded("get_remaining_requests_quota", key, exc)
            if self._config.allow_if_store_down:
                return self._config.request_limit_per_window
            return 0
