"""Redis-backed sliding-window store.

Each window record is a Redis LIST of epoch-millisecond timestamps. Pruning,
counting and appending run inside Lua scripts, so Redis executes every
operation on a key as one atomic unit across all service processes. Scripts
are registered once per client and invoked through ``EVALSHA`` (redis-py
reloads them transparently on ``NOSCRIPT``).

Every call is bounded by ``timeout_ms``; timeouts, connection errors and
script errors surface as ``StoreUnavailableAppError``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ratewindow.adapters.window_store.base import AbstractWindowStore
from ratewindow.core.config import RedisSettings
from ratewindow.core.errors import StoreUnavailableAppError
from ratewindow.core.logging import hash_for_log

logger = logging.getLogger(__name__)

_LUA_DIR = Path(__file__).resolve().parent / "lua"

ADMIT_SCRIPT = (_LUA_DIR / "admit.lua").read_text(encoding="utf-8")
REMAINING_SCRIPT = (_LUA_DIR / "remaining.lua").read_text(encoding="utf-8")

_STORE_ERRORS = (RedisError, asyncio.TimeoutError, OSError)


class RedisWindowStore(AbstractWindowStore):
    """Window store executing the sliding-window scripts in Redis.

    The client is created on first use unless one is injected, which keeps
    construction free of I/O and lets tests pass a mocked client.
    """

    backend = "redis"

    def __init__(
        self,
        client: Redis | None = None,
        *,
        redis_settings: RedisSettings | None = None,
        timeout_ms: int = 500,
    ) -> None:
        if timeout_ms < 1:
            raise ValueError("timeout_ms must be >= 1")

        self._client = client
        self._redis_settings = redis_settings
        self._timeout_s = timeout_ms / 1000
        self._admit_script: Any = None
        self._remaining_script: Any = None

    @classmethod
    def from_settings(cls, redis_settings: RedisSettings) -> "RedisWindowStore":
        return cls(redis_settings=redis_settings, timeout_ms=redis_settings.timeout_ms)

    def _get_client(self) -> Redis:
        if self._client is None:
            cfg = self._redis_settings or RedisSettings()  # type: ignore[call-arg]
            self._client = Redis(
                host=cfg.host,
                port=cfg.port,
                db=cfg.db,
                password=cfg.password,
                socket_timeout=self._timeout_s,
                socket_connect_timeout=self._timeout_s,
                decode_responses=True,
            )
            logger.info(
                "window_store.client_created",
                extra={"backend": self.backend, "host": cfg.host, "port": cfg.port, "db": cfg.db},
            )
        if self._admit_script is None:
            self._admit_script = self._client.register_script(ADMIT_SCRIPT)
            self._remaining_script = self._client.register_script(REMAINING_SCRIPT)
        return self._client

    async def _run(self, operation: str, script: Any, key: str, args: list[int]) -> Any:
        try:
            return await asyncio.wait_for(
                script(keys=[key], args=args),
                timeout=self._timeout_s,
            )
        except _STORE_ERRORS as exc:
            logger.warning(
                "window_store.unavailable",
                extra={
                    "backend": self.backend,
                    "operation": operation,
                    "key_hash": hash_for_log(key),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreUnavailableAppError(
                code="store_unavailable",
                message=f"Window store failed during {operation}",
                details={
                    "operation": operation,
                    "backend": self.backend,
                    "timeout_ms": int(self._timeout_s * 1000),
                    "error_type": type(exc).__name__,
                },
            ) from exc

    async def admit(self, key: str, now_ms: int, window_ms: int, limit: int) -> bool:
        self._get_client()
        result = await self._run("admit", self._admit_script, key, [now_ms, window_ms, limit])
        return int(result) == 1

    async def remaining(self, key: str, now_ms: int, window_ms: int, limit: int) -> int:
        self._get_client()
        result = await self._run("remaining", self._remaining_script, key, [now_ms, window_ms, limit])
        return max(int(result), 0)

    async def ping(self) -> bool:
        client = self._get_client()
        try:
            return bool(await asyncio.wait_for(client.ping(), timeout=self._timeout_s))
        except _STORE_ERRORS as exc:
            logger.warning(
                "window_store.ping_failed",
                extra={"backend": self.backend, "error_type": type(exc).__name__},
            )
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._admit_script = None
            self._remaining_script = None
