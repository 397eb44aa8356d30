"""Rate limiting dependency for FastAPI routes.

This module wires the sliding-window limiter into the HTTP layer.

Per request it:
1. Resolves the caller identity from ``X-API-Key`` (failures fall back to
   anonymous, keyed by client address).
2. Derives the rate limit key.
3. Reads the remaining quota, then asks the limiter for an admission decision,
   so ``X-RateLimit-Remaining`` reflects the state before this request.
4. Sets ``X-RateLimit-Limit`` / ``X-RateLimit-Remaining`` on the response, or
   raises HTTP 429 carrying the same headers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Header, HTTPException, Request, Response, status

from ratewindow.adapters.window_store import (
    AbstractWindowStore,
    InMemoryWindowStore,
    RedisWindowStore,
)
from ratewindow.core.auth import resolve_caller_identity
from ratewindow.core.config import settings
from ratewindow.core.keys import key_type as key_type_of
from ratewindow.core.logging import hash_for_log
from ratewindow.services.rate_limiter import LimiterConfig, SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_EXCEEDED_DETAIL = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of the rate limit check for one request.

    Attributes:
        allowed: Whether the request was admitted.
        limit: Configured requests per window.
        remaining: Quota reported before this request's own admission.
        key_type: ``user`` for identified callers, ``ip`` otherwise.
    """

    allowed: bool
    limit: int
    remaining: int
    key_type: str


_limiter: SlidingWindowRateLimiter | None = None
_limiter_signature: tuple[LimiterConfig, str] | None = None


def build_limiter_config() -> LimiterConfig:
    """Build the limiter configuration from settings.

    ``RATE_LIMIT_WINDOW_MS`` is expressed in seconds and converted here.
    """
    cfg = settings.rate_limit
    return LimiterConfig(
        request_limit_per_window=cfg.requests_limit_per_window,
        window_size_ms=cfg.rate_limit_window_ms * 1000,
        allow_if_store_down=cfg.allow_requests_if_redis_down,
    )


def build_window_store(backend: str) -> AbstractWindowStore:
    if backend == "memory":
        return InMemoryWindowStore()
    return RedisWindowStore.from_settings(settings.redis)


async def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Return the process-wide rate limiter instance.

    The limiter and its store are created on first use and cached so the
    store connection is reused across requests. If configuration changes
    (primarily in tests), the previous store is closed and the limiter is
    rebuilt.
    """

    global _limiter, _limiter_signature

    signature = (build_limiter_config(), settings.rate_limit.rate_limit_backend)

    if _limiter is None or _limiter_signature != signature:
        if _limiter is not None:
            await _limiter.store.close()
        _limiter = SlidingWindowRateLimiter(signature[0], build_window_store(signature[1]))
        _limiter_signature = signature
        logger.info(
            "rate_limit.limiter_created",
            extra={
                "limit": signature[0].request_limit_per_window,
                "window_ms": signature[0].window_size_ms,
                "allow_if_store_down": signature[0].allow_if_store_down,
                "backend": signature[1],
            },
        )

    return _limiter


async def close_rate_limiter() -> None:
    """Close the cached limiter's store and drop the instance."""

    global _limiter, _limiter_signature

    if _limiter is not None:
        await _limiter.store.close()
    _limiter = None
    _limiter_signature = None


def _rate_limit_headers(limit: int, remaining: int) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(max(remaining, 0)),
    }


async def enforce_rate_limit(
    request: Request,
    response: Response,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> RateLimitDecision | None:
    """FastAPI dependency enforcing the sliding-window quota.

    Returns:
        RateLimitDecision for admitted requests, or None when rate limiting
        is disabled.

    Raises:
        HTTPException: 429 Too Many Requests when the request is rejected,
            either because the quota is exhausted or because the store is
            down and the fallback policy rejects.
    """

    if not settings.rate_limit.rate_limit_enabled:
        return None

    limiter = await get_rate_limiter()
    identity = resolve_caller_identity(x_api_key)
    origin = request.client.host if request.client else None
    key = limiter.generate_key(identity, origin)

    remaining = await limiter.get_remaining_requests_quota(key)
    allowed = await limiter.should_proceed(key)
    decision = RateLimitDecision(
        allowed=allowed,
        limit=limiter.get_rate_limit(),
        remaining=remaining,
        key_type=key_type_of(key),
    )
    headers = _rate_limit_headers(decision.limit, decision.remaining)

    log_extra = {
        "key_type": decision.key_type,
        "key_hash": hash_for_log(key),
        "limit": decision.limit,
        "remaining": decision.remaining,
        "window_ms": limiter.config.window_size_ms,
    }

    if decision.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
        response.headers.update(headers)
        return decision

    logger.warning("rate_limit.exceeded", extra=log_extra)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RATE_LIMIT_EXCEEDED_DETAIL,
        headers=headers,
    )
