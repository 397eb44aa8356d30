from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ratewindow.core.rate_limit import RateLimitDecision, enforce_rate_limit, get_rate_limiter
from ratewindow.schemas.quota import QuotaResponse

router = APIRouter(tags=["Quota"])


@router.get("/quota", response_model=QuotaResponse)
async def read_quota(
    decision: Annotated[RateLimitDecision | None, Depends(enforce_rate_limit)],
) -> QuotaResponse:
    """Report the caller's sliding-window quota.

    The request itself is rate limited, so the response carries the
    ``X-RateLimit-*`` headers and a caller over quota receives HTTP 429.
    When rate limiting is disabled the full configured limit is reported.
    """
    limiter = await get_rate_limiter()

    if decision is None:
        return QuotaResponse(
            limit=limiter.get_rate_limit(),
            remaining=limiter.get_rate_limit(),
            window_ms=limiter.config.window_size_ms,
            key_type="unknown",
        )

    return QuotaResponse(
        limit=decision.limit,
        remaining=decision.remaining,
        window_ms=limiter.config.window_size_ms,
        key_type=decision.key_type,
    )
