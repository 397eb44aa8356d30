from __future__ import annotations

from fastapi import APIRouter

from ratewindow.core.rate_limit import get_rate_limiter
from ratewindow.schemas.quota import ReadinessResponse

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check; never touches the window store."""

    return {"status": "ok"}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Readiness check querying the window store.

    An unreachable store is reported as ``degraded`` rather than failing the
    probe: requests are still served through the degraded-mode policy.
    """

    limiter = await get_rate_limiter()
    reachable = await limiter.store.ping()

    return ReadinessResponse(
        status="ok" if reachable else "degraded",
        store_backend=limiter.store.backend,
        store_reachable=reachable,
        allow_if_store_down=limiter.config.allow_if_store_down,
    )
