"""Pydantic schemas for quota and health responses."""

from typing import Literal

from pydantic import BaseModel, Field


class QuotaResponse(BaseModel):
    """Rate limit quota of the calling identity."""

    limit: int = Field(..., ge=1, description="Requests allowed per sliding window.")
    remaining: int = Field(
        ...,
        ge=0,
        description="Requests left in the window before this request was admitted.",
    )
    window_ms: int = Field(..., ge=1, description="Sliding window length in milliseconds.")
    key_type: Literal["user", "ip", "unknown"] = Field(
        ...,
        description="Whether the quota is tracked per authenticated subject or per client address.",
    )


class ReadinessResponse(BaseModel):
    """Readiness of the service and its window store."""

    status: Literal["ok", "degraded"]
    store_backend: str
    store_reachable: bool
    allow_if_store_down: bool
