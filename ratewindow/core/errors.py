"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    actual_value: int
    operation: str
    backend: str
    timeout_ms: int
    error_type: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised when limiter configuration is invalid (fatal at startup)."""


class StoreUnavailableAppError(AppError):
    """Raised when the shared window store cannot serve a request."""


class AuthenticationAppError(AppError):
    """Raised when a presented credential does not identify a caller."""
