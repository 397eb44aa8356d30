"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses map to an HTTP status (400, 403, 500, 503)
- Unexpected exceptions map to a generic 500 (safety net)
- All responses include request_id for tracing

Rate limit rejections are plain ``HTTPException(429)`` and are rendered by
FastAPI's default handler, so they never reach this module.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ratewindow.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    StoreUnavailableAppError,
)
from ratewindow.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, ConfigurationAppError):
        return 500
    if isinstance(exc, StoreUnavailableAppError):
        return 503
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with a consistent JSON envelope.

    Returns:
        JSONResponse shaped as ``{"error": {code, message, request_id, details?}}``.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and returns a generic message; no implementation
    details reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
