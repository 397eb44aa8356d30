"""JSON logging with request correlation and redaction of caller identifiers.

Rate limit keys embed a caller's address or API-key digest, and the auth
layer handles raw API keys. Both are stripped from log records by
``SensitiveDataFilter``; code that needs to correlate a key logs
``hash_for_log(key)`` instead.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

from ratewindow.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "[REDACTED]"

SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "api_key",
        "api_keys",
        "x-api-key",
        "authorization",
        "password",
        "redis_password",
        "rate_limit_key",
        "origin",
    }
)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_for_log(value: str) -> str:
    """Return a short, stable digest of ``value`` safe to put in logs."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v) for v in value)
    return value


def _record_extras(record: LogRecord) -> dict[str, Any]:
    """Return the ``extra`` fields of a record with sensitive values redacted."""
    extras = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    return _redact(extras)


class SensitiveDataFilter(logging.Filter):
    """Redact credentials and raw caller identifiers before any formatter runs."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _record_extras(record).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Format a LogRecord as a single JSON line."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(_record_extras(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/ratewindow.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Args:
        log_settings: Optional log settings; defaults to ``settings.log``.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # uvicorn installs its own handlers; keep its records out of the root one
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
