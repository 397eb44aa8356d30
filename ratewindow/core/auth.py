"""Caller identity resolution from API keys.

A caller presenting a configured ``X-API-Key`` is *identified*; everyone else
is *anonymous*. Identity only selects which quota a request is charged to,
so resolution never rejects a request: a missing or unknown key degrades to
an anonymous caller, keyed by network origin.

The subject id of an identified caller is a stable digest of the key, so the
same caller maps to the same quota from any network without the raw secret
ever reaching the store or the logs.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Union

from ratewindow.core.config import settings
from ratewindow.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identified:
    """Caller that authenticated; quota travels with ``subject_id``."""

    subject_id: str


@dataclass(frozen=True)
class Anonymous:
    """Caller without a valid credential; quota is tracked per origin."""


CallerIdentity = Union[Identified, Anonymous]


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 , key3 "))
        ['key1', 'key2', 'key3']
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def subject_id_for_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()[:32]


def validate_api_key(provided_key: str) -> str:
    """Validate a presented API key against the configured keys.

    Args:
        provided_key: API key to validate.

    Returns:
        The subject id derived from the key.

    Raises:
        AuthenticationAppError: If no keys are configured or the key is unknown.
    """
    valid_keys = parse_api_keys(settings.auth.api_keys)

    if not valid_keys:
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="No API keys are configured; callers cannot be identified",
            details={"hint": "Set API_KEYS to a comma-separated list of keys"},
        )

    if provided_key not in valid_keys:
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid API key",
            details={"actual_value": len(provided_key)},
        )

    return subject_id_for_api_key(provided_key)


def resolve_caller_identity(api_key: str | None) -> CallerIdentity:
    """Resolve the caller identity for rate limiting.

    Authentication failures are recovered here: the caller proceeds as
    ``Anonymous`` and is limited by origin instead.
    """
    if not api_key:
        return Anonymous()

    try:
        subject_id = validate_api_key(api_key)
    except AuthenticationAppError as exc:
        logger.warning(
            "auth.identity_fallback",
            extra={
                "reason": exc.code,
                "api_key_hash": hashlib.sha256(api_key.encode()).hexdigest()[:16],
            },
        )
        return Anonymous()

    logger.debug("auth.identified", extra={"subject_hash": subject_id[:16]})
    return Identified(subject_id=subject_id)
