"""Rate limit key derivation.

Identified callers are keyed by subject id, anonymous callers by normalized
network origin. The two live under separate namespaces so a subject id can
never collide with an address.
"""

from __future__ import annotations

import ipaddress

from ratewindow.core.auth import CallerIdentity, Identified

KEY_PREFIX = "rate_limit"
USER_NAMESPACE = "user"
IP_NAMESPACE = "ip"
UNKNOWN_ORIGIN = "unknown"


def normalize_origin(origin: str | None) -> str:
    """Normalize a client address so equivalent spellings share one key.

    IPv4-mapped IPv6 addresses collapse to IPv4 and IPv6 addresses are
    rendered in compressed form. Values that are not IP addresses (for
    example a unix socket peer) are lower-cased and kept.

    Examples:
        >>> normalize_origin("::ffff:10.0.0.1")
        '10.0.0.1'
        >>> normalize_origin("2001:DB8:0:0::1")
        '2001:db8::1'
        >>> normalize_origin(None)
        'unknown'
    """
    if origin is None:
        return UNKNOWN_ORIGIN

    candidate = origin.strip().strip("[]")
    if not candidate:
        return UNKNOWN_ORIGIN

    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return candidate.lower()

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return address.compressed


def derive_rate_limit_key(identity: CallerIdentity, origin: str | None) -> str:
    if isinstance(identity, Identified):
        return f"{KEY_PREFIX}:{USER_NAMESPACE}:{identity.subject_id}"
    return f"{KEY_PREFIX}:{IP_NAMESPACE}:{normalize_origin(origin)}"


def key_type(key: str) -> str:
    """Return the namespace (``user`` or ``ip``) of a derived key."""
    parts = key.split(":", 2)
    return parts[1] if len(parts) == 3 and parts[0] == KEY_PREFIX else "unknown"
