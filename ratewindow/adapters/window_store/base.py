"""Window store interface.

A window store keeps, per rate limit key, the ordered list of epoch-millisecond
timestamps of admitted requests (oldest first) and executes the sliding-window
operations against it atomically.

Both operations share the same pruning rule: while the oldest entry satisfies
``now_ms - oldest > window_ms`` it is removed. An entry exactly ``window_ms``
old is still inside the window.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractWindowStore(ABC):
    """Interface for shared sliding-window stores.

    Implementations must raise ``StoreUnavailableAppError`` for any
    connection, timeout or protocol failure so callers can tell an outage
    apart from an exhausted quota.
    """

    backend: str = "abstract"

    @abstractmethod
    async def admit(self, key: str, now_ms: int, window_ms: int, limit: int) -> bool:
        """Prune expired entries, then record ``now_ms`` if under ``limit``.

        Prune, count and append run as one indivisible unit with respect to
        every other operation on ``key``.

        Args:
            key: Rate limit key.
            now_ms: Caller-supplied current time in epoch milliseconds.
            window_ms: Sliding window length in milliseconds.
            limit: Maximum entries allowed inside the window.

        Returns:
            True if the request was admitted (and recorded), False otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    async def remaining(self, key: str, now_ms: int, window_ms: int, limit: int) -> int:
        """Prune expired entries and return ``max(limit - size, 0)``.

        Never appends an entry.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store is reachable."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release any held connections."""
        return None
