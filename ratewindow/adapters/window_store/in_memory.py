"""In-memory sliding-window store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: prune/count/append run under one lock, which gives the same
  per-key serial order the Redis scripts give across processes.
"""

from __future__ import annotations

import threading
from collections import deque

from ratewindow.adapters.window_store.base import AbstractWindowStore


def prune_expired(entries: deque[int], now_ms: int, window_ms: int) -> None:
    """Drop entries from the head while they are strictly older than the window."""
    while entries and now_ms - entries[0] > window_ms:
        entries.popleft()


class InMemoryWindowStore(AbstractWindowStore):
    """Window store holding one deque of timestamps per key.

    Keys whose deque becomes empty after pruning are removed, so an absent key
    and an empty record are indistinguishable, as in the Redis store.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries_by_key: dict[str, deque[int]] = {}

    def _pruned(self, key: str, now_ms: int, window_ms: int) -> deque[int]:
        entries = self._entries_by_key.get(key)
        if entries is None:
            return deque()
        prune_expired(entries, now_ms, window_ms)
        if not entries:
            del self._entries_by_key[key]
        return entries

    async def admit(self, key: str, now_ms: int, window_ms: int, limit: int) -> bool:
        with self._lock:
            entries = self._pruned(key, now_ms, window_ms)
            if len(entries) < limit:
                entries.append(now_ms)
                self._entries_by_key[key] = entries
                return True
            return False

    async def remaining(self, key: str, now_ms: int, window_ms: int, limit: int) -> int:
        with self._lock:
            entries = self._pruned(key, now_ms, window_ms)
            return max(limit - len(entries), 0)

    async def ping(self) -> bool:
        return True

    def snapshot(self, key: str) -> list[int]:
        """Return a copy of the stored timestamps for ``key`` (oldest first)."""
        with self._lock:
            return list(self._entries_by_key.get(key, ()))
