"""Shared window store adapters.

The limiter depends on ``AbstractWindowStore`` only, so the Redis backend used
in production and the in-memory backend used for local runs and tests are
interchangeable.
"""

from __future__ import annotations

from ratewindow.adapters.window_store.base import AbstractWindowStore
from ratewindow.adapters.window_store.in_memory import InMemoryWindowStore
from ratewindow.adapters.window_store.redis_store import RedisWindowStore

__all__ = ["AbstractWindowStore", "InMemoryWindowStore", "RedisWindowStore"]
