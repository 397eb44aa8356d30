"""Unit tests for the in-memory sliding-window store."""

import asyncio
import threading
from collections import deque

import pytest

from ratewindow.adapters.window_store.in_memory import InMemoryWindowStore, prune_expired

WINDOW_MS = 1000


@pytest.mark.asyncio
async def test_admits_up_to_limit_within_window() -> None:
    store = InMemoryWindowStore()

    results = [await store.admit("k", t, WINDOW_MS, 3) for t in (0, 10, 20)]

    assert results == [True, True, True]
    assert store.snapshot("k") == [0, 10, 20]


@pytest.mark.asyncio
async def test_rejects_request_over_limit_without_recording() -> None:
    store = InMemoryWindowStore()
    for t in (0, 10, 20):
        assert await store.admit("k", t, WINDOW_MS, 3) is True

    assert await store.admit("k", 30, WINDOW_MS, 3) is False
    assert store.snapshot("k") == [0, 10, 20]


@pytest.mark.asyncio
async def test_entry_exactly_window_old_still_counts() -> None:
    store = InMemoryWindowStore()
    assert await store.admit("k", 0, WINDOW_MS, 1) is True

    assert await store.admit("k", WINDOW_MS, WINDOW_MS, 1) is False
    assert await store.admit("k", WINDOW_MS + 1, WINDOW_MS, 1) is True
    assert store.snapshot("k") == [WINDOW_MS + 1]


@pytest.mark.asyncio
async def test_pruning_only_removes_expired_head_entries() -> None:
    store = InMemoryWindowStore()
    for t in (0, 500, 900):
        await store.admit("k", t, WINDOW_MS, 5)

    assert await store.remaining("k", 1600, WINDOW_MS, 5) == 4
    assert store.snapshot("k") == [900]


@pytest.mark.asyncio
async def test_remaining_never_appends_and_is_not_negative() -> None:
    store = InMemoryWindowStore()
    assert await store.remaining("k", 0, WINDOW_MS, 2) == 2
    assert store.snapshot("k") == []

    await store.admit("k", 0, WINDOW_MS, 2)
    await store.admit("k", 1, WINDOW_MS, 2)

    assert await store.remaining("k", 2, WINDOW_MS, 2) == 0
    # A lower limit than the stored entries still reports zero.
    assert await store.remaining("k", 2, WINDOW_MS, 1) == 0


@pytest.mark.asyncio
async def test_remaining_plus_admitted_equals_limit() -> None:
    store = InMemoryWindowStore()
    limit = 4
    admitted = 0

    for t in range(0, 700, 100):
        remaining = await store.remaining("k", t, WINDOW_MS, limit)
        assert remaining + admitted == limit
        if await store.admit("k", t, WINDOW_MS, limit):
            admitted += 1

    assert admitted == limit


@pytest.mark.asyncio
async def test_keys_are_isolated() -> None:
    store = InMemoryWindowStore()
    assert await store.admit("k1", 0, WINDOW_MS, 1) is True
    assert await store.admit("k1", 1, WINDOW_MS, 1) is False

    assert await store.admit("k2", 1, WINDOW_MS, 1) is True
    assert await store.remaining("k1", 2, WINDOW_MS, 1) == 0


@pytest.mark.asyncio
async def test_emptied_record_disappears() -> None:
    store = InMemoryWindowStore()
    await store.admit("k", 0, WINDOW_MS, 1)

    assert await store.remaining("k", 5000, WINDOW_MS, 1) == 1
    assert "k" not in store._entries_by_key


@pytest.mark.asyncio
async def test_backward_clock_prunes_nothing() -> None:
    store = InMemoryWindowStore()
    await store.admit("k", 5000, WINDOW_MS, 2)

    assert await store.remaining("k", 3000, WINDOW_MS, 2) == 1
    assert store.snapshot("k") == [5000]


@pytest.mark.asyncio
async def test_concurrent_admissions_never_exceed_limit() -> None:
    store = InMemoryWindowStore()

    results = await asyncio.gather(*(store.admit("k", 100, WINDOW_MS, 5) for _ in range(50)))

    assert results.count(True) == 5


def test_threaded_admissions_never_exceed_limit() -> None:
    store = InMemoryWindowStore()
    results: list[bool] = []
    results_lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            admitted = asyncio.run(store.admit("k", 100, WINDOW_MS, 7))
            with results_lock:
                results.append(admitted)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 80
    assert results.count(True) == 7


def test_prune_expired_stops_at_first_in_window_entry() -> None:
    entries = deque([0, 100, 2000, 50])

    prune_expired(entries, 1500, WINDOW_MS)

    assert list(entries) == [2000, 50]


@pytest.mark.asyncio
async def test_ping_is_always_true() -> None:
    assert await InMemoryWindowStore().ping() is True
