"""Unit tests for the sliding-window limiter facade and its degraded mode."""

import pytest

from ratewindow.adapters.window_store.in_memory import InMemoryWindowStore
from ratewindow.core.auth import Anonymous, Identified
from ratewindow.core.errors import ConfigurationAppError
from ratewindow.services.rate_limiter import LimiterConfig, SlidingWindowRateLimiter


def _limiter(
    clock,
    *,
    limit: int = 3,
    window_ms: int = 1000,
    allow_if_store_down: bool = False,
    store=None,
) -> SlidingWindowRateLimiter:
    config = LimiterConfig(
        request_limit_per_window=limit,
        window_size_ms=window_ms,
        allow_if_store_down=allow_if_store_down,
    )
    return SlidingWindowRateLimiter(config, store or InMemoryWindowStore(), clock=clock)


class TestLimiterConfig:
    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"request_limit_per_window": 0, "window_size_ms": 1000}, "invalid_rate_limit"),
            ({"request_limit_per_window": -5, "window_size_ms": 1000}, "invalid_rate_limit"),
            ({"request_limit_per_window": 1, "window_size_ms": 0}, "invalid_rate_limit_window"),
        ],
    )
    def test_rejects_non_positive_values(self, kwargs: dict, code: str) -> None:
        with pytest.raises(ConfigurationAppError) as exc_info:
            LimiterConfig(**kwargs)

        assert exc_info.value.code == code

    def test_is_immutable(self) -> None:
        config = LimiterConfig(request_limit_per_window=1, window_size_ms=1)

        with pytest.raises(AttributeError):
            config.request_limit_per_window = 2  # type: ignore[misc]

    def test_store_down_policy_defaults_to_reject(self) -> None:
        assert LimiterConfig(request_limit_per_window=1, window_size_ms=1).allow_if_store_down is False


class TestSlidingWindowScenario:
    @pytest.mark.asyncio
    async def test_documented_walkthrough(self, fake_clock) -> None:
        limiter = _limiter(fake_clock, limit=3, window_ms=1000)
        key = limiter.generate_key(Anonymous(), "203.0.113.7")

        observed = []
        for t in (0, 100, 200, 300):
            fake_clock.set_ms(t)
            remaining = await limiter.get_remaining_requests_quota(key)
            observed.append((remaining, await limiter.should_proceed(key)))

        assert observed == [(3, True), (2, True), (1, True), (0, False)]

        # Entries at 0 and 100 are now strictly older than the window.
        fake_clock.set_ms(1101)
        assert await limiter.get_remaining_requests_quota(key) == 2
        assert await limiter.should_proceed(key) is True
        assert await limiter.get_remaining_requests_quota(key) == 1

    @pytest.mark.asyncio
    async def test_uses_injected_clock_in_milliseconds(self, fake_clock) -> None:
        store = InMemoryWindowStore()
        limiter = _limiter(fake_clock, store=store)
        fake_clock.set_ms(1_700_000_000_123)

        await limiter.should_proceed("k")

        assert store.snapshot("k") == [1_700_000_000_123]

    def test_get_rate_limit_returns_configured_limit(self, fake_clock) -> None:
        assert _limiter(fake_clock, limit=42).get_rate_limit() == 42


class TestKeyGeneration:
    def test_same_subject_shares_key_across_origins(self, fake_clock) -> None:
        limiter = _limiter(fake_clock)
        identity = Identified(subject_id="abc")

        assert limiter.generate_key(identity, "10.0.0.1") == limiter.generate_key(identity, "192.0.2.9")

    def test_anonymous_origins_get_distinct_keys(self, fake_clock) -> None:
        limiter = _limiter(fake_clock)

        assert limiter.generate_key(Anonymous(), "10.0.0.1") != limiter.generate_key(Anonymous(), "10.0.0.2")

    @pytest.mark.asyncio
    async def test_authenticated_subject_shares_quota(self, fake_clock) -> None:
        limiter = _limiter(fake_clock, limit=2)
        identity = Identified(subject_id="abc")

        assert await limiter.should_proceed(limiter.generate_key(identity, "10.0.0.1")) is True
        assert await limiter.should_proceed(limiter.generate_key(identity, "10.0.0.2")) is True
        assert await limiter.should_proceed(limiter.generate_key(identity, "10.0.0.3")) is False

        # A different origin without credentials has its own quota.
        assert await limiter.should_proceed(limiter.generate_key(Anonymous(), "10.0.0.1")) is True


class TestDegradedMode:
    @pytest.mark.asyncio
    async def test_store_down_with_allow_admits_and_reports_full_limit(self, fake_clock, unavailable_store) -> None:
        limiter = _limiter(fake_clock, limit=5, allow_if_store_down=True, store=unavailable_store)

        for _ in range(10):
            assert await limiter.get_remaining_requests_quota("k") == 5
            assert await limiter.should_proceed("k") is True

        assert unavailable_store.calls == 20

    @pytest.mark.asyncio
    async def test_store_down_without_allow_rejects_everything(self, fake_clock, unavailable_store) -> None:
        limiter = _limiter(fake_clock, limit=5, store=unavailable_store)

        for _ in range(3):
            assert await limiter.get_remaining_requests_quota("k") == 0
            assert await limiter.should_proceed("k") is False

    @pytest.mark.asyncio
    async def test_degraded_decision_is_logged(self, fake_clock, unavailable_store, caplog) -> None:
        limiter = _limiter(fake_clock, store=unavailable_store)

        with caplog.at_level("WARNING", logger="ratewindow.services.rate_limiter"):
            await limiter.should_proceed("rate_limit:ip:10.0.0.1")

        records = [r for r in caplog.records if r.getMessage() == "rate_limit.degraded"]
        assert len(records) == 1
        assert records[0].operation == "should_proceed"
        assert records[0].allow_if_store_down is False
        assert "10.0.0.1" not in records[0].key_hash
