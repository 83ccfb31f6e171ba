"""
Unit tests for RateLimiter and its backends
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.adapter.services.rate_limiter_backends import (
    InMemoryRateLimiterBackend,
    RedisRateLimiterBackend,
)
from src.app.services.rate_limiter import RateLimiter
from src.domain.exceptions import RateLimiterUnavailable


@pytest.mark.asyncio
async def test_sixth_request_in_window_is_denied(rate_limiter, clock):
    decisions = []
    for _ in range(6):
        decisions.append(await rate_limiter.check_and_record("reset_ip:198.51.100.1", 5))
        clock.advance(1)

    assert [d.allowed for d in decisions] == [True] * 5 + [False]
    assert decisions[4].remaining == 0
    assert decisions[5].count == 6


@pytest.mark.asyncio
async def test_window_slides_and_resets(rate_limiter, clock):
    for _ in range(5):
        await rate_limiter.check_and_record("k", 5)

    clock.advance(15 * 60 + 1)
    decision = await rate_limiter.check_and_record("k", 5)

    assert decision.allowed is True
    assert decision.count == 1


@pytest.mark.asyncio
async def test_denied_attempts_keep_key_blocked(rate_limiter, clock):
    for _ in range(5):
        await rate_limiter.check_and_record("k", 5)
    clock.advance(10 * 60)
    await rate_limiter.check_and_record("k", 5)  # denied but recorded

    # the first five have left the window, the denied one has not
    clock.advance(5 * 60 + 1)
    decision = await rate_limiter.check_and_record("k", 5)

    assert decision.count == 2


@pytest.mark.asyncio
async def test_reset_at_is_when_oldest_entry_leaves(rate_limiter, clock):
    start = clock.now
    await rate_limiter.check_and_record("k", 5)
    clock.advance(30)
    decision = await rate_limiter.check_and_record("k", 5)

    assert decision.reset_at == start + 15 * 60


@pytest.mark.asyncio
async def test_password_reset_email_limit_independent_of_ip(rate_limiter):
    results = []
    for i in range(4):
        results.append(
            await rate_limiter.check_password_reset(f"10.0.0.{i}", "jane.doe@example.com")
        )

    assert [r.allowed for r in results] == [True, True, True, False]
    assert results[3].by_origin.allowed is True
    assert results[3].by_identity.allowed is False


@pytest.mark.asyncio
async def test_password_reset_records_both_keys_even_when_one_denies(rate_limiter):
    for i in range(3):
        await rate_limiter.check_password_reset("10.0.0.9", f"user{i}@example.com")
    for _ in range(3):
        await rate_limiter.check_password_reset("10.0.0.9", "same@example.com")

    decision = await rate_limiter.check_password_reset("10.0.0.10", "same@example.com")

    # all 3 earlier attempts count for the email, including the one the IP denied
    assert decision.by_identity.count == 4
    assert decision.allowed is False


@pytest.mark.asyncio
async def test_login_limits_use_their_own_keys(rate_limiter):
    for _ in range(3):
        await rate_limiter.check_password_reset("10.0.0.1", "jane.doe@example.com")

    decision = await rate_limiter.check_login("10.0.0.1", "jane.doe@example.com")

    assert decision.allowed is True
    assert decision.by_identity.count == 1


def test_backoff_doubles_and_caps():
    limiter = RateLimiter(InMemoryRateLimiterBackend(), jitter=lambda: 0.0)

    assert [limiter.compute_backoff(n) for n in (1, 2, 3, 4, 5, 6, 7)] == [
        1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0,
    ]
    assert limiter.compute_backoff(10_000) == 30.0
    assert limiter.compute_backoff(0) == 0.0


def test_backoff_jitter_is_bounded():
    limiter = RateLimiter(InMemoryRateLimiterBackend(), jitter=lambda: 1.0)

    assert limiter.compute_backoff(3) == pytest.approx(4.4)
    assert limiter.compute_backoff(5) == pytest.approx(17.6)
    assert limiter.compute_backoff(6) == 30.0


@pytest.mark.asyncio
async def test_backoff_delay_grows_per_origin(rate_limiter):
    first = await rate_limiter.backoff_delay("10.0.0.1")
    second = await rate_limiter.backoff_delay("10.0.0.1")
    other = await rate_limiter.backoff_delay("10.0.0.2")

    assert (first, second, other) == (1.0, 2.0, 1.0)


@pytest.mark.asyncio
async def test_backend_failure_fails_closed(clock):
    backend = MagicMock()
    backend.hit = AsyncMock(side_effect=RateLimiterUnavailable("down"))
    backend.incr_counter = AsyncMock(side_effect=RateLimiterUnavailable("down"))
    limiter = RateLimiter(backend, clock=clock)

    decision = await limiter.check_password_reset("10.0.0.1", "jane.doe@example.com")

    assert decision.allowed is False
    assert await limiter.backoff_delay("10.0.0.1") == limiter.backoff_max_seconds


@pytest.mark.asyncio
async def test_redis_backend_maps_errors_to_unavailable():
    client = MagicMock()
    client.register_script = MagicMock(
        return_value=AsyncMock(side_effect=RedisConnectionError("connection refused"))
    )
    backend = RedisRateLimiterBackend("redis://unused", client=client)

    with pytest.raises(RateLimiterUnavailable):
        await backend.hit("k", 5, 900, 1_700_000_000.0)


@pytest.mark.asyncio
async def test_redis_backend_decision_from_script_result():
    client = MagicMock()
    script = AsyncMock(return_value=[6, "1700000000000"])
    client.register_script = MagicMock(return_value=script)
    backend = RedisRateLimiterBackend("redis://unused", client=client)

    decision = await backend.hit("reset_ip:10.0.0.1", 5, 900, 1_700_000_100.0)

    assert decision.allowed is False
    assert decision.count == 6
    assert decision.remaining == 0
    assert decision.reset_at == 1_700_000_900.0
    kwargs = script.await_args.kwargs
    assert kwargs["keys"] == ["reset_ip:10.0.0.1"]
    assert kwargs["args"][:2] == [1_700_000_100_000, 900_000]


@pytest.mark.asyncio
async def test_memory_backend_evicts_keys_outside_window():
    backend = InMemoryRateLimiterBackend()
    for i in range(10_000):
        await backend.hit(f"reset_email:user{i}@example.com", 3, 900, float(i))

    await backend.hit("reset_email:late@example.com", 3, 900, 10_000_000.0)

    assert list(backend._logs) == ["reset_email:late@example.com"]


@pytest.mark.asyncio
async def test_memory_backend_keeps_keys_still_in_window():
    backend = InMemoryRateLimiterBackend(sweep_interval_seconds=0)
    await backend.hit("reset_ip:10.0.0.1", 5, 900, 1000.0)

    decision = await backend.hit("reset_ip:10.0.0.2", 5, 900, 1800.0)
    again = await backend.hit("reset_ip:10.0.0.1", 5, 900, 1850.0)

    assert decision.count == 1
    assert again.count == 2
    assert set(backend._logs) == {"reset_ip:10.0.0.1", "reset_ip:10.0.0.2"}


@pytest.mark.asyncio
async def test_memory_backend_drops_expired_counters():
    now = [0.0]
    backend = InMemoryRateLimiterBackend(monotonic=lambda: now[0])
    for i in range(100):
        await backend.incr_counter(f"backoff:10.0.0.{i}", 3600)

    now[0] = 3601.0
    value = await backend.incr_counter("backoff:10.0.0.1", 3600)

    assert value == 1
    assert list(backend._counters) == ["backoff:10.0.0.1"]
