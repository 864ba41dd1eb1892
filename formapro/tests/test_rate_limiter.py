"""
Tests for the idle-window rate limiter and the failed-login throttle.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from formapro.common.error_handling import RateLimitError
from formapro.common.rate_limiter import LoginThrottle, RateLimiter


@pytest.mark.asyncio
async def test_in_memory_counter_counts_and_resets():
    limiter = RateLimiter()

    assert await limiter.current("k", 60) == (0, None)
    assert await limiter.hit("k", 60) == 1
    assert await limiter.hit("k", 60) == 2

    count, reset_in = await limiter.current("k", 60)
    assert count == 2
    assert 1 <= reset_in <= 60

    await limiter.reset("k", 60)
    assert await limiter.current("k", 60) == (0, None)


@pytest.mark.asyncio
async def test_in_memory_window_expires(monkeypatch):
    clock = SimpleNamespace(now=1000.0)
    monkeypatch.setattr("formapro.common.rate_limiter.time.time", lambda: clock.now)
    limiter = RateLimiter()

    await limiter.hit("k", 60)
    clock.now += 61

    assert await limiter.current("k", 60) == (0, None)
    assert await limiter.hit("k", 60) == 1


@pytest.mark.asyncio
async def test_each_hit_restarts_the_window(monkeypatch):
    clock = SimpleNamespace(now=1000.0)
    monkeypatch.setattr("formapro.common.rate_limiter.time.time", lambda: clock.now)
    limiter = RateLimiter()

    await limiter.hit("k", 60)
    clock.now += 50
    await limiter.hit("k", 60)
    clock.now += 50

    assert await limiter.current("k", 60) == (2, 10)
    assert await limiter.hit("k", 60) == 3


@pytest.mark.asyncio
async def test_redis_backend_refreshes_expiry_on_every_hit():
    redis = AsyncMock()
    redis.incr.side_effect = [1, 2]
    limiter = RateLimiter(redis)

    assert await limiter.hit("k", 900) == 1
    assert await limiter.hit("k", 900) == 2

    redis.incr.assert_awaited_with("rate_limit:k:900")
    assert redis.expire.await_count == 2
    redis.expire.assert_awaited_with("rate_limit:k:900", 900)


@pytest.mark.asyncio
async def test_redis_backend_reads_counter_and_ttl():
    redis = AsyncMock()
    redis.get.return_value = b"3"
    redis.ttl.return_value = 120
    limiter = RateLimiter(redis)

    assert await limiter.current("k", 900) == (3, 120)


@pytest.mark.asyncio
async def test_redis_failure_falls_back_to_local_storage():
    redis = AsyncMock()
    redis.incr.side_effect = ConnectionError("redis down")
    limiter = RateLimiter(redis)

    assert await limiter.hit("k", 60) == 1
    assert await limiter.hit("k", 60) == 2


def make_request(ip="10.0.0.1", forwarded=None):
    headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    return SimpleNamespace(headers=headers, client=SimpleNamespace(host=ip))


def test_client_key_ignores_forwarded_header_from_untrusted_peers():
    throttle = LoginThrottle(RateLimiter())

    assert throttle.client_key(make_request()) == "login:10.0.0.1"
    assert throttle.client_key(make_request(forwarded="1.2.3.4")) == "login:10.0.0.1"


def test_client_key_reads_forwarded_header_behind_trusted_proxy():
    throttle = LoginThrottle(RateLimiter(), trusted_proxies=["10.0.0.1", "10.0.0.2"])

    assert throttle.client_key(make_request(forwarded="1.2.3.4")) == "login:1.2.3.4"
    # A spoofed leading entry is skipped; the last untrusted hop is the client.
    assert throttle.client_key(make_request(forwarded="6.6.6.6, 1.2.3.4, 10.0.0.2")) == "login:1.2.3.4"
    assert throttle.client_key(make_request(ip="10.9.9.9", forwarded="1.2.3.4")) == "login:10.9.9.9"


@pytest.mark.asyncio
async def test_throttle_window_follows_the_last_failure(monkeypatch):
    clock = SimpleNamespace(now=0.0)
    monkeypatch.setattr("formapro.common.rate_limiter.time.time", lambda: clock.now)
    throttle = LoginThrottle(RateLimiter(), max_attempts=5, window_seconds=900)

    await throttle.register_failure("login:ip")
    clock.now = 850
    for _ in range(4):
        await throttle.register_failure("login:ip")
    clock.now = 910

    with pytest.raises(RateLimitError):
        await throttle.ensure_allowed("login:ip")

    clock.now = 850 + 901
    await throttle.ensure_allowed("login:ip")


@pytest.mark.asyncio
async def test_throttle_refuses_after_max_failures():
    throttle = LoginThrottle(RateLimiter(), max_attempts=3, window_seconds=900)

    for _ in range(3):
        await throttle.ensure_allowed("login:ip")
        await throttle.register_failure("login:ip")

    with pytest.raises(RateLimitError) as exc_info:
        await throttle.ensure_allowed("login:ip")

    assert "15 minutes" in exc_info.value.message
    assert exc_info.value.retry_after is not None


@pytest.mark.asyncio
async def test_throttle_reset_clears_failures():
    throttle = LoginThrottle(RateLimiter(), max_attempts=2)

    await throttle.register_failure("login:ip")
    await throttle.register_failure("login:ip")
    await throttle.reset("login:ip")

    await throttle.ensure_allowed("login:ip")
