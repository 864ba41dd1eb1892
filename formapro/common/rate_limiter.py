"""
Rate Limiter Module

Keyed counters used to throttle failed logins per client IP. Every hit
pushes the expiry of its key a full period into the future, so a counter
only clears after a quiet period with no new hits. The counters live in
Redis when a client is configured, so several API instances share one
view, and in a process-local map otherwise.
"""

import time
from typing import Dict, Iterable, Optional, Tuple

from fastapi import Request
from redis.asyncio import Redis

from formapro.common.error_handling import RateLimitError
from formapro.common.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Idle-window counter store.

    Examples:
        limiter = RateLimiter()                 # in-memory
        limiter = RateLimiter(redis_client)     # shared across instances

        count = await limiter.hit("login:10.0.0.1", period=900)
        count, reset_in = await limiter.current("login:10.0.0.1", period=900)
        await limiter.reset("login:10.0.0.1", period=900)
    """

    def __init__(self, redis: Optional[Redis] = None, prefix: str = "rate_limit:"):
        """
        Initialize the rate limiter.

        Args:
            redis: Redis client instance (optional, uses in-memory if None)
            prefix: Key prefix for Redis storage
        """
        self.redis = redis
        self.prefix = prefix
        self.local_storage: Dict[str, Tuple[int, float]] = {}

    def _key(self, key: str, period: int) -> str:
        return f"{self.prefix}{key}:{period}"

    async def hit(self, key: str, period: int) -> int:
        """Increment the counter for ``key``, restart its expiry and return the new value."""
        storage_key = self._key(key, period)

        if self.redis is not None:
            try:
                current = await self.redis.incr(storage_key)
                await self.redis.expire(storage_key, period)
                return int(current)
            except Exception as e:
                logger.error(f"Redis rate limit error: {str(e)}")

        now = time.time()
        count, expire_time = self.local_storage.get(storage_key, (0, now))
        if now > expire_time:
            count = 0
        self.local_storage[storage_key] = (count + 1, now + period)
        return count + 1

    async def current(self, key: str, period: int) -> Tuple[int, Optional[int]]:
        """
        Read the counter without incrementing it.

        Returns:
            Tuple of (count, seconds until the window resets or None when empty)
        """
        storage_key = self._key(key, period)

        if self.redis is not None:
            try:
                raw = await self.redis.get(storage_key)
                count = int(raw or 0)
                if count == 0:
                    return 0, None
                ttl = await self.redis.ttl(storage_key)
                return count, max(1, int(ttl))
            except Exception as e:
                logger.error(f"Redis rate limit error: {str(e)}")

        self._clean_expired_local()
        entry = self.local_storage.get(storage_key)
        if entry is None:
            return 0, None
        count, expire_time = entry
        return count, max(1, int(expire_time - time.time()))

    async def reset(self, key: str, period: int) -> None:
        """Forget the counter for ``key``."""
        storage_key = self._key(key, period)

        if self.redis is not None:
            try:
                await self.redis.delete(storage_key)
            except Exception as e:
                logger.error(f"Redis rate limit error: {str(e)}")

        self.local_storage.pop(storage_key, None)

    def _clean_expired_local(self) -> None:
        """Remove expired entries from local storage."""
        now = time.time()
        keys_to_remove = [
            key for key, (_, expire_time) in self.local_storage.items()
            if now > expire_time
        ]
        for key in keys_to_remove:
            del self.local_storage[key]


class LoginThrottle:
    """
    Failed-login throttle on top of a :class:`RateLimiter`.

    A client may fail ``max_attempts`` times; further login requests are
    refused before credentials are checked until ``window_seconds`` pass
    without a new failure. A successful login clears the counter.

    Clients are identified by their socket address. ``X-Forwarded-For`` is
    only read when the request arrives from one of ``trusted_proxies``.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        max_attempts: int = 5,
        window_seconds: int = 900,
        trusted_proxies: Iterable[str] = (),
    ):
        self.limiter = limiter
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.trusted_proxies = frozenset(trusted_proxies)

    def client_key(self, request: Request) -> str:
        """Counter key for the client that sent ``request``."""
        ip = request.client.host if request.client else "unknown"
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded and ip in self.trusted_proxies:
            # Walk back from the nearest hop; the first untrusted address is the client.
            hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
            for hop in reversed(hops):
                ip = hop
                if hop not in self.trusted_proxies:
                    break
        return f"login:{ip}"

    async def ensure_allowed(self, key: str) -> None:
        count, reset_in = await self.limiter.current(key, self.window_seconds)
        if count >= self.max_attempts:
            logger.warning(f"Login throttled for {key} ({count} failed attempts)")
            minutes = max(1, round(self.window_seconds / 60))
            raise RateLimitError(
                f"Too many login attempts. Try again in {minutes} minutes.",
                retry_after=reset_in
            )

    async def register_failure(self, key: str) -> int:
        return await self.limiter.hit(key, self.window_seconds)

    async def reset(self, key: str) -> None:
        await self.limiter.reset(key, self.window_seconds)
