import asyncio
import logging
import threading
import time
import uuid
from collections import deque
from typing import Deque, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.app.services.rate_limiter import IRateLimiterBackend, RateLimitDecision
from src.domain.exceptions import RateLimiterUnavailable

logger = logging.getLogger(__name__)


# KEYS[1] = sliding log key
# ARGV = now_ms, window_ms, member
# Trim, append, count, refresh expiry and read the oldest entry in one step.
SLIDING_LOG_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
redis.call('ZREMRANGEBYSCORE', key, '-inf', '(' .. (now - window))
redis.call('ZADD', key, now, ARGV[3])
local count = redis.call('ZCARD', key)
redis.call('PEXPIRE', key, window)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return {count, oldest[2]}
"""

# KEYS[1] = counter key, ARGV[1] = ttl seconds
COUNTER_SCRIPT = """
local value = redis.call('INCR', KEYS[1])
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
return value
"""


class RedisRateLimiterBackend(IRateLimiterBackend):
    """Sorted-set sliding log shared by every process talking to the same Redis"""

    def __init__(self, redis_url: str, timeout_seconds: float = 0.5, client=None):
        self.timeout_seconds = timeout_seconds
        self.client = client or aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        self._sliding_log = self.client.register_script(SLIDING_LOG_SCRIPT)
        self._counter = self.client.register_script(COUNTER_SCRIPT)

    async def _run(self, script, keys, args):
        try:
            return await asyncio.wait_for(
                script(keys=keys, args=args), timeout=self.timeout_seconds
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise RateLimiterUnavailable(str(e) or type(e).__name__) from e

    async def hit(
        self, key: str, max_requests: int, window_seconds: float, now: float
    ) -> RateLimitDecision:
        now_ms = int(now * 1000)
        window_ms = int(window_seconds * 1000)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        count, oldest = await self._run(
            self._sliding_log, [key], [now_ms, window_ms, member]
        )
        count = int(count)
        oldest_ms = float(oldest) if oldest is not None else now_ms

        return RateLimitDecision(
            allowed=count <= max_requests,
            count=count,
            remaining=max(0, max_requests - count),
            reset_at=(oldest_ms + window_ms) / 1000,
        )

    async def incr_counter(self, key: str, ttl_seconds: int) -> int:
        value = await self._run(self._counter, [key], [ttl_seconds])
        return int(value)

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryRateLimiterBackend(IRateLimiterBackend):
    """
    Single-process store: one deque of timestamps per key under a lock.

    Counts are per process, so this is only suitable for one worker or tests.
    Keys whose whole log has left the window, and expired counters, are
    swept at most once per sweep interval.
    """

    def __init__(self, monotonic=time.monotonic, sweep_interval_seconds: float = 60.0):
        self._logs: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, float] = {}
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._monotonic = monotonic
        self._sweep_interval = sweep_interval_seconds
        self._logs_swept_at: Optional[float] = None
        self._counters_swept_at: Optional[float] = None

    def _sweep_logs(self, now: float) -> None:
        if self._logs_swept_at is not None and now - self._logs_swept_at < self._sweep_interval:
            return
        self._logs_swept_at = now
        stale = [
            key
            for key, log in self._logs.items()
            if not log or log[-1] < now - self._windows.get(key, 0.0)
        ]
        for key in stale:
            del self._logs[key]
            self._windows.pop(key, None)

    def _sweep_counters(self, now: float) -> None:
        if (
            self._counters_swept_at is not None
            and now - self._counters_swept_at < self._sweep_interval
        ):
            return
        self._counters_swept_at = now
        for key in [k for k, (_, expires_at) in self._counters.items() if expires_at <= now]:
            del self._counters[key]

    async def hit(
        self, key: str, max_requests: int, window_seconds: float, now: float
    ) -> RateLimitDecision:
        with self._lock:
            self._sweep_logs(now)
            log = self._logs.setdefault(key, deque())
            self._windows[key] = window_seconds
            cutoff = now - window_seconds
            while log and log[0] < cutoff:
                log.popleft()
            log.append(now)
            count = len(log)
            oldest = log[0]

        return RateLimitDecision(
            allowed=count <= max_requests,
            count=count,
            remaining=max(0, max_requests - count),
            reset_at=oldest + window_seconds,
        )

    async def incr_counter(self, key: str, ttl_seconds: int) -> int:
        now = self._monotonic()
        with self._lock:
            self._sweep_counters(now)
            value, expires_at = self._counters.get(key, (0, 0.0))
            if expires_at <= now:
                value = 0
            value += 1
            self._counters[key] = (value, now + ttl_seconds)
        return value
