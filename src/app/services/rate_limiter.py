"""
Rate Limiter

Sliding-log request counting over two independent keys (origin address and
account identity) plus progressive backoff for repeat offenders.
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from pydantic import BaseModel

from src.domain.exceptions import RateLimiterUnavailable

logger = logging.getLogger(__name__)


class RateLimitDecision(BaseModel):
    allowed: bool
    count: int
    remaining: int
    reset_at: float  # epoch seconds


class DualKeyDecision(BaseModel):
    """Outcome of checking the origin key and the identity key together"""

    allowed: bool
    by_origin: RateLimitDecision
    by_identity: RateLimitDecision


class IRateLimiterBackend(ABC):
    """Storage primitive behind the limiter. Each call must be atomic per key."""

    @abstractmethod
    async def hit(
        self, key: str, max_requests: int, window_seconds: float, now: float
    ) -> RateLimitDecision:
        """Record one attempt at `now` and evaluate the window it falls in"""
        pass

    @abstractmethod
    async def incr_counter(self, key: str, ttl_seconds: int) -> int:
        """Increment a plain counter, refreshing its expiry. Returns the new value."""
        pass

    async def close(self) -> None:
        pass


class RateLimiter:
    """
    Business Rules:
    - Every attempt is recorded, allowed or not, so hammering stays blocked
    - A request passes only when both its keys pass; both are always recorded
    - Backend failure denies (fail closed)
    - Backoff: min(base * 2^(n-1), cap) plus up to 10% jitter, never above cap
    """

    def __init__(
        self,
        backend: IRateLimiterBackend,
        window_minutes: int = 15,
        reset_max_per_ip: int = 5,
        reset_max_per_email: int = 3,
        login_max_per_ip: int = 20,
        login_max_per_identity: int = 10,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 30.0,
        backoff_reset_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        jitter: Callable[[], float] = random.random,
    ):
        self.backend = backend
        self.window_seconds = window_minutes * 60
        self.reset_max_per_ip = reset_max_per_ip
        self.reset_max_per_email = reset_max_per_email
        self.login_max_per_ip = login_max_per_ip
        self.login_max_per_identity = login_max_per_identity
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.backoff_reset_seconds = backoff_reset_seconds
        self.clock = clock
        self.jitter = jitter

    async def check_and_record(
        self, key: str, max_requests: int, window_seconds: Optional[float] = None
    ) -> RateLimitDecision:
        window = window_seconds if window_seconds is not None else self.window_seconds
        now = self.clock()
        try:
            return await self.backend.hit(key, max_requests, window, now)
        except RateLimiterUnavailable as e:
            logger.error(f"Rate limiter backend unavailable, denying {key.split(':', 1)[0]}: {e}")
            return RateLimitDecision(
                allowed=False, count=max_requests, remaining=0, reset_at=now + window
            )

    async def _check_pair(
        self, origin_key: str, max_origin: int, identity_key: str, max_identity: int
    ) -> DualKeyDecision:
        by_origin = await self.check_and_record(origin_key, max_origin)
        by_identity = await self.check_and_record(identity_key, max_identity)
        return DualKeyDecision(
            allowed=by_origin.allowed and by_identity.allowed,
            by_origin=by_origin,
            by_identity=by_identity,
        )

    async def check_password_reset(self, origin: str, email: str) -> DualKeyDecision:
        return await self._check_pair(
            f"reset_ip:{origin}",
            self.reset_max_per_ip,
            f"reset_email:{email}",
            self.reset_max_per_email,
        )

    async def check_login(self, origin: str, identity: str) -> DualKeyDecision:
        return await self._check_pair(
            f"login_ip:{origin}",
            self.login_max_per_ip,
            f"login_email:{identity}",
            self.login_max_per_identity,
        )

    def compute_backoff(self, violations: int) -> float:
        """Delay for the n-th consecutive violation"""
        if violations <= 0:
            return 0.0
        # Clamp the exponent so huge counters cannot overflow the float
        exponent = min(violations - 1, 32)
        delay = min(self.backoff_base_seconds * (2 ** exponent), self.backoff_max_seconds)
        delay += delay * 0.1 * self.jitter()
        return min(delay, self.backoff_max_seconds)

    async def backoff_delay(self, origin: str) -> float:
        """Count one more violation for the origin and return the delay to apply"""
        try:
            violations = await self.backend.incr_counter(
                f"backoff:{origin}", self.backoff_reset_seconds
            )
        except RateLimiterUnavailable as e:
            logger.error(f"Backoff counter unavailable: {e}")
            return self.backoff_max_seconds
        return self.compute_backoff(violations)

    async def close(self) -> None:
        await self.backend.close()
