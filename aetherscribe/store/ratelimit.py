"""Sliding-window rate limiter backed by a Redis sorted set.

Each identity owns one sorted set whose members are request timestamps
(milliseconds).  An admission check runs as a single MULTI/EXEC:

    1. drop members older than the window,
    2. add this request,
    3. count members and read the oldest one,
    4. refresh the key's expiry to one window.

If the count exceeds the limit the request is denied and its member is
removed again, so rejected calls never consume capacity.  All coordination
is left to Redis; no in-process locks are needed.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from aetherscribe.errors import CacheUnavailable
from aetherscribe.store.connection import STORE_ERRORS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check.

    ``reset`` is the Unix time in milliseconds at which the oldest counted
    request leaves the window.
    """

    allowed: bool
    limit: int
    remaining: int
    reset: int


class SlidingWindowRateLimiter:
    def __init__(
        self,
        client: Any,
        limit: int = 10,
        window: int = 60,
        prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._client = client
        self.limit = limit
        self.window = window
        self.prefix = prefix
        self._clock = clock

    def key_for(self, identity: str) -> str:
        return f"{self.prefix}:{identity}"

    async def admit(self, identity: str) -> RateLimitDecision:
        """Count one request for *identity* and decide whether it may proceed.

        Raises:
            CacheUnavailable: If the backing store cannot be reached.
        """
        now_ms = int(self._clock() * 1000)
        window_ms = self.window * 1000
        key = self.key_for(identity)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", now_ms - window_ms)
                pipe.zadd(key, {member: now_ms})
                pipe.zcard(key)
                pipe.zrange(key, 0, 0, withscores=True)
                pipe.pexpire(key, window_ms)
                _, _, count, oldest, _ = await pipe.execute()

            allowed = count <= self.limit
            if not allowed:
                await self._client.zrem(key, member)
        except STORE_ERRORS as exc:
            raise CacheUnavailable(f"Rate-limit store unavailable: {exc}") from exc

        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        reset = oldest_ms + window_ms

        if not allowed:
            logger.info("Rate limit exceeded for %s (%d/%d)", identity, count - 1, self.limit)
            return RateLimitDecision(allowed=False, limit=self.limit, remaining=0, reset=reset)

        return RateLimitDecision(
            allowed=True,
            limit=self.limit,
            remaining=self.limit - count,
            reset=reset,
        )
