"""Shared key-value store: extraction cache and rate-limit windows."""

from aetherscribe.store.cache import ExtractionCache
from aetherscribe.store.ratelimit import RateLimitDecision, SlidingWindowRateLimiter
from aetherscribe.store.connection import create_redis, ping

__all__ = [
    "ExtractionCache",
    "RateLimitDecision",
    "SlidingWindowRateLimiter",
    "create_redis",
    "ping",
]
