"""Redis connection factory.

Usage::

    from aetherscribe.store.connection import create_redis

    client = create_redis()
    await client.get("key")
"""

from __future__ import annotations

import logging

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from aetherscribe.config import settings

logger = logging.getLogger(__name__)

# Errors that mean "the store is unreachable or misbehaving", not a bug.
STORE_ERRORS = (RedisError, OSError)


def create_redis(url: str | None = None) -> aioredis.Redis:
    """Return an asyncio Redis client for *url* (defaults to ``settings.redis_url``).

    The connection is lazy: nothing is opened until the first command.
    """
    return aioredis.from_url(url or settings.redis_url, decode_responses=True)


async def ping(client: aioredis.Redis) -> bool:
    """Return ``True`` if the store answers a PING."""
    try:
        return bool(await client.ping())
    except STORE_ERRORS as exc:
        logger.warning("Key-value store unavailable: %s", exc)
        return False
