"""Process-wide service singletons shared by every request.

``build_services`` is called once by the application lifespan.  Tests build
an :class:`AppServices` by hand with fakes and pass it to ``create_app``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from aetherscribe.config import Settings, settings
from aetherscribe.rag.chat import EXTRACTION_POLICIES
from aetherscribe.rag.llm import CompletionClient, build_chat_model
from aetherscribe.scraper.fetcher import ContentFetcher, build_fetcher
from aetherscribe.store.cache import ExtractionCache
from aetherscribe.store.connection import create_redis
from aetherscribe.store.ratelimit import SlidingWindowRateLimiter

IDENTITY_MODES = ("user", "ip")


@dataclass
class AppServices:
    config: Settings
    fetcher: ContentFetcher
    llm: CompletionClient
    cache: Optional[ExtractionCache] = None
    rate_limiter: Optional[SlidingWindowRateLimiter] = None
    redis: Any = None

    async def aclose(self) -> None:
        await self.fetcher.aclose()
        if self.redis is not None:
            await self.redis.aclose()


def _check_choices(config: Settings) -> None:
    if config.on_extraction_failure not in EXTRACTION_POLICIES:
        raise ValueError(
            f"Unknown ON_EXTRACTION_FAILURE {config.on_extraction_failure!r}; "
            "expected 'error' or 'fallback'."
        )
    if config.rate_limit_identity not in IDENTITY_MODES:
        raise ValueError(
            f"Unknown RATE_LIMIT_IDENTITY {config.rate_limit_identity!r}; "
            "expected 'user' or 'ip'."
        )


def build_services(config: Settings | None = None) -> AppServices:
    """Construct every long-lived client from *config* (defaults to ``settings``)."""
    config = config or settings
    _check_choices(config)

    redis = create_redis(config.redis_url)
    cache = ExtractionCache(redis, ttl=config.cache_ttl, prefix=config.cache_key_prefix)
    limiter = None
    if config.rate_limit_enabled:
        limiter = SlidingWindowRateLimiter(
            redis,
            limit=config.rate_limit_requests,
            window=config.rate_limit_window,
            prefix=config.rate_limit_prefix,
        )

    return AppServices(
        config=config,
        fetcher=build_fetcher(config),
        llm=CompletionClient(build_chat_model(config)),
        cache=cache,
        rate_limiter=limiter,
        redis=redis,
    )
