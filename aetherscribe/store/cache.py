"""Extraction cache: a typed wrapper over the shared key-value store.

Entries hold the serialised :class:`ExtractedContent` for a source URL and
expire after a fixed TTL.  There is no explicit invalidation.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from aetherscribe.errors import CacheUnavailable
from aetherscribe.scraper.models import ExtractedContent
from aetherscribe.store.connection import STORE_ERRORS

logger = logging.getLogger(__name__)


def normalise_url(url: str) -> str:
    """Lower-case scheme and host and drop the fragment; keep path and query."""
    parts = urlsplit(url.strip())
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )


class ExtractionCache:
    """Read/write :class:`ExtractedContent` keyed by source URL.

    Both operations raise :class:`CacheUnavailable` when the store cannot be
    reached; callers decide whether that is fatal.
    """

    def __init__(
        self,
        client: Any,
        ttl: int = 86400,
        prefix: str = "scraped_content:",
    ) -> None:
        self._client = client
        self.ttl = ttl
        self.prefix = prefix

    def key_for(self, url: str) -> str:
        return f"{self.prefix}{normalise_url(url)}"

    async def get(self, url: str) -> ExtractedContent | None:
        """Return the cached content for *url*, or ``None`` on a miss."""
        key = self.key_for(url)
        try:
            raw = await self._client.get(key)
        except STORE_ERRORS as exc:
            raise CacheUnavailable(f"Cache read failed for {key}: {exc}") from exc

        if raw is None:
            return None
        try:
            return ExtractedContent.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            # A corrupt entry is treated as a miss and overwritten later.
            logger.warning("Ignoring unreadable cache entry %s: %s", key, exc)
            return None

    async def put(self, url: str, value: ExtractedContent, ttl: int | None = None) -> None:
        """Store *value* for *url* with a TTL of *ttl* seconds (default ``self.ttl``)."""
        key = self.key_for(url)
        payload = json.dumps(value.to_dict())
        try:
            await self._client.set(key, payload, ex=ttl or self.ttl)
        except STORE_ERRORS as exc:
            raise CacheUnavailable(f"Cache write failed for {key}: {exc}") from exc
