"""Extraction pipeline: validate → cache → fetch → extract → harvest → cache.

``scrape_and_crawl`` is the single entry point used by the API and the CLI.
The cache is consulted before any network work and written back after a
successful extraction; a cache that cannot be reached only costs the
caching, never the request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from aetherscribe.errors import CacheUnavailable
from aetherscribe.scraper.extractor import extract_content
from aetherscribe.scraper.fetcher import ContentFetcher
from aetherscribe.scraper.links import harvest_links
from aetherscribe.scraper.models import ExtractedContent
from aetherscribe.scraper.validator import validate_url

if TYPE_CHECKING:
    from aetherscribe.store.cache import ExtractionCache

logger = logging.getLogger(__name__)


def _extract_and_harvest(
    html: str,
    min_length: int | None,
    max_links: int | None,
) -> ExtractedContent:
    result = extract_content(html, min_length=min_length)
    links = harvest_links(result.region, max_links=max_links)
    return ExtractedContent(markdown=result.markdown, links=links)


async def scrape_and_crawl(
    url: str,
    fetcher: ContentFetcher,
    cache: ExtractionCache | None = None,
    min_length: int | None = None,
    max_links: int | None = None,
) -> ExtractedContent:
    """Return the main content and harvested links of *url*.

    Args:
        url: Absolute ``http(s)`` URL supplied by the caller.
        fetcher: Strategy used on a cache miss.
        cache: Optional extraction cache.  ``None`` disables caching.
        min_length: Overrides ``settings.min_content_length``.
        max_links: Overrides ``settings.max_links``.

    Raises:
        InvalidURL: Before any I/O when *url* is malformed.
        FetchError: If the page cannot be retrieved (``FetchTimeoutError``
            when the navigation deadline is hit).
        NoContentFound: If the cleaned region is too small to be useful.
    """
    validate_url(url)

    if cache is not None:
        try:
            cached = await cache.get(url)
        except CacheUnavailable as exc:
            logger.warning("%s; treating as cache miss", exc)
            cached = None
        if cached is not None:
            logger.info("Cache hit for URL: %s", url)
            cached.from_cache = True
            return cached
        logger.info("Cache miss for URL: %s", url)

    raw = await fetcher.fetch(url)

    # Parsing a large page is CPU-bound; keep it off the event loop.
    content = await asyncio.to_thread(_extract_and_harvest, raw.html, min_length, max_links)

    if cache is not None:
        try:
            await cache.put(url, content)
        except CacheUnavailable as exc:
            logger.warning("%s; serving uncached result", exc)

    return content
