"""Link harvesting from the cleaned main-content region."""

from __future__ import annotations

import logging
import re
from typing import List, Union

from bs4 import BeautifulSoup, Tag

from aetherscribe.config import settings
from aetherscribe.errors import InvalidURL
from aetherscribe.scraper.models import Link
from aetherscribe.scraper.validator import validate_url

logger = logging.getLogger(__name__)

# Anchor text containing any of these marks a promotional / navigational link.
TEXT_DENYLIST = (
    "skip to",
    "view image",
    "reuse",
    "subscribe",
    "sign up",
    "rateplan",
    "follow us",
    "support us",
    "become a member",
    "newsletter",
    "subscription",
    "donate",
)

URL_DENYLIST = (
    "/images/",
    "/img/",
    "/image/",
    "/subscribe/",
    "/membership/",
    "/support/",
    "/newsletter/",
    "ratePlan",
)

_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|ico)$", re.IGNORECASE)


def _is_noise(href: str, text: str) -> bool:
    """Return ``True`` if the link should be dropped by text or URL heuristics."""
    lowered = text.lower()
    if any(phrase in lowered for phrase in TEXT_DENYLIST):
        return True
    if _IMAGE_EXT.search(href):
        return True
    return any(fragment in href for fragment in URL_DENYLIST)


def harvest_links(
    region: Union[BeautifulSoup, Tag, str],
    max_links: int | None = None,
) -> List[Link]:
    """Collect up to *max_links* unique, citation-worthy links from *region*.

    Links keep the document order of their first occurrence.  The scan stops
    as soon as the cap is reached.

    Args:
        region: The cleaned content region (a parsed tree or an HTML string).
        max_links: Cap on the result size.  Defaults to ``settings.max_links``.
    """
    cap = settings.max_links if max_links is None else max_links
    if isinstance(region, str):
        region = BeautifulSoup(region, "html.parser")

    seen: set[str] = set()
    links: List[Link] = []

    for anchor in region.find_all("a"):
        if len(links) >= cap:
            break

        href = anchor.get("href")
        if not href or not href.startswith("http"):
            continue
        try:
            validate_url(href)
        except InvalidURL:
            logger.debug("Invalid URL: %s", href)
            continue

        if _is_noise(href, anchor.get_text()):
            continue
        if href in seen:
            continue

        seen.add(href)
        links.append(Link(url=href))

    return links
