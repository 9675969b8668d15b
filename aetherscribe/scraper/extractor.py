"""Content extraction: isolates the main readable region of a rendered page.

The region is chosen by walking ``MAIN_CONTENT_SELECTORS`` in priority order
(most semantic first) and falling back to ``<body>``.  Boilerplate inside the
region is removed, the remaining markup is size-checked, and finally
converted to Markdown with ``markdownify``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup
from markdownify import markdownify

from aetherscribe.config import settings
from aetherscribe.errors import NoContentFound

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Selector tables
# ---------------------------------------------------------------------------
MAIN_CONTENT_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    ".article-body",
    "#article-body",
    ".story-body",
    ".content-body",
    ".article-content",
    '[data-testid="article-body"]',
    ".post-content",
    ".entry-content",
    "#content-body",
    "section",
]

# The browser fetcher waits for the first of these to appear.
WAIT_FOR_SELECTORS = ["main", "article", '[role="main"]', ".article-body"]

BOILERPLATE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    '[role="complementary"]',
    '[role="navigation"]',
    '[role="banner"]',
    ".ad",
    ".advertisement",
    ".social-share",
    ".newsletter-signup",
    ".related-articles",
    ".sidebar",
    "#sidebar",
    ".comments",
    ".comment-section",
]

_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass
class ExtractionResult:
    """The cleaned main-content region in its three useful forms."""

    region: BeautifulSoup
    content_html: str
    markdown: str


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _select_main_region(soup: BeautifulSoup) -> str:
    """Return the inner HTML of the highest-priority content container."""
    for selector in MAIN_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            logger.debug("Found content using selector: %s", selector)
            return element.decode_contents()

    logger.debug("No content found with primary selectors, falling back to body")
    body = soup.body
    if body is None:
        return soup.decode_contents()
    return body.decode_contents()


def _strip_boilerplate(region: BeautifulSoup) -> None:
    """Remove navigation, ads, widgets and scripts from *region* in place."""
    for selector in BOILERPLATE_SELECTORS:
        for element in region.select(selector):
            element.decompose()


def html_to_markdown(html: str) -> str:
    """Convert *html* to ATX-heading Markdown with collapsed blank lines."""
    text = markdownify(html, heading_style="ATX", bullets="-", escape_misc=False)
    text = "\n".join(line.rstrip() for line in text.splitlines())
    return _BLANK_LINES.sub("\n\n", text).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_content(html: str, min_length: int | None = None) -> ExtractionResult:
    """Isolate, clean, and convert the main content of *html*.

    Args:
        html: Fully rendered page HTML.
        min_length: Minimum serialized length of the cleaned region.
            Defaults to ``settings.min_content_length``.

    Returns:
        An :class:`ExtractionResult` whose ``region`` is ready for link
        harvesting.

    Raises:
        NoContentFound: If the cleaned region is shorter than *min_length*,
            which usually means the page is paywalled or bot-blocked.
    """
    threshold = settings.min_content_length if min_length is None else min_length

    soup = BeautifulSoup(html or "", "html.parser")
    region = BeautifulSoup(_select_main_region(soup), "html.parser")
    _strip_boilerplate(region)

    content_html = region.decode().strip()
    if len(content_html) < threshold:
        raise NoContentFound("Could not extract meaningful content from the page")

    return ExtractionResult(
        region=region,
        content_html=content_html,
        markdown=html_to_markdown(content_html),
    )
