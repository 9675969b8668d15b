"""One chat turn: optional URL analysis followed by answer composition.

Extraction failures are handled per ``on_extraction_failure``:

``error``
    Re-raise the :class:`ExtractionError`; the API turns it into a 422 and
    the completion service is never called.

``fallback``
    Log the failure and answer from general knowledge instead.
"""

from __future__ import annotations

import logging

from aetherscribe.errors import ExtractionError
from aetherscribe.rag.composer import ComposedAnswer, compose_answer
from aetherscribe.rag.llm import CompletionClient
from aetherscribe.scraper.fetcher import ContentFetcher
from aetherscribe.scraper.pipeline import scrape_and_crawl
from aetherscribe.store.cache import ExtractionCache

logger = logging.getLogger(__name__)

EXTRACTION_POLICIES = ("error", "fallback")


async def answer_question(
    question: str,
    client: CompletionClient,
    fetcher: ContentFetcher,
    url: str | None = None,
    cache: ExtractionCache | None = None,
    on_extraction_failure: str = "error",
) -> ComposedAnswer:
    """Answer *question*, using the page at *url* as context when supplied.

    Raises:
        ExtractionError: When extraction fails and the policy is ``error``.
        UpstreamServiceError: When the completion service fails.
        ValueError: For an unknown *on_extraction_failure* policy.
    """
    if on_extraction_failure not in EXTRACTION_POLICIES:
        raise ValueError(
            f"Unknown ON_EXTRACTION_FAILURE {on_extraction_failure!r}; "
            "expected 'error' or 'fallback'."
        )

    if not url:
        return await compose_answer(question, client)

    try:
        content = await scrape_and_crawl(url, fetcher, cache)
    except ExtractionError as exc:
        if on_extraction_failure == "error":
            raise
        logger.warning("Extraction failed for %s (%s); answering without context", url, exc)
        return await compose_answer(question, client)

    return await compose_answer(question, client, content)
