"""Extraction endpoint — the pipeline without the completion service.

Routes
------
POST /api/extract    Body: {"url": "https://..."}
                     → {"markdown": "...", "links": [{"url": "..."}], "cached": bool}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from aetherscribe.api.deps import enforce_rate_limit, get_services
from aetherscribe.scraper.pipeline import scrape_and_crawl

router = APIRouter()


class ExtractRequest(BaseModel):
    url: str


class LinkOut(BaseModel):
    url: str


class ExtractResponse(BaseModel):
    markdown: str
    links: list[LinkOut]
    cached: bool


@router.post(
    "/extract",
    response_model=ExtractResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def extract_endpoint(body: ExtractRequest, request: Request) -> ExtractResponse:
    """Return the main content of ``url`` as Markdown plus its cited links."""
    services = get_services(request)
    content = await scrape_and_crawl(body.url, services.fetcher, services.cache)
    return ExtractResponse(
        markdown=content.markdown,
        links=[LinkOut(url=link.url) for link in content.links],
        cached=content.from_cache,
    )
