"""Scraper package — fetch, main-content extraction, and link harvesting."""

from aetherscribe.scraper.extractor import extract_content
from aetherscribe.scraper.fetcher import ContentFetcher, build_fetcher
from aetherscribe.scraper.links import harvest_links
from aetherscribe.scraper.models import ExtractedContent, Link, RawPage
from aetherscribe.scraper.pipeline import scrape_and_crawl
from aetherscribe.scraper.validator import validate_url

__all__ = [
    "ContentFetcher",
    "ExtractedContent",
    "Link",
    "RawPage",
    "build_fetcher",
    "extract_content",
    "harvest_links",
    "scrape_and_crawl",
    "validate_url",
]
