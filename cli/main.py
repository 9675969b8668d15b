"""AetherScribe CLI — run the extraction pipeline and the chat turn locally.

Usage:
    aetherscribe --help
    python cli/main.py --help

Commands:
    extract   → fetch a URL and print its Markdown and numbered links
    ask       → answer a question, optionally grounded in a URL
    serve     → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from aetherscribe.xxx
# import ...` works when the CLI is invoked as `python cli/main.py`.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from typing import Optional

import typer

from aetherscribe.config import configure_logging, settings
from aetherscribe.errors import AetherScribeError
from aetherscribe.rag.chat import answer_question
from aetherscribe.rag.composer import format_references
from aetherscribe.rag.llm import CompletionClient, build_chat_model
from aetherscribe.scraper.fetcher import build_fetcher
from aetherscribe.scraper.models import ExtractedContent
from aetherscribe.scraper.pipeline import scrape_and_crawl
from aetherscribe.store.cache import ExtractionCache
from aetherscribe.store.connection import create_redis

app = typer.Typer(
    name="aetherscribe",
    help="AetherScribe backend CLI.",
    no_args_is_help=True,
)


async def _extract(url: str, use_cache: bool) -> ExtractedContent:
    fetcher = build_fetcher()
    redis = create_redis() if use_cache else None
    cache = (
        ExtractionCache(redis, ttl=settings.cache_ttl, prefix=settings.cache_key_prefix)
        if redis is not None
        else None
    )
    try:
        return await scrape_and_crawl(url, fetcher, cache)
    finally:
        await fetcher.aclose()
        if redis is not None:
            await redis.aclose()


async def _ask(message: str, url: Optional[str]):
    fetcher = build_fetcher()
    client = CompletionClient(build_chat_model())
    try:
        return await answer_question(
            message,
            client=client,
            fetcher=fetcher,
            url=url,
            on_extraction_failure=settings.on_extraction_failure,
        )
    finally:
        await fetcher.aclose()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    configure_logging("DEBUG" if verbose else None)


@app.command("extract")
def extract(
    url: str = typer.Argument(..., help="Page to extract."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Skip the Redis extraction cache."),
) -> None:
    """Fetch a URL and print its main content as Markdown, then its links."""
    typer.echo(f"[extract] Fetching {url!r} …", err=True)
    try:
        content = asyncio.run(_extract(url, use_cache=not no_cache))
    except AetherScribeError as exc:
        typer.echo(f"❌ Error: {exc}", err=True)
        raise typer.Exit(code=1)

    source = "cache" if content.from_cache else "live fetch"
    typer.echo(f"[extract] {len(content.markdown)} chars, {len(content.links)} link(s) from {source}", err=True)
    typer.echo(content.markdown)
    if content.links:
        typer.echo("")
        for line in format_references(content.links):
            typer.echo(line)


@app.command("ask")
def ask(
    message: str = typer.Argument(..., help="Question to answer."),
    url: Optional[str] = typer.Option(None, "--url", help="Page to use as context."),
) -> None:
    """Answer a question, grounded in --url when given."""
    try:
        answer = asyncio.run(_ask(message, url))
    except (AetherScribeError, EnvironmentError) as exc:
        typer.echo(f"❌ Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(answer.message)
    if answer.references:
        typer.echo("\nReferences:")
        for ref in answer.references:
            typer.echo(f"  {ref}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("aetherscribe.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
