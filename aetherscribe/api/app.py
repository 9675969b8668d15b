"""FastAPI application factory.

Lifespan
--------
On startup the app builds the process-wide services (key-value client,
extraction cache, rate limiter, page fetcher, completion client) once and
shares them across requests via ``request.app.state.services``.  On shutdown
it closes them cleanly.

Routers
-------
All endpoint groups are mounted under ``/api``:

    /api/chat      — question answering with optional URL context
    /api/extract   — extraction pipeline only
    /api/health    — liveness and store reachability

Errors
------
Every failure reaches the caller as JSON with ``error`` and ``message``
fields; stack traces never leave the process.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aetherscribe import __version__
from aetherscribe.api.routers import chat as chat_router
from aetherscribe.api.routers import extract as extract_router
from aetherscribe.api.routers import health as health_router
from aetherscribe.api.services import AppServices, build_services
from aetherscribe.config import configure_logging
from aetherscribe.errors import (
    ExtractionError,
    FetchError,
    FetchTimeoutError,
    InvalidURL,
    NoContentFound,
    RateLimitExceeded,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "Whoa there, speedster! You've hit the brakes on our request highway. "
    "Take a quick pit stop for a minute, and then you can zoom back in!"
)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _extraction_message(exc: ExtractionError) -> str:
    if isinstance(exc, InvalidURL):
        return "The URL provided is not valid. Please check it and try again."
    if isinstance(exc, NoContentFound):
        return (
            "Could not extract meaningful content from the page. "
            "It may be paywalled or blocking automated access."
        )
    if isinstance(exc, FetchTimeoutError):
        return "The page took too long to load. Please try again later."
    if isinstance(exc, FetchError):
        return "The page could not be retrieved. Please check the URL and try again."
    return "The page could not be analyzed."


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": RATE_LIMIT_MESSAGE,
            "reset": exc.reset,
        },
        headers={
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": str(exc.remaining),
            "X-RateLimit-Reset": str(exc.reset),
        },
    )


async def _extraction_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.info("Extraction failed: %s", exc)
    return JSONResponse(
        status_code=422,
        content={"error": "Extraction failed", "message": _extraction_message(exc)},
    )


async def _upstream_handler(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "error": "Upstream service error",
            "message": "The language model is unavailable right now. Please try again later.",
        },
    )


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong on our side. Please try again.",
        },
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_app(services: AppServices | None = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        services: Pre-built services (tests inject fakes here).  When
            ``None`` they are built from ``settings`` at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the shared services on startup and close them on shutdown."""
        configure_logging()
        app.state.services = services or build_services()
        try:
            yield
        finally:
            await app.state.services.aclose()

    app = FastAPI(
        title="AetherScribe API",
        description=(
            "Ask questions about any web page. The backend renders the page, "
            "extracts its main content, and answers with numbered citations "
            "back to the links it found."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(ExtractionError, _extraction_handler)
    app.add_exception_handler(UpstreamServiceError, _upstream_handler)
    app.add_exception_handler(Exception, _unhandled_handler)

    app.include_router(chat_router.router, prefix="/api", tags=["chat"])
    app.include_router(extract_router.router, prefix="/api", tags=["extract"])
    app.include_router(health_router.router, prefix="/api", tags=["health"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn aetherscribe.api.app:app --reload
app = create_app()
