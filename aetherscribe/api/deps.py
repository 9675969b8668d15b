"""Request dependencies: service lookup, caller identity, and rate limiting."""

from __future__ import annotations

import logging

from fastapi import Request, Response

from aetherscribe.api.services import AppServices
from aetherscribe.errors import CacheUnavailable, RateLimitExceeded

logger = logging.getLogger(__name__)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def client_ip(request: Request) -> str:
    """First hop of ``X-Forwarded-For``, else the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "anonymous"


def client_identity(request: Request, services: AppServices) -> str:
    """Rate-limit key for this caller.

    In ``user`` mode the authenticated user id wins when the proxy supplied
    one; ``ip`` mode always keys on the address.
    """
    config = services.config
    if config.rate_limit_identity == "user":
        user_id = request.headers.get(config.user_id_header, "").strip()
        if user_id:
            return f"user:{user_id}"
    return f"ip:{client_ip(request)}"


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """Admit or reject the request before any fetch, extraction, or LLM work.

    Admitted responses carry the ``X-RateLimit-*`` headers too.  When the
    store is unreachable the request is admitted and the outage logged.

    Raises:
        RateLimitExceeded: When the caller's window is full.
    """
    services = get_services(request)
    limiter = services.rate_limiter
    if limiter is None:
        return

    identity = client_identity(request, services)
    try:
        decision = await limiter.admit(identity)
    except CacheUnavailable as exc:
        logger.warning("%s; admitting %s without a rate check", exc, identity)
        return

    if not decision.allowed:
        raise RateLimitExceeded(decision.limit, decision.remaining, decision.reset)

    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(decision.reset)
