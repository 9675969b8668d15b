"""Liveness endpoint: ``GET /api/health``.  Never rate-limited."""

from __future__ import annotations

from fastapi import APIRouter, Request

from aetherscribe.api.deps import get_services
from aetherscribe.store.connection import ping

router = APIRouter()


@router.get("/health")
async def health_endpoint(request: Request) -> dict[str, str]:
    services = get_services(request)
    cache_ok = services.redis is not None and await ping(services.redis)
    return {"status": "ok", "cache": "ok" if cache_ok else "unavailable"}
