# app/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    def _redact(v: str | None) -> str | None:
        if not v:
            return v
        if len(v) <= 8:
            return "***"
        return v[:4] + "***" + v[-4:]

    return {
        "ENV": settings.ENV,
        "HOMEBOUND_DB_URL": settings.HOMEBOUND_DB_URL,
        "DESTINATION_SOURCE": settings.DESTINATION_SOURCE,
        "TABLE_API_BASE_URL": settings.TABLE_API_BASE_URL,
        "TABLE_API_DESTINATIONS_TABLE": settings.TABLE_API_DESTINATIONS_TABLE,
        "API_KEY": _redact(settings.API_KEY),
        "FANOUT_TRANSPORT_MODE": settings.FANOUT_TRANSPORT_MODE,
        "FANOUT_RETRIES": settings.FANOUT_RETRIES,
        "FANOUT_TIMEOUT_S": settings.FANOUT_TIMEOUT_S,
        "FANOUT_RATE_MAX_REQUESTS": settings.FANOUT_RATE_MAX_REQUESTS,
        "FANOUT_RATE_WINDOW_S": settings.FANOUT_RATE_WINDOW_S,
    }
