"""
Airport directory API endpoints (public).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from . import service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/airports")


@router.get("/search")
async def search_airports(
    q: str = Query(default="", max_length=200),
    limit: str | None = Query(default=None, max_length=10),
) -> list[dict]:
    """
    Ranked autocomplete. Queries shorter than 2 characters return [].
    """
    return await service.search_airports(q, limit=limit)


@router.get("/health")
async def airports_health():
    try:
        count = await service.airport_count()
    except Exception:
        logger.exception("airports_health_failed")
        return JSONResponse(status_code=500, content={"ok": False})
    return {"ok": True, "count": count}
