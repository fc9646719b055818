"""
Airport autocomplete.
"""

from __future__ import annotations

from typing import Any

from core.helpers import safe_trim, to_int

from . import repository

MIN_QUERY_CHARS = 2
DEFAULT_LIMIT = 20
MIN_LIMIT = 5
MAX_LIMIT = 50


def clamp_limit(raw: Any) -> int:
    limit = to_int(raw, DEFAULT_LIMIT)
    return max(MIN_LIMIT, min(MAX_LIMIT, limit))


async def search_airports(query: str | None, *, limit: Any = None) -> list[dict[str, Any]]:
    q = safe_trim(query)
    if len(q) < MIN_QUERY_CHARS:
        return []
    return await repository.search(q, limit=clamp_limit(limit))


async def airport_count() -> int:
    return await repository.count_airports()
