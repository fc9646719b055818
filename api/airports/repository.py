"""
Airport directory persistence (raw SQL).

The table is reference data loaded out-of-band (see scripts/load_airports.py).
"""

from __future__ import annotations

from typing import Any, Iterable

from core import db

AIRPORT_COLUMNS = ("iata", "icao", "name", "city", "country", "country_code", "lat", "lon")

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS airports (
        id bigserial PRIMARY KEY,
        iata text,
        icao text,
        name text,
        city text,
        country text,
        country_code text,
        lat double precision,
        lon double precision
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_airports_iata ON airports (iata)",
    "CREATE INDEX IF NOT EXISTS idx_airports_icao ON airports (icao)",
    "CREATE INDEX IF NOT EXISTS idx_airports_city ON airports (city)",
    "CREATE INDEX IF NOT EXISTS idx_airports_name ON airports (name)",
    "CREATE INDEX IF NOT EXISTS idx_airports_country ON airports (country)",
)


async def ensure_schema() -> None:
    async with db.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)


async def search(query: str, *, limit: int) -> list[dict[str, Any]]:
    """
    Case-insensitive containment over iata/icao/city/name/country.

    Rank: exact iata, iata prefix, city prefix, name prefix, anything else;
    then shorter iata, then shorter city.
    """
    q = (query or "").lower()
    return await db.fetch_all(
        """
        SELECT iata, icao, name, city, country, country_code, lat, lon
        FROM airports
        WHERE strpos(lower(COALESCE(iata, '')), $1) > 0
           OR strpos(lower(COALESCE(icao, '')), $1) > 0
           OR strpos(lower(COALESCE(city, '')), $1) > 0
           OR strpos(lower(COALESCE(name, '')), $1) > 0
           OR strpos(lower(COALESCE(country, '')), $1) > 0
        ORDER BY
          CASE
            WHEN lower(COALESCE(iata, '')) = $1 THEN 0
            WHEN strpos(lower(COALESCE(iata, '')), $1) = 1 THEN 1
            WHEN strpos(lower(COALESCE(city, '')), $1) = 1 THEN 2
            WHEN strpos(lower(COALESCE(name, '')), $1) = 1 THEN 3
            ELSE 4
          END,
          length(COALESCE(iata, '')) ASC,
          length(COALESCE(city, '')) ASC
        LIMIT $2
        """,
        q,
        limit,
    )


async def count_airports() -> int:
    n = await db.fetch_val("SELECT count(*) FROM airports")
    return int(n or 0)


async def replace_all(records: Iterable[tuple[Any, ...]]) -> int:
    """
    Swap the table contents for `records` (tuples in AIRPORT_COLUMNS order).
    """
    rows = list(records)
    async with db.transaction() as conn:
        await conn.execute("TRUNCATE airports RESTART IDENTITY")
        if rows:
            await conn.copy_records_to_table("airports", records=rows, columns=list(AIRPORT_COLUMNS))
    return len(rows)
