"""
CSV parsing for the out-of-band airport import.

Accepts either the table's own column names (iata, icao, name, city, country,
country_code, lat, lon) or the OurAirports `airports.csv` layout
(iata_code, icao_code/gps_code, name, municipality, iso_country,
latitude_deg, longitude_deg). Rows with neither an IATA nor an ICAO code are
skipped.
"""

from __future__ import annotations

import csv
from typing import Any, Iterable, Iterator, TextIO

from core.helpers import safe_trim, to_finite_float

_ALIASES: dict[str, tuple[str, ...]] = {
    "iata": ("iata", "iata_code"),
    "icao": ("icao", "icao_code", "gps_code", "ident"),
    "name": ("name",),
    "city": ("city", "municipality"),
    "country": ("country", "country_name"),
    "country_code": ("country_code", "iso_country"),
    "lat": ("lat", "latitude", "latitude_deg"),
    "lon": ("lon", "lng", "longitude", "longitude_deg"),
}


def _pick(row: dict[str, Any], names: tuple[str, ...]) -> str:
    for name in names:
        value = safe_trim(row.get(name))
        if value:
            return value
    return ""


def airport_record(row: dict[str, Any], *, country_names: dict[str, str] | None = None) -> tuple | None:
    iata = _pick(row, _ALIASES["iata"]).upper()
    icao = _pick(row, _ALIASES["icao"]).upper()
    if not iata and not icao:
        return None

    country_code = _pick(row, _ALIASES["country_code"]).upper()
    country = _pick(row, _ALIASES["country"]) or (country_names or {}).get(country_code, "")

    return (
        iata or None,
        icao or None,
        _pick(row, _ALIASES["name"]) or None,
        _pick(row, _ALIASES["city"]) or None,
        country or None,
        country_code or None,
        to_finite_float(_pick(row, _ALIASES["lat"])),
        to_finite_float(_pick(row, _ALIASES["lon"])),
    )


def iter_records(
    rows: Iterable[dict[str, Any]],
    *,
    country_names: dict[str, str] | None = None,
) -> Iterator[tuple]:
    for row in rows:
        record = airport_record(row, country_names=country_names)
        if record is not None:
            yield record


def read_csv(handle: TextIO, *, country_names: dict[str, str] | None = None) -> list[tuple]:
    return list(iter_records(csv.DictReader(handle), country_names=country_names))


def read_country_names(handle: TextIO) -> dict[str, str]:
    """
    OurAirports `countries.csv`: code -> name.
    """
    names: dict[str, str] = {}
    for row in csv.DictReader(handle):
        code = safe_trim(row.get("code")).upper()
        name = safe_trim(row.get("name"))
        if code and name:
            names[code] = name
    return names
