"""Unit tests for airport search helpers, SQL arguments and CSV import."""

import asyncio
import io

from airports import loader, repository, service
from core import db


def test_clamp_limit():
    assert service.clamp_limit(None) == 20
    assert service.clamp_limit("abc") == 20
    assert service.clamp_limit("1") == 5
    assert service.clamp_limit("100") == 50
    assert service.clamp_limit("30") == 30


def test_short_query_skips_database(monkeypatch):
    async def fail(*args, **kwargs):
        raise AssertionError("should not query")

    monkeypatch.setattr(repository, "search", fail)
    assert asyncio.run(service.search_airports(" a ")) == []
    assert asyncio.run(service.search_airports(None)) == []


def test_search_sql_ranks_exact_iata_first(monkeypatch):
    captured = {}

    async def fake_fetch_all(sql, *args):
        captured["sql"] = sql
        captured["args"] = args
        return []

    monkeypatch.setattr(db, "fetch_all", fake_fetch_all)
    asyncio.run(service.search_airports("JFK", limit="10"))

    assert captured["args"] == ("jfk", 10)
    sql = captured["sql"]
    exact = sql.index("lower(COALESCE(iata, '')) = $1 THEN 0")
    city_prefix = sql.index("strpos(lower(COALESCE(city, '')), $1) = 1 THEN 2")
    assert exact < city_prefix
    assert sql.index("length(COALESCE(iata, '')) ASC") < sql.index("length(COALESCE(city, '')) ASC")


def test_loader_reads_ourairports_layout():
    csv_text = (
        "ident,type,name,latitude_deg,longitude_deg,iso_country,municipality,gps_code,iata_code\n"
        "KJFK,large_airport,John F Kennedy International Airport,40.6398,-73.7789,US,New York,KJFK,JFK\n"
        "00A,heliport,Total RF Heliport,40.07,-74.93,US,Bensalem,,\n"
    )
    records = loader.read_csv(io.StringIO(csv_text), country_names={"US": "United States"})
    # Heliport still has an ident, so it is kept with no IATA code.
    assert len(records) == 2
    jfk = records[0]
    assert jfk[0] == "JFK"
    assert jfk[1] == "KJFK"
    assert jfk[3] == "New York"
    assert jfk[4] == "United States"
    assert jfk[5] == "US"
    assert round(jfk[6], 2) == 40.64
    assert records[1][0] is None


def test_loader_skips_rows_without_codes():
    rows = [{"name": "Nowhere", "city": "X"}, {"iata": "cdg", "name": "Charles de Gaulle", "lat": "bad"}]
    records = list(loader.iter_records(rows))
    assert len(records) == 1
    assert records[0][0] == "CDG"
    assert records[0][6] is None


def test_read_country_names():
    names = loader.read_country_names(io.StringIO("id,code,name\n1,fr,France\n2,,Blank\n"))
    assert names == {"FR": "France"}
