#!/usr/bin/env python3
"""Load the airports reference table from CSV.

The API has no write path for airports; run this once per environment
(and again whenever the source data is refreshed). Existing rows are replaced.

Usage:
    DATABASE_URL=postgres://... python scripts/load_airports.py airports.csv [--countries countries.csv]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add api to path for package imports
sys.path.insert(0, str(Path(__file__).parent.parent / "api"))

from airports import loader, repository
from core import db
from core.log_config import configure_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Import airports from CSV.")
    parser.add_argument("csv_path", type=Path, help="airports CSV file")
    parser.add_argument("--countries", type=Path, default=None, help="OurAirports countries.csv for country names")
    return parser.parse_args(argv)


async def run(csv_path: Path, countries_path: Path | None) -> int:
    country_names = {}
    if countries_path is not None:
        with countries_path.open(newline="", encoding="utf-8") as handle:
            country_names = loader.read_country_names(handle)

    with csv_path.open(newline="", encoding="utf-8") as handle:
        records = loader.read_csv(handle, country_names=country_names)

    await db.init_pool()
    try:
        await repository.ensure_schema()
        return await repository.replace_all(records)
    finally:
        await db.close_pool()


def main(argv=None):
    configure_logging()
    args = parse_args(argv)
    loaded = asyncio.run(run(args.csv_path, args.countries))
    print(f"✓ Loaded {loaded} airports")


if __name__ == "__main__":
    main()
