"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

from . import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging() -> None:
    level = getattr(logging, settings.log_level(), logging.INFO)
    logging.basicConfig(level=level, format=_FORMAT)
    # uvicorn installs its own handlers; keep our loggers at the same level.
    logging.getLogger("carry").setLevel(level)
    logging.getLogger("airports").setLevel(level)
