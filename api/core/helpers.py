"""
Small value-coercion helpers shared by the feature services.
"""

from __future__ import annotations

import json
import math
from typing import Any


def safe_trim(value: Any) -> str:
    """
    Return `value` as a stripped string; non-strings other than numbers become "".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value).strip()
    if not isinstance(value, str):
        return ""
    return value.strip()


def safe_json_parse(raw: Any) -> Any:
    """
    Parse JSON text, returning None instead of raising on bad input.
    Already-decoded values (dict/list) pass through.
    """
    if raw is None:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def to_int(value: Any, default: int | None = None) -> int | None:
    """
    Coerce ints and integer-looking strings ("12", " 7 ") to int.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    raw = safe_trim(value)
    if not raw:
        return default
    sign = -1 if raw.startswith("-") else 1
    digits = raw.lstrip("+-")
    if not digits.isdigit():
        return default
    return sign * int(digits)


def to_finite_float(value: Any) -> float | None:
    """
    Return a finite float, or None when `value` is missing/blank/non-numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
