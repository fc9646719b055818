"""
Environment-backed settings.

Everything is read lazily so tests can set env vars before the first call.
"""

from __future__ import annotations

import os


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()


def db_pool_min_size() -> int:
    return max(1, _env_int("DB_POOL_MIN", 1))


def db_pool_max_size() -> int:
    return max(db_pool_min_size(), _env_int("DB_POOL_MAX", 5))


def db_command_timeout() -> int:
    return _env_int("DB_COMMAND_TIMEOUT", 30)


def jwt_secret() -> str:
    # Local default keeps development simple.
    # In production, set JWT_SECRET in environment.
    return _env_str("JWT_SECRET", "dev-change-this-secret")


def jwt_algorithm() -> str:
    return _env_str("JWT_ALG", "HS256")


def admin_user_ids() -> set[int]:
    ids: set[int] = set()
    for raw in _env_list("ADMIN_USER_IDS"):
        if raw.isdigit():
            ids.add(int(raw))
    return ids


def cors_origins() -> list[str]:
    return _env_list("CORS_ORIGINS") or [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
