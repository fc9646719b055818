"""
Access-token validation.

Tokens are issued by the identity service; this API only verifies them.
"""

from __future__ import annotations

from typing import Any

import jwt

from core import settings


class AuthSecurityError(RuntimeError):
    pass


def decode_access_token(token: str) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Access token is empty.")

    try:
        payload = jwt.decode(raw, settings.jwt_secret(), algorithms=[settings.jwt_algorithm()])
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc

    # Tokens without a type claim are accepted; refresh tokens are not.
    token_type = str(payload.get("type") or "access").strip().lower()
    if token_type != "access":
        raise AuthSecurityError("Token is not an access token.")

    return payload
