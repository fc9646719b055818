"""
Caller resolution and the authorization predicate.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from core import settings

from . import security


def _claims_are_admin(payload: dict[str, Any]) -> bool:
    if payload.get("is_admin") is True:
        return True
    role = str(payload.get("role") or "").strip().lower()
    return role == "admin"


def caller_from_claims(payload: dict[str, Any]) -> dict:
    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit() or int(subject) <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token subject.",
        )

    user_id = int(subject)
    return {
        "id": user_id,
        "email": payload.get("email"),
        "is_admin": _claims_are_admin(payload) or user_id in settings.admin_user_ids(),
    }


def get_user_from_access_token(access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return caller_from_claims(payload)


def is_admin(caller: dict | None) -> bool:
    if not caller:
        return False
    return bool(caller.get("is_admin"))


def can_edit(caller_id: int | None, owner_id: int | None, *, admin: bool) -> bool:
    """
    Owner-or-admin check, independent of how the caller was authenticated.
    """
    if not caller_id:
        return False
    if owner_id is not None and int(caller_id) == int(owner_id):
        return True
    return admin
