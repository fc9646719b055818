"""
Carry marketplace business rules.

Scope:
- listings: create / list / details / merge update / soft delete / status moves
- match requests: open (or reopen a cancelled one), accept, reject, cancel
- messages and reviews attached to a listing

Ownership is always checked against the listing owner, never the request.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException

from auth import service as auth_service
from core.helpers import safe_json_parse, safe_trim, to_finite_float, to_int

from . import repository, schemas

logger = logging.getLogger(__name__)

ROLES = ("traveler", "sender")

LISTING_STATUSES = ("open", "matched", "in_transit", "delivered", "completed", "cancelled")

# Moves allowed through the status endpoint. open -> matched only happens by
# accepting a request.
STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "open": ("cancelled",),
    "matched": ("in_transit", "cancelled"),
    "in_transit": ("delivered",),
    "delivered": ("completed",),
}

LIST_LIMIT = 200
DETAIL_MESSAGES = 20
MESSAGES_LIMIT = 200

_TEXT_FIELDS = (
    "from_country",
    "from_city",
    "to_country",
    "to_city",
    "travel_date",
    "arrival_date",
    "item_type",
    "description",
    "currency",
)
_NUMBER_FIELDS = ("available_weight", "reward_amount")


def normalize_role(value: Any) -> str | None:
    role = safe_trim(value).lower()
    return role if role in ROLES else None


def clamp_rating(value: Any) -> int | None:
    """
    Drop the fraction and clamp into 1..5. None when not a finite number.
    """
    number = to_finite_float(value)
    if number is None:
        return None
    return max(1, min(5, int(number)))


def to_listing(row: dict[str, Any]) -> dict[str, Any]:
    data = safe_json_parse(row.get("data"))
    return {
        "id": int(row["id"]),
        "user_id": int(row["user_id"]),
        "role": row.get("role"),
        "from_country": row.get("from_country") or "",
        "from_city": row.get("from_city") or "",
        "to_country": row.get("to_country") or "",
        "to_city": row.get("to_city") or "",
        "travel_date": row.get("travel_date") or None,
        "arrival_date": row.get("arrival_date") or None,
        "available_weight": row.get("available_weight"),
        "item_type": row.get("item_type") or "",
        "description": row.get("description") or "",
        "reward_amount": row.get("reward_amount"),
        "currency": row.get("currency") or "USD",
        "status": row.get("status") or "open",
        "is_active": int(row.get("is_active") or 0),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "data": data if isinstance(data, dict) else {},
    }


def _require_editor(caller: dict, owner_id: int) -> None:
    if not auth_service.can_edit(
        caller.get("id"),
        owner_id,
        admin=auth_service.is_admin(caller),
    ):
        raise HTTPException(status_code=403, detail="Forbidden")


async def _active_listing_or_404(listing_id: int) -> dict[str, Any]:
    row = await repository.get_listing(listing_id, active_only=True)
    if row is None:
        raise HTTPException(status_code=404, detail="Not found")
    return row


async def _any_listing_or_404(listing_id: int) -> dict[str, Any]:
    row = await repository.get_listing(listing_id, active_only=False)
    if row is None:
        raise HTTPException(status_code=404, detail="Not found")
    return row


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------


async def create_listing(body: schemas.CreateListingRequest, *, caller: dict) -> dict:
    role = normalize_role(body.role)
    if role is None:
        raise HTTPException(status_code=400, detail="Bad role")

    fields: dict[str, Any] = {name: safe_trim(getattr(body, name)) or None for name in _TEXT_FIELDS}
    for name in _NUMBER_FIELDS:
        fields[name] = to_finite_float(getattr(body, name))
    fields["currency"] = fields["currency"] or "USD"

    row = await repository.insert_listing(
        user_id=int(caller["id"]),
        role=role,
        fields=fields,
        data=body.payload(),
    )
    logger.info("listing_created listing_id=%s user_id=%s role=%s", row["id"], caller["id"], role)
    return {"ok": True, "item": to_listing(row)}


async def list_listings(
    *,
    role: str | None = None,
    q: str | None = None,
    from_country: str | None = None,
    to_country: str | None = None,
) -> dict:
    rows = await repository.list_listings(
        role=normalize_role(role),
        query=safe_trim(q),
        from_country=safe_trim(from_country),
        to_country=safe_trim(to_country),
        limit=LIST_LIMIT,
    )
    return {"ok": True, "items": [to_listing(row) for row in rows]}


async def get_listing_details(listing_id: int) -> dict:
    row = await _active_listing_or_404(listing_id)
    requests_count = await repository.count_requests(listing_id)
    messages = await repository.recent_messages(listing_id, limit=DETAIL_MESSAGES)
    rating = await repository.rating_summary(listing_id)
    return {
        "ok": True,
        "item": to_listing(row),
        "requests_count": requests_count,
        "messages": messages,
        "avg_rating": rating["avg_rating"],
        "reviews_count": rating["reviews_count"],
    }


async def update_listing(listing_id: int, body: schemas.UpdateListingRequest, *, caller: dict) -> dict:
    row = await _active_listing_or_404(listing_id)
    _require_editor(caller, int(row["user_id"]))

    fields: dict[str, Any] = {name: safe_trim(getattr(body, name)) for name in _TEXT_FIELDS}
    for name in _NUMBER_FIELDS:
        fields[name] = to_finite_float(getattr(body, name))

    updated = await repository.update_listing(listing_id, fields=fields, data=body.payload())
    if updated is None:
        # Deleted between the read and the write.
        raise HTTPException(status_code=404, detail="Not found")
    return {"ok": True, "item": to_listing(updated)}


async def delete_listing(listing_id: int, *, caller: dict) -> dict:
    row = await _active_listing_or_404(listing_id)
    _require_editor(caller, int(row["user_id"]))

    await repository.soft_delete_listing(listing_id)
    logger.info("listing_deleted listing_id=%s by=%s", listing_id, caller["id"])
    return {"ok": True}


async def change_listing_status(listing_id: int, body: schemas.ListingStatusRequest, *, caller: dict) -> dict:
    row = await _active_listing_or_404(listing_id)
    _require_editor(caller, int(row["user_id"]))

    target = safe_trim(body.status).lower()
    if target not in LISTING_STATUSES:
        raise HTTPException(status_code=400, detail="Bad status")

    current = str(row.get("status") or "open")
    if target not in STATUS_TRANSITIONS.get(current, ()):
        raise HTTPException(status_code=400, detail="Invalid status transition")

    updated = await repository.set_listing_status(listing_id, status=target, expected=current)
    if updated is None:
        raise HTTPException(status_code=400, detail="Invalid status transition")
    logger.info("listing_status listing_id=%s from=%s to=%s", listing_id, current, target)
    return {"ok": True, "item": to_listing(updated)}


# ---------------------------------------------------------------------------
# match requests
# ---------------------------------------------------------------------------


async def request_listing(listing_id: int, *, caller: dict) -> dict:
    listing = await _active_listing_or_404(listing_id)
    requester_id = int(caller["id"])

    if int(listing["user_id"]) == requester_id:
        raise HTTPException(status_code=400, detail="You can't request your own listing")

    if str(listing.get("status")) != "open":
        raise HTTPException(status_code=400, detail="Listing not open")

    row = await repository.open_request(listing_id, requester_id=requester_id)
    if row is None:
        raise HTTPException(status_code=400, detail="Already requested")

    logger.info("request_opened request_id=%s listing_id=%s requester_id=%s", row["id"], listing_id, requester_id)
    return {"ok": True, "request_id": int(row["id"]), "status": "pending"}


async def list_listing_requests(listing_id: int, *, caller: dict) -> dict:
    listing = await _active_listing_or_404(listing_id)
    _require_editor(caller, int(listing["user_id"]))
    return {"ok": True, "items": await repository.list_requests(listing_id)}


async def _request_and_listing(request_id: int) -> tuple[dict[str, Any], dict[str, Any]]:
    request_row = await repository.get_request(request_id)
    if request_row is None:
        raise HTTPException(status_code=404, detail="Not found")

    listing = await repository.get_listing(int(request_row["listing_id"]), active_only=False)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing missing")
    return request_row, listing


def _require_pending(request_row: dict[str, Any]) -> None:
    if str(request_row.get("status")) != "pending":
        raise HTTPException(status_code=400, detail="Request is not pending")


def _require_open(listing: dict[str, Any]) -> None:
    if int(listing.get("is_active") or 0) != 1 or str(listing.get("status")) != "open":
        raise HTTPException(status_code=400, detail="Listing not open")


async def accept_request(request_id: int, *, caller: dict) -> dict:
    request_row, listing = await _request_and_listing(request_id)
    _require_editor(caller, int(listing["user_id"]))
    _require_pending(request_row)
    _require_open(listing)

    try:
        await repository.accept_request(request_id, listing_id=int(listing["id"]))
    except repository.AcceptConflict as exc:
        detail = "Listing not open" if exc.reason == "listing" else "Request is not pending"
        raise HTTPException(status_code=400, detail=detail) from exc

    logger.info("request_accepted request_id=%s listing_id=%s", request_id, listing["id"])
    return {"ok": True}


async def reject_request(request_id: int, *, caller: dict) -> dict:
    request_row, listing = await _request_and_listing(request_id)
    _require_editor(caller, int(listing["user_id"]))
    _require_pending(request_row)

    if not await repository.set_request_status(request_id, status="rejected"):
        raise HTTPException(status_code=400, detail="Request is not pending")

    logger.info("request_rejected request_id=%s listing_id=%s", request_id, listing["id"])
    return {"ok": True}


async def cancel_request(request_id: int, *, caller: dict) -> dict:
    request_row = await repository.get_request(request_id)
    if request_row is None:
        raise HTTPException(status_code=404, detail="Not found")

    # The requester withdraws their own claim; admins may do it for them.
    _require_editor(caller, int(request_row["requester_id"]))
    _require_pending(request_row)

    if not await repository.set_request_status(request_id, status="cancelled"):
        raise HTTPException(status_code=400, detail="Request is not pending")
    return {"ok": True}


# ---------------------------------------------------------------------------
# messages
# ---------------------------------------------------------------------------


async def list_messages(listing_id: int) -> dict:
    await _any_listing_or_404(listing_id)
    rows = await repository.list_messages(listing_id, limit=MESSAGES_LIMIT)
    return {"ok": True, "messages": rows}


async def post_message(listing_id: int, body: schemas.MessageRequest, *, caller: dict) -> dict:
    message = safe_trim(body.message)
    if not message:
        raise HTTPException(status_code=400, detail="Missing message")

    await _any_listing_or_404(listing_id)
    row = await repository.insert_message(listing_id, sender_id=int(caller["id"]), message=message)
    return {"ok": True, "message": row}


# ---------------------------------------------------------------------------
# reviews
# ---------------------------------------------------------------------------


async def submit_review(listing_id: int, body: schemas.ReviewRequest, *, caller: dict) -> dict:
    raw_rating = body.rating if body.rating is not None else body.stars
    rating = clamp_rating(raw_rating)
    if rating is None:
        raise HTTPException(status_code=400, detail="Bad rating")

    comment = safe_trim(body.comment) or None
    listing = await _any_listing_or_404(listing_id)

    reviewed_user_id = to_int(body.reviewed_user_id) or int(listing["user_id"])
    await repository.insert_review(
        listing_id,
        reviewer_id=int(caller["id"]),
        reviewed_user_id=reviewed_user_id,
        rating=rating,
        comment=comment,
    )
    return {"ok": True}


async def list_reviews(listing_id: int) -> dict:
    await _any_listing_or_404(listing_id)
    return {"ok": True, "items": await repository.list_reviews(listing_id)}
