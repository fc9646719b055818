"""
Carry marketplace persistence (raw SQL).

Tables: carry_listings, carry_requests, carry_messages, carry_reviews.
"""

from __future__ import annotations

import json
from typing import Any

from core import db

LISTING_COLUMNS = """
    id, user_id, role, from_country, from_city, to_country, to_city,
    travel_date, arrival_date, available_weight, item_type, description,
    reward_amount, currency, status, is_active, data, created_at, updated_at
"""

MESSAGE_COLUMNS = "id, listing_id, sender_id, message, created_at"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS carry_listings (
        id bigserial PRIMARY KEY,
        user_id bigint NOT NULL,
        role text NOT NULL,
        from_country text,
        from_city text,
        to_country text,
        to_city text,
        travel_date text,
        arrival_date text,
        available_weight double precision,
        item_type text,
        description text,
        reward_amount double precision,
        currency text DEFAULT 'USD',
        status text NOT NULL DEFAULT 'open',
        is_active smallint NOT NULL DEFAULT 1,
        data jsonb NOT NULL DEFAULT '{}'::jsonb,
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_carry_listings_active_created
    ON carry_listings (is_active, created_at DESC, id DESC)
    """,
    "CREATE INDEX IF NOT EXISTS idx_carry_listings_user ON carry_listings (user_id)",
    """
    CREATE TABLE IF NOT EXISTS carry_requests (
        id bigserial PRIMARY KEY,
        listing_id bigint NOT NULL REFERENCES carry_listings (id),
        requester_id bigint NOT NULL,
        status text NOT NULL DEFAULT 'pending',
        created_at timestamptz NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_carry_requests_listing_requester
    ON carry_requests (listing_id, requester_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS carry_messages (
        id bigserial PRIMARY KEY,
        listing_id bigint NOT NULL REFERENCES carry_listings (id),
        sender_id bigint NOT NULL,
        message text NOT NULL,
        created_at timestamptz NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_carry_messages_listing
    ON carry_messages (listing_id, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS carry_reviews (
        id bigserial PRIMARY KEY,
        listing_id bigint NOT NULL REFERENCES carry_listings (id),
        reviewer_id bigint NOT NULL,
        reviewed_user_id bigint NOT NULL,
        rating smallint NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment text,
        created_at timestamptz NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_carry_reviews_listing ON carry_reviews (listing_id)",
)


def _json_arg(value: dict[str, Any] | None) -> str:
    """
    asyncpg does not encode dicts for jsonb parameters; pass text and cast.
    """
    return json.dumps(value or {}, ensure_ascii=True, default=str)


async def ensure_schema() -> None:
    async with db.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------


async def insert_listing(
    *,
    user_id: int,
    role: str,
    fields: dict[str, Any],
    data: dict[str, Any],
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO carry_listings
          (user_id, role, from_country, from_city, to_country, to_city,
           travel_date, arrival_date, available_weight, item_type, description,
           reward_amount, currency, status, is_active, data)
        VALUES
          ($1, $2, $3, $4, $5, $6,
           $7, $8, $9, $10, $11,
           $12, $13, 'open', 1, $14::jsonb)
        RETURNING {LISTING_COLUMNS}
        """,
        user_id,
        role,
        fields.get("from_country"),
        fields.get("from_city"),
        fields.get("to_country"),
        fields.get("to_city"),
        fields.get("travel_date"),
        fields.get("arrival_date"),
        fields.get("available_weight"),
        fields.get("item_type"),
        fields.get("description"),
        fields.get("reward_amount"),
        fields.get("currency") or "USD",
        _json_arg(data),
    )
    if row is None:
        raise RuntimeError("Failed to create listing.")
    return row


async def list_listings(
    *,
    role: str | None = None,
    query: str = "",
    from_country: str = "",
    to_country: str = "",
    limit: int = 200,
) -> list[dict[str, Any]]:
    """
    Active listings, newest first. `query` is a case-sensitive substring
    match over the place/item/description columns.
    """
    where = ["is_active = 1"]
    args: list[Any] = []

    if role:
        args.append(role)
        where.append(f"role = ${len(args)}")

    if query:
        args.append(query)
        n = len(args)
        where.append(
            "("
            + " OR ".join(
                f"strpos(COALESCE({col}, ''), ${n}) > 0"
                for col in ("from_country", "from_city", "to_country", "to_city", "item_type", "description")
            )
            + ")"
        )

    if from_country:
        args.append(from_country)
        where.append(f"from_country = ${len(args)}")

    if to_country:
        args.append(to_country)
        where.append(f"to_country = ${len(args)}")

    args.append(limit)
    sql = f"""
        SELECT {LISTING_COLUMNS}
        FROM carry_listings
        WHERE {" AND ".join(where)}
        ORDER BY created_at DESC, id DESC
        LIMIT ${len(args)}
    """
    return await db.fetch_all(sql, *args)


async def get_listing(listing_id: int, *, active_only: bool = True) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {LISTING_COLUMNS}
        FROM carry_listings
        WHERE id = $1
          AND ($2::boolean = false OR is_active = 1)
        """,
        listing_id,
        active_only,
    )


async def count_requests(listing_id: int) -> int:
    n = await db.fetch_val(
        "SELECT count(*) FROM carry_requests WHERE listing_id = $1",
        listing_id,
    )
    return int(n or 0)


async def rating_summary(listing_id: int) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        SELECT COALESCE(avg(rating), 0)::float AS avg_rating,
               count(*) AS reviews_count
        FROM carry_reviews
        WHERE listing_id = $1
        """,
        listing_id,
    )
    row = row or {}
    return {
        "avg_rating": float(row.get("avg_rating") or 0),
        "reviews_count": int(row.get("reviews_count") or 0),
    }


async def update_listing(
    listing_id: int,
    *,
    fields: dict[str, Any],
    data: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Merge-by-field update: '' keeps the text column, None keeps the number.
    """
    return await db.fetch_one(
        f"""
        UPDATE carry_listings SET
          from_country = COALESCE(NULLIF($2, ''), from_country),
          from_city = COALESCE(NULLIF($3, ''), from_city),
          to_country = COALESCE(NULLIF($4, ''), to_country),
          to_city = COALESCE(NULLIF($5, ''), to_city),
          travel_date = COALESCE(NULLIF($6, ''), travel_date),
          arrival_date = COALESCE(NULLIF($7, ''), arrival_date),
          available_weight = COALESCE($8::double precision, available_weight),
          item_type = COALESCE(NULLIF($9, ''), item_type),
          description = COALESCE(NULLIF($10, ''), description),
          reward_amount = COALESCE($11::double precision, reward_amount),
          currency = COALESCE(NULLIF($12, ''), currency),
          data = $13::jsonb,
          updated_at = now()
        WHERE id = $1
          AND is_active = 1
        RETURNING {LISTING_COLUMNS}
        """,
        listing_id,
        fields.get("from_country", ""),
        fields.get("from_city", ""),
        fields.get("to_country", ""),
        fields.get("to_city", ""),
        fields.get("travel_date", ""),
        fields.get("arrival_date", ""),
        fields.get("available_weight"),
        fields.get("item_type", ""),
        fields.get("description", ""),
        fields.get("reward_amount"),
        fields.get("currency", ""),
        _json_arg(data),
    )


async def soft_delete_listing(listing_id: int) -> bool:
    row = await db.fetch_one(
        """
        UPDATE carry_listings
        SET is_active = 0,
            updated_at = now()
        WHERE id = $1
          AND is_active = 1
        RETURNING id
        """,
        listing_id,
    )
    return row is not None


async def set_listing_status(listing_id: int, *, status: str, expected: str) -> dict[str, Any] | None:
    """
    Compare-and-set on status. Returns None when the stored status moved on.
    """
    return await db.fetch_one(
        f"""
        UPDATE carry_listings
        SET status = $2,
            updated_at = now()
        WHERE id = $1
          AND is_active = 1
          AND status = $3
        RETURNING {LISTING_COLUMNS}
        """,
        listing_id,
        status,
        expected,
    )


# ---------------------------------------------------------------------------
# match requests
# ---------------------------------------------------------------------------


async def open_request(listing_id: int, *, requester_id: int) -> dict[str, Any] | None:
    """
    Insert a pending request, or reopen this requester's cancelled one.

    Returns None when a non-cancelled request from the requester already exists.
    """
    return await db.fetch_one(
        """
        INSERT INTO carry_requests (listing_id, requester_id, status)
        VALUES ($1, $2, 'pending')
        ON CONFLICT (listing_id, requester_id) DO UPDATE
        SET status = 'pending'
        WHERE carry_requests.status = 'cancelled'
        RETURNING id, listing_id, requester_id, status, created_at
        """,
        listing_id,
        requester_id,
    )


async def get_request(request_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, listing_id, requester_id, status, created_at
        FROM carry_requests
        WHERE id = $1
        """,
        request_id,
    )


async def list_requests(listing_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, listing_id, requester_id, status, created_at
        FROM carry_requests
        WHERE listing_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        listing_id,
    )


async def set_request_status(request_id: int, *, status: str, expected: str = "pending") -> bool:
    row = await db.fetch_one(
        """
        UPDATE carry_requests
        SET status = $2
        WHERE id = $1
          AND status = $3
        RETURNING id
        """,
        request_id,
        status,
        expected,
    )
    return row is not None


class AcceptConflict(RuntimeError):
    """
    Accept could not be applied; `reason` is "request" (no longer pending)
    or "listing" (no longer open/active). Nothing was written.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"accept conflict: {reason}")


async def accept_request(request_id: int, *, listing_id: int) -> None:
    """
    Mark the request accepted and the listing matched, in one transaction.

    Raises AcceptConflict (rolling back both writes) when the request is not
    pending or the listing is not an active, open listing.
    """
    async with db.transaction() as conn:
        accepted = await conn.fetchval(
            """
            UPDATE carry_requests
            SET status = 'accepted'
            WHERE id = $1
              AND status = 'pending'
            RETURNING id
            """,
            request_id,
        )
        if accepted is None:
            raise AcceptConflict("request")
        matched = await conn.fetchval(
            """
            UPDATE carry_listings
            SET status = 'matched',
                updated_at = now()
            WHERE id = $1
              AND status = 'open'
              AND is_active = 1
            RETURNING id
            """,
            listing_id,
        )
        if matched is None:
            raise AcceptConflict("listing")


# ---------------------------------------------------------------------------
# messages
# ---------------------------------------------------------------------------


async def list_messages(listing_id: int, *, limit: int = 200) -> list[dict[str, Any]]:
    """
    Oldest first.
    """
    return await db.fetch_all(
        f"""
        SELECT {MESSAGE_COLUMNS}
        FROM carry_messages
        WHERE listing_id = $1
        ORDER BY created_at ASC, id ASC
        LIMIT $2
        """,
        listing_id,
        limit,
    )


async def recent_messages(listing_id: int, *, limit: int = 20) -> list[dict[str, Any]]:
    """
    Newest first.
    """
    return await db.fetch_all(
        f"""
        SELECT {MESSAGE_COLUMNS}
        FROM carry_messages
        WHERE listing_id = $1
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        """,
        listing_id,
        limit,
    )


async def insert_message(listing_id: int, *, sender_id: int, message: str) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO carry_messages (listing_id, sender_id, message)
        VALUES ($1, $2, $3)
        RETURNING {MESSAGE_COLUMNS}
        """,
        listing_id,
        sender_id,
        message,
    )
    if row is None:
        raise RuntimeError("Failed to insert message.")
    return row


# ---------------------------------------------------------------------------
# reviews
# ---------------------------------------------------------------------------


async def insert_review(
    listing_id: int,
    *,
    reviewer_id: int,
    reviewed_user_id: int,
    rating: int,
    comment: str | None,
) -> None:
    await db.execute(
        """
        INSERT INTO carry_reviews (listing_id, reviewer_id, reviewed_user_id, rating, comment)
        VALUES ($1, $2, $3, $4, $5)
        """,
        listing_id,
        reviewer_id,
        reviewed_user_id,
        rating,
        comment,
    )


async def list_reviews(listing_id: int, *, limit: int = 200) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, listing_id, reviewer_id, reviewed_user_id, rating, comment, created_at
        FROM carry_reviews
        WHERE listing_id = $1
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        """,
        listing_id,
        limit,
    )
