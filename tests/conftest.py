"""Shared test fixtures.

HTTP tests run the real FastAPI app with real JWT validation. The carry
repository is swapped for an in-memory store so no database is needed; the
app lifespan (pool + schema) is never entered.
"""

import json
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest

# Add api directory to Python path for imports
api_path = Path(__file__).parent.parent / "api"
sys.path.insert(0, str(api_path))

os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALG"] = "HS256"
os.environ.pop("ADMIN_USER_IDS", None)

TEST_SECRET = "test-secret"


def make_token(user_id, **claims):
    payload = {"sub": str(user_id), "type": "access", **claims}
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


class FakeCarryStore:
    """In-memory stand-in for carry.repository, same call signatures."""

    def __init__(self):
        self.listings = {}
        self.requests = {}
        self.messages = {}
        self.reviews = {}
        self._ids = {"listing": 0, "request": 0, "message": 0, "review": 0}
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.accept_calls = []

    def _next_id(self, kind):
        self._ids[kind] += 1
        return self._ids[kind]

    def _now(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    # listings

    async def insert_listing(self, *, user_id, role, fields, data):
        now = self._now()
        row = {
            "id": self._next_id("listing"),
            "user_id": user_id,
            "role": role,
            **fields,
            "status": "open",
            "is_active": 1,
            "data": json.dumps(data),
            "created_at": now,
            "updated_at": now,
        }
        self.listings[row["id"]] = row
        return dict(row)

    async def list_listings(self, *, role=None, query="", from_country="", to_country="", limit=200):
        searchable = ("from_country", "from_city", "to_country", "to_city", "item_type", "description")
        rows = [r for r in self.listings.values() if r["is_active"] == 1]
        if role:
            rows = [r for r in rows if r["role"] == role]
        if query:
            rows = [r for r in rows if any(query in (r.get(c) or "") for c in searchable)]
        if from_country:
            rows = [r for r in rows if r.get("from_country") == from_country]
        if to_country:
            rows = [r for r in rows if r.get("to_country") == to_country]
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return [dict(r) for r in rows[:limit]]

    async def get_listing(self, listing_id, *, active_only=True):
        row = self.listings.get(listing_id)
        if row is None or (active_only and row["is_active"] != 1):
            return None
        return dict(row)

    async def count_requests(self, listing_id):
        return sum(1 for r in self.requests.values() if r["listing_id"] == listing_id)

    async def rating_summary(self, listing_id):
        ratings = [r["rating"] for r in self.reviews.values() if r["listing_id"] == listing_id]
        avg = sum(ratings) / len(ratings) if ratings else 0.0
        return {"avg_rating": float(avg), "reviews_count": len(ratings)}

    async def update_listing(self, listing_id, *, fields, data):
        row = self.listings.get(listing_id)
        if row is None or row["is_active"] != 1:
            return None
        for name, value in fields.items():
            if name in ("available_weight", "reward_amount"):
                if value is not None:
                    row[name] = value
            elif value:
                row[name] = value
        row["data"] = json.dumps(data)
        row["updated_at"] = self._now()
        return dict(row)

    async def soft_delete_listing(self, listing_id):
        row = self.listings.get(listing_id)
        if row is None or row["is_active"] != 1:
            return False
        row["is_active"] = 0
        row["updated_at"] = self._now()
        return True

    async def set_listing_status(self, listing_id, *, status, expected):
        row = self.listings.get(listing_id)
        if row is None or row["is_active"] != 1 or row["status"] != expected:
            return None
        row["status"] = status
        row["updated_at"] = self._now()
        return dict(row)

    # requests

    async def open_request(self, listing_id, *, requester_id):
        for row in self.requests.values():
            if row["listing_id"] == listing_id and row["requester_id"] == requester_id:
                if row["status"] != "cancelled":
                    return None
                row["status"] = "pending"
                return dict(row)
        row = {
            "id": self._next_id("request"),
            "listing_id": listing_id,
            "requester_id": requester_id,
            "status": "pending",
            "created_at": self._now(),
        }
        self.requests[row["id"]] = row
        return dict(row)

    async def get_request(self, request_id):
        row = self.requests.get(request_id)
        return dict(row) if row else None

    async def list_requests(self, listing_id):
        rows = [dict(r) for r in self.requests.values() if r["listing_id"] == listing_id]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)

    async def set_request_status(self, request_id, *, status, expected="pending"):
        row = self.requests.get(request_id)
        if row is None or row["status"] != expected:
            return False
        row["status"] = status
        return True

    async def accept_request(self, request_id, *, listing_id):
        from carry.repository import AcceptConflict

        self.accept_calls.append((request_id, listing_id))
        row = self.requests.get(request_id)
        if row is None or row["status"] != "pending":
            raise AcceptConflict("request")
        listing = self.listings.get(listing_id)
        if listing is None or listing["status"] != "open" or listing["is_active"] != 1:
            raise AcceptConflict("listing")
        row["status"] = "accepted"
        listing["status"] = "matched"

    # messages

    async def insert_message(self, listing_id, *, sender_id, message):
        row = {
            "id": self._next_id("message"),
            "listing_id": listing_id,
            "sender_id": sender_id,
            "message": message,
            "created_at": self._now(),
        }
        self.messages[row["id"]] = row
        return dict(row)

    async def list_messages(self, listing_id, *, limit=200):
        rows = [dict(r) for r in self.messages.values() if r["listing_id"] == listing_id]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]))[:limit]

    async def recent_messages(self, listing_id, *, limit=20):
        rows = [dict(r) for r in self.messages.values() if r["listing_id"] == listing_id]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)[:limit]

    # reviews

    async def insert_review(self, listing_id, *, reviewer_id, reviewed_user_id, rating, comment):
        row = {
            "id": self._next_id("review"),
            "listing_id": listing_id,
            "reviewer_id": reviewer_id,
            "reviewed_user_id": reviewed_user_id,
            "rating": rating,
            "comment": comment,
            "created_at": self._now(),
        }
        self.reviews[row["id"]] = row

    async def list_reviews(self, listing_id, *, limit=200):
        rows = [dict(r) for r in self.reviews.values() if r["listing_id"] == listing_id]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)[:limit]


_STORE_FUNCTIONS = (
    "insert_listing",
    "list_listings",
    "get_listing",
    "count_requests",
    "rating_summary",
    "update_listing",
    "soft_delete_listing",
    "set_listing_status",
    "open_request",
    "get_request",
    "list_requests",
    "set_request_status",
    "accept_request",
    "insert_message",
    "list_messages",
    "recent_messages",
    "insert_review",
    "list_reviews",
)


@pytest.fixture
def carry_store(monkeypatch):
    """Replace carry.repository with an in-memory store."""
    from carry import repository

    store = FakeCarryStore()
    for name in _STORE_FUNCTIONS:
        monkeypatch.setattr(repository, name, getattr(store, name))
    return store


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from main import app

    # Not used as a context manager: the lifespan would open a DB pool.
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth():
    """auth(user_id, **claims) -> Authorization headers."""

    def _headers(user_id, **claims):
        return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}

    return _headers


# PostgreSQL fixtures

_TRUNCATE_SQL = """
    TRUNCATE carry_reviews, carry_messages, carry_requests, carry_listings, airports
    RESTART IDENTITY
"""


@pytest.fixture
def pg():
    """Run a coroutine against the real database in DATABASE_URL.

    Each call opens the pool, ensures the schema, empties the tables, runs
    the coroutine and closes the pool. Point DATABASE_URL at a throwaway
    database: the tables are truncated.
    """
    import asyncio

    if not os.environ.get("DATABASE_URL", "").strip():
        pytest.skip("DATABASE_URL is not set")

    from airports import repository as airports_repository
    from carry import repository as carry_repository
    from core import db

    def _run(test_coro):
        async def _wrapped():
            await db.init_pool()
            try:
                await carry_repository.ensure_schema()
                await airports_repository.ensure_schema()
                await db.execute(_TRUNCATE_SQL)
                return await test_coro()
            finally:
                await db.close_pool()

        return asyncio.run(_wrapped())

    return _run
