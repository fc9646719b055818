"""
Pydantic request bodies for the carry endpoints.

Listing bodies allow extra keys: the whole body is kept as the listing's
opaque `data` payload. Numbers are accepted as JSON numbers or numeric strings
and coerced by the service; text fields accept numbers too.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

Number = float | str | None
Text = str | int | float | None


class ListingFields(BaseModel):
    model_config = ConfigDict(extra="allow")

    from_country: Text = None
    from_city: Text = None
    to_country: Text = None
    to_city: Text = None
    travel_date: Text = None
    arrival_date: Text = None
    available_weight: Number = None
    item_type: Text = None
    description: Text = None
    reward_amount: Number = None
    currency: Text = None

    def payload(self) -> dict[str, Any]:
        """
        The body as the caller sent it (declared and extra keys).
        """
        return self.model_dump(exclude_unset=True)


class CreateListingRequest(ListingFields):
    role: str | None = None


class UpdateListingRequest(ListingFields):
    pass


class ListingStatusRequest(BaseModel):
    status: str | None = None


class MessageRequest(BaseModel):
    message: str | None = None


class ReviewRequest(BaseModel):
    rating: Number = None
    stars: Number = None
    comment: str | None = None
    reviewed_user_id: int | str | None = None
