"""
Carry marketplace API endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/carry")

# bigint primary keys
MAX_ID = 2**63 - 1

ListingId = Annotated[int, Path(ge=1, le=MAX_ID, description="Listing id")]
RequestId = Annotated[int, Path(ge=1, le=MAX_ID, description="Match request id")]


@router.post("/listings")
async def create_listing(
    request: schemas.CreateListingRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_listing(request, caller=current_user)


@router.get("/listings")
async def list_listings(
    role: str | None = Query(default=None, max_length=50),
    q: str | None = Query(default=None, max_length=500),
    from_country: str | None = Query(default=None, max_length=200),
    to_country: str | None = Query(default=None, max_length=200),
    _: dict | None = Depends(auth_dependencies.get_optional_user),
) -> dict:
    return await service.list_listings(
        role=role,
        q=q,
        from_country=from_country,
        to_country=to_country,
    )


@router.get("/listings/{listing_id}")
async def get_listing(
    listing_id: ListingId,
    _: dict | None = Depends(auth_dependencies.get_optional_user),
) -> dict:
    return await service.get_listing_details(listing_id)


@router.patch("/listings/{listing_id}")
async def update_listing(
    request: schemas.UpdateListingRequest,
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.update_listing(listing_id, request, caller=current_user)


@router.delete("/listings/{listing_id}")
async def delete_listing(
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    """
    Soft delete: the listing disappears from reads, attached rows stay.
    """
    return await service.delete_listing(listing_id, caller=current_user)


@router.patch("/listings/{listing_id}/status")
async def change_listing_status(
    request: schemas.ListingStatusRequest,
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.change_listing_status(listing_id, request, caller=current_user)


@router.post("/listings/{listing_id}/request")
async def request_listing(
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.request_listing(listing_id, caller=current_user)


@router.get("/listings/{listing_id}/requests")
async def list_listing_requests(
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_listing_requests(listing_id, caller=current_user)


@router.patch("/requests/{request_id}/accept")
async def accept_request(
    request_id: RequestId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.accept_request(request_id, caller=current_user)


@router.patch("/requests/{request_id}/reject")
async def reject_request(
    request_id: RequestId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.reject_request(request_id, caller=current_user)


@router.patch("/requests/{request_id}/cancel")
async def cancel_request(
    request_id: RequestId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.cancel_request(request_id, caller=current_user)


@router.get("/listings/{listing_id}/messages")
async def list_messages(
    listing_id: ListingId,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_messages(listing_id)


@router.post("/listings/{listing_id}/messages")
async def post_message(
    request: schemas.MessageRequest,
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.post_message(listing_id, request, caller=current_user)


@router.post("/listings/{listing_id}/review")
async def submit_review(
    request: schemas.ReviewRequest,
    listing_id: ListingId,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.submit_review(listing_id, request, caller=current_user)


@router.get("/listings/{listing_id}/reviews")
async def list_reviews(listing_id: ListingId) -> dict:
    return await service.list_reviews(listing_id)
