"""Review API endpoints.

Endpoints:
    POST   /api/v1/reviews?book_id=  - Add the caller's review
    DELETE /api/v1/reviews?book_id=  - Remove the caller's review
    GET    /api/v1/reviews?book_id=  - List a book's reviews
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from catalog.api.deps import get_review_service
from catalog.auth import AuthContext, get_auth_context
from catalog.core.reviews import MAX_RATE, MIN_RATE, ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


class ReviewRequest(BaseModel):
    """A rating with an optional comment."""

    rate: int = Field(..., ge=MIN_RATE, le=MAX_RATE)
    comment: str | None = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    success: bool = True
    message: str
    data: dict
    book_rate: float


class ReviewListResponse(BaseModel):
    success: bool = True
    data: list[dict]


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def add_review(
    body: ReviewRequest,
    book_id: str = Query(...),
    auth: AuthContext = Depends(get_auth_context),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    review, rate = await service.add_review(book_id, auth.caller_id, body.rate, body.comment)
    return ReviewResponse(message="Review added successfully", data=review.to_dict(), book_rate=rate)


@router.delete("", response_model=ReviewResponse)
async def delete_review(
    book_id: str = Query(...),
    auth: AuthContext = Depends(get_auth_context),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    review, rate = await service.delete_review(book_id, auth.caller_id)
    return ReviewResponse(message="Review deleted successfully", data=review.to_dict(), book_rate=rate)


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    book_id: str = Query(...),
    service: ReviewService = Depends(get_review_service),
) -> ReviewListResponse:
    reviews = await service.list_reviews(book_id)
    return ReviewListResponse(data=[r.to_dict() for r in reviews])
