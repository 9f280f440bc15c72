"""
API endpoints for provider reviews.

Anyone may read the reviews of a therapist or salon; posting requires
an account.  Authors and administrators may delete a review, after
which the provider's rating is recomputed.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import get_current_user
from beauty_marketplace_api.app.schemas.review import ReviewCreate, ReviewRead
from beauty_marketplace_api.app.services.review_service import ReviewService


router = APIRouter()


@router.post("", response_model=ReviewRead, status_code=status.HTTP_201_CREATED, summary="Submit a review")
async def create_review(
    data: ReviewCreate,
    current_user: dict = Depends(get_current_user),
) -> ReviewRead:
    try:
        return await ReviewService.create_review(data, current_user.get("user_id"))
    except ValueError as e:
        raise http_error(e)


@router.get("/therapist/{therapist_id}", response_model=List[ReviewRead], summary="Reviews of a therapist")
async def therapist_reviews(
    therapist_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[ReviewRead]:
    try:
        return await ReviewService.list_reviews(therapist_id=therapist_id, limit=limit, offset=offset)
    except ValueError as e:
        raise http_error(e)


@router.get("/salon/{salon_id}", response_model=List[ReviewRead], summary="Reviews of a salon")
async def salon_reviews(
    salon_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[ReviewRead]:
    try:
        return await ReviewService.list_reviews(salon_id=salon_id, limit=limit, offset=offset)
    except ValueError as e:
        raise http_error(e)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a review")
async def delete_review(review_id: int, current_user: dict = Depends(get_current_user)) -> None:
    try:
        await ReviewService.delete_review(review_id, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)
