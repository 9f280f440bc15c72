"""
Business logic for reviews.

Provides creation, listing and deletion of reviews.  After every change
the rating and review_count of the reviewed therapist or salon are
recomputed from the remaining reviews.
"""

import logging
from typing import List, Optional, Tuple

from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.core.security import is_admin
from beauty_marketplace_api.app.schemas.review import ReviewCreate, ReviewRead
from beauty_marketplace_api.app.services.audit_service import AuditService
from beauty_marketplace_api.app.services.provider_service import ProviderService


logger = logging.getLogger(__name__)

REVIEW_SELECT = """
    SELECT r.id, r.user_id, r.therapist_id, r.salon_id, r.rating, r.comment,
           r.cleanliness, r.professionalism, r.value, r.created_at,
           TRIM(COALESCE(u.first_name, '') || ' ' || COALESCE(u.last_name, '')) AS author_name
    FROM reviews r LEFT JOIN users u ON u.id = r.user_id
"""


def _target(therapist_id: Optional[int], salon_id: Optional[int]) -> Tuple[str, int]:
    return ("therapist", therapist_id) if therapist_id else ("salon", salon_id)


def _row_to_review(row) -> ReviewRead:
    data = dict(row)
    data["author_name"] = data.get("author_name") or None
    return ReviewRead(**data)


class ReviewService:
    """Service for creating and listing reviews."""

    @classmethod
    def refresh_stats(cls, provider_type: str, provider_id: int) -> Tuple[float, int]:
        """Recompute rating (average, one decimal) and review_count of a provider."""
        table = "therapists" if provider_type == "therapist" else "salons"
        column = "therapist_id" if provider_type == "therapist" else "salon_id"
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT AVG(rating) AS avg_rating, COUNT(*) AS cnt FROM reviews WHERE {column} = ?",
                (provider_id,),
            ).fetchone()
            rating = round(row["avg_rating"], 1) if row["avg_rating"] is not None else 0.0
            count = row["cnt"]
            conn.execute(
                f"UPDATE {table} SET rating = ?, review_count = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (rating, count, provider_id),
            )
            conn.commit()
        finally:
            conn.close()
        return rating, count

    @classmethod
    async def create_review(cls, review_in: ReviewCreate, user_id: int) -> ReviewRead:
        """Create a new review.

        Parameters
        ----------
        review_in : ReviewCreate
            Review payload targeting exactly one therapist or salon.
        user_id : int
            Author of the review.

        Returns
        -------
        ReviewRead
            The stored review with its author name.
        """
        provider_type, provider_id = _target(review_in.therapist_id, review_in.salon_id)
        if not ProviderService.exists(provider_type, provider_id):
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO reviews (user_id, therapist_id, salon_id, rating, comment, cleanliness, "
                "professionalism, value) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    user_id,
                    review_in.therapist_id,
                    review_in.salon_id,
                    review_in.rating,
                    review_in.comment,
                    review_in.cleanliness,
                    review_in.professionalism,
                    review_in.value,
                ),
            )
            review_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()

        rating, count = cls.refresh_stats(provider_type, provider_id)
        logger.info("Review %s on %s %s, rating now %s over %d", review_id, provider_type, provider_id, rating, count)
        await AuditService.log(
            user_id, "create", "review", review_id, {provider_type + "_id": provider_id, "rating": review_in.rating}
        )
        return await cls.get_review(review_id)

    @classmethod
    async def get_review(cls, review_id: int) -> ReviewRead:
        conn = get_connection()
        try:
            row = conn.execute(REVIEW_SELECT + " WHERE r.id = ?", (review_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Review {review_id} not found")
        return _row_to_review(row)

    @classmethod
    async def list_reviews(
        cls,
        therapist_id: Optional[int] = None,
        salon_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ReviewRead]:
        """Reviews of a therapist or salon, newest first."""
        provider_type, provider_id = _target(therapist_id, salon_id)
        if not ProviderService.exists(provider_type, provider_id):
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")
        column = "therapist_id" if provider_type == "therapist" else "salon_id"
        conn = get_connection()
        try:
            rows = conn.execute(
                REVIEW_SELECT + f" WHERE r.{column} = ? ORDER BY r.created_at DESC, r.id DESC LIMIT ? OFFSET ?",
                (provider_id, limit, offset),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_review(r) for r in rows]

    @classmethod
    async def delete_review(cls, review_id: int, current_user: dict) -> None:
        """Delete a review as its author or an administrator."""
        review = await cls.get_review(review_id)
        if not is_admin(current_user) and review.user_id != current_user.get("user_id"):
            raise PermissionError("Only the author or an administrator can delete this review")
        conn = get_connection()
        try:
            conn.execute("DELETE FROM reviews WHERE id = ?", (review_id,))
            conn.commit()
        finally:
            conn.close()
        provider_type, provider_id = _target(review.therapist_id, review.salon_id)
        cls.refresh_stats(provider_type, provider_id)
        await AuditService.log(current_user.get("user_id"), "delete", "review", review_id, None)
