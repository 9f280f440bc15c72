"""
Pydantic schemas for provider reviews.

A review targets either a therapist or a salon, never both.  Besides
the overall rating, clients may grade cleanliness, professionalism and
value on the same 1 to 5 scale.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ReviewCreate(BaseModel):
    """Schema for creating a new review."""

    therapist_id: Optional[int] = None
    salon_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional textual comment")
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    professionalism: Optional[int] = Field(None, ge=1, le=5)
    value: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 1000:
            raise ValueError("Comment must be 1000 characters or fewer")
        return v

    @model_validator(mode="after")
    def check_target(self) -> "ReviewCreate":
        if not self.therapist_id and not self.salon_id:
            raise ValueError("Either therapist_id or salon_id must be provided")
        if self.therapist_id and self.salon_id:
            raise ValueError("Cannot provide both therapist_id and salon_id")
        return self


class ReviewRead(BaseModel):
    id: int
    user_id: int
    therapist_id: Optional[int] = None
    salon_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    cleanliness: Optional[int] = None
    professionalism: Optional[int] = None
    value: Optional[int] = None
    created_at: Optional[str] = None
    author_name: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }
