"""Pydantic schemas for book reviews."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..display import star_display


class ReviewInput(BaseModel):
    """Rating and text submitted for a review.

    Ratings are whole stars; floats, booleans and numeric strings are
    rejected rather than coerced.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(..., ge=1, le=5, strict=True)
    text: Optional[str] = Field(None, max_length=10000)

    @field_validator("text")
    @classmethod
    def blank_text_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ReviewResponse(BaseModel):
    """Schema for review responses, with the reviewer's display name."""

    id: str
    book_id: str
    author_id: str
    author_name: Optional[str] = None
    rating: int
    text: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def star_display(self) -> str:
        return star_display(self.rating)


class AuthoredReview(BaseModel):
    """A review listed under its author, with the reviewed book's details."""

    id: str
    book_id: str
    book_title: str
    book_author: str
    rating: int
    text: Optional[str]
    created_at: datetime

    @property
    def star_display(self) -> str:
        return star_display(self.rating)

    @classmethod
    def from_row(cls, review, book_title: str, book_author: str) -> "AuthoredReview":
        """Build from a (Review, title, author) query row."""
        return cls(
            id=review.id,
            book_id=review.book_id,
            book_title=book_title,
            book_author=book_author,
            rating=review.rating,
            text=review.text,
            created_at=review.created_at,
        )
