"""Pydantic schemas for reader profiles."""

from pydantic import BaseModel, ConfigDict, Field

from ..catalog.schemas import BookSummary
from ..reviews.schemas import AuthoredReview


class ProfileUpdate(BaseModel):
    """Schema for setting a display name."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)


class ProfileActivity(BaseModel):
    """A user's books and reviews, newest first."""

    user_id: str
    name: str
    books: list[BookSummary] = Field(default_factory=list)
    reviews: list[AuthoredReview] = Field(default_factory=list)

    @property
    def books_added(self) -> int:
        return len(self.books)

    @property
    def reviews_written(self) -> int:
        return len(self.reviews)
