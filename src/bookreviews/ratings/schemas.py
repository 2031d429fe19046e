"""Schemas for rating aggregates."""

from pydantic import BaseModel, Field


class RatingSnapshot(BaseModel):
    """Aggregate values written to a book after a recompute."""

    book_id: str
    review_count: int = Field(ge=0)
    average_rating: float = Field(ge=0)


class RatingDrift(BaseModel):
    """Mismatch between the stored aggregate and the reviews it derives from."""

    book_id: str
    title: str
    stored_count: int
    stored_average: float
    actual_count: int
    actual_average: float
