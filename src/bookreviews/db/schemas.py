"""Pydantic schemas for book data validation.

Book input is trimmed and validated here so the managers only ever see
clean values: non-empty title and author, a known genre and a plausible
publication year.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..display import format_rating

MIN_PUBLICATION_YEAR = 1000


class Genre(str, Enum):
    """Fixed set of genres a book can be filed under."""

    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    MYSTERY = "Mystery"
    THRILLER = "Thriller"
    ROMANCE = "Romance"
    BIOGRAPHY = "Biography"


def max_publication_year() -> int:
    """Latest accepted publication year (announced books included)."""
    return date.today().year + 1


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _check_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return None
    upper = max_publication_year()
    if not MIN_PUBLICATION_YEAR <= v <= upper:
        raise ValueError(f"publication year must be between {MIN_PUBLICATION_YEAR} and {upper}")
    return v


# ============================================================================
# Book Schemas
# ============================================================================


class BookBase(BaseModel):
    """Editable book fields common to create/update operations."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=500, description="Book title")
    author: str = Field(..., min_length=1, max_length=500, description="Primary author")
    description: Optional[str] = None
    genre: Optional[Genre] = None
    publication_year: Optional[int] = Field(None, description="Year of publication")

    @field_validator("description", "genre", "publication_year", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        """Form-style blank values mean 'not given'."""
        return _blank_to_none(v)

    @field_validator("publication_year")
    @classmethod
    def plausible_year(cls, v: Optional[int]) -> Optional[int]:
        """Validate publication year is within a plausible range."""
        return _check_year(v)


class BookCreate(BookBase):
    """Schema for creating a new book."""

    pass


class BookUpdate(BaseModel):
    """Schema for updating an existing book. All fields optional.

    Owner and rating aggregates are not part of this schema and can never be
    written through an update.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    genre: Optional[Genre] = None
    publication_year: Optional[int] = None

    @field_validator("description", "genre", "publication_year", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        return _blank_to_none(v)

    @field_validator("title", "author")
    @classmethod
    def required_fields_not_cleared(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("cannot be cleared")
        return v

    @field_validator("publication_year")
    @classmethod
    def plausible_year(cls, v: Optional[int]) -> Optional[int]:
        return _check_year(v)


class BookResponse(BookBase):
    """Schema for book responses (includes DB-generated fields)."""

    id: str
    owner_id: str
    average_rating: float
    review_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def rating_display(self) -> str:
        return format_rating(self.average_rating, self.review_count)
