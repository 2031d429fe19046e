"""Schemas for catalog queries and result pages."""

import math
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..db.schemas import Genre
from ..display import format_rating


class SortField(str, Enum):
    """Fields the catalog can be ordered by."""

    CREATED_AT = "created_at"
    AVERAGE_RATING = "average_rating"
    TITLE = "title"
    PUBLICATION_YEAR = "publication_year"


class SortDirection(str, Enum):
    """Sort order for results."""

    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    """A single sort key with its direction."""

    model_config = ConfigDict(frozen=True)

    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, value: str) -> "SortSpec":
        """Parse the legacy ``-field`` form (leading minus means descending).

        Only meant for user-facing boundaries such as the CLI.
        """
        value = value.strip()
        direction = SortDirection.ASC
        if value.startswith("-"):
            direction = SortDirection.DESC
            value = value[1:]
        return cls(field=SortField(value), direction=direction)

    def __str__(self) -> str:
        prefix = "-" if self.direction == SortDirection.DESC else ""
        return f"{prefix}{self.field.value}"


class CatalogQuery(BaseModel):
    """Search, filter, sort and page criteria for listing books."""

    model_config = ConfigDict(str_strip_whitespace=True)

    search_term: Optional[str] = Field(None, max_length=200)
    genre: Optional[Genre] = None
    sort: SortSpec = Field(default_factory=SortSpec)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("search_term", "genre", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        """An empty search box or 'All Genres' imposes no restriction."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class BookSummary(BaseModel):
    """Book fields shown in a catalog listing."""

    id: str
    title: str
    author: str
    genre: Optional[str]
    publication_year: Optional[int]
    average_rating: float
    review_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def rating_display(self) -> str:
        return format_rating(self.average_rating, self.review_count)


class CatalogPage(BaseModel):
    """One page of catalog results."""

    items: list[BookSummary] = Field(default_factory=list)
    total_matching: int = 0
    page: int = 1
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    error: Optional[str] = None  # set when the listing degraded to empty

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_matching / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def ok(self) -> bool:
        return self.error is None
