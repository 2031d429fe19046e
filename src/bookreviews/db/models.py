"""SQLAlchemy ORM models for the book catalog.

Tables:
- books: Catalog entries with their derived rating aggregates
- reviews: One review per (book, reader), cascading with the book

Profiles live in their own package and register with the same
``Base``.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import CheckConstraint, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..display import star_display


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 with fixed microsecond precision.

    The fixed width keeps lexical order equal to chronological order.
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Book(Base):
    """Book model - a catalog entry owned by the user who added it."""

    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("review_count >= 0", name="ck_books_review_count"),
        CheckConstraint("average_rating >= 0", name="ck_books_average_rating"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    genre: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer)

    # Ownership, immutable after creation
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Derived from reviews, written only by the rating aggregator
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(32), nullable=False, default=utcnow_iso, index=True
    )
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utcnow_iso)

    # Relationships
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="book", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', author='{self.author}')>"


class Review(Base):
    """Review model - one rating (and optional text) per reader per book."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("book_id", "author_id", name="uq_reviews_book_author"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Rating (1-5 stars)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(32), nullable=False, default=utcnow_iso, index=True
    )
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utcnow_iso)

    # Relationships
    book: Mapped["Book"] = relationship("Book", back_populates="reviews")

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, book_id={self.book_id}, rating={self.rating})>"

    @property
    def star_display(self) -> str:
        return star_display(self.rating)
