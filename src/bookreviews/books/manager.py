"""Book manager - catalog entries and their ownership rules."""

import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..auth import authorize, normalize_identity, require_identity
from ..db.models import Book, Review, utcnow_iso
from ..db.schemas import BookCreate, BookUpdate
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, validate_model
from ..ratings.aggregator import RatingAggregator

logger = logging.getLogger(__name__)

BookFields = Union[BookCreate, Mapping[str, Any]]
BookChanges = Union[BookUpdate, Mapping[str, Any]]


class BookManager:
    """Manages book CRUD operations keyed by owner identity."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize book manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()
        self.aggregator = RatingAggregator(self.db)

    # -------------------------------------------------------------------------
    # Book CRUD
    # -------------------------------------------------------------------------

    def create(self, owner_id: Optional[str], fields: BookFields) -> Book:
        """Create a new book owned by ``owner_id``.

        Args:
            owner_id: Identity of the creating user
            fields: Book data (BookCreate or mapping)

        Returns:
            Created book with zeroed rating aggregates

        Raises:
            UnauthorizedError: If the caller is anonymous
            InvalidInputError: If a field is empty, malformed or out of range
        """
        owner_id = require_identity(owner_id, "add a book")
        data = validate_model(BookCreate, fields)

        with self.db.get_session() as session:
            now = utcnow_iso()
            book = Book(
                title=data.title,
                author=data.author,
                description=data.description,
                genre=data.genre.value if data.genre else None,
                publication_year=data.publication_year,
                owner_id=owner_id,
                average_rating=0.0,
                review_count=0,
                created_at=now,
                updated_at=now,
            )
            session.add(book)
            session.flush()
            session.expunge(book)

        logger.info("Book %s created by %s", book.id, owner_id)
        return book

    def get(self, book_id: str) -> Book:
        """Get a book by ID.

        Raises:
            NotFoundError: If no such book exists
        """
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None:
                raise NotFoundError("book", book_id)
            session.expunge(book)
            return book

    def find(self, book_id: str) -> Optional[Book]:
        """Get a book by ID, or None."""
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book:
                session.expunge(book)
            return book

    def list_by_owner(self, owner_id: Optional[str]) -> list[Book]:
        """List books added by a user, newest first."""
        owner_id = normalize_identity(owner_id)
        if owner_id is None:
            return []
        with self.db.get_session() as session:
            stmt = (
                select(Book)
                .where(Book.owner_id == owner_id)
                .order_by(Book.created_at.desc(), Book.id)
            )
            books = list(session.execute(stmt).scalars().all())
            for book in books:
                session.expunge(book)
            return books

    def update(self, book_id: str, requester_id: Optional[str], fields: BookChanges) -> Book:
        """Update a book's editable fields.

        Args:
            book_id: Book ID
            requester_id: Identity of the caller, must be the owner
            fields: Changes (BookUpdate or mapping); unset fields are kept

        Returns:
            Updated book

        Raises:
            NotFoundError: If the book does not exist
            UnauthorizedError: If the caller is not the owner
            InvalidInputError: If a field is invalid
        """
        with self.db.get_session() as session:
            book = self._get_for_update(session, book_id)
            authorize(requester_id, book.owner_id, "book", book_id)
            data = validate_model(BookUpdate, fields)

            update_data = data.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                if field == "genre" and value is not None:
                    value = value.value
                setattr(book, field, value)

            book.updated_at = utcnow_iso()
            session.flush()
            session.expunge(book)

        logger.info("Book %s updated by %s (%s)", book_id, requester_id, ", ".join(update_data) or "no changes")
        return book

    def delete(self, book_id: str, requester_id: Optional[str]) -> None:
        """Delete a book together with all of its reviews.

        Raises:
            NotFoundError: If the book does not exist
            UnauthorizedError: If the caller is not the owner
        """
        with self.db.get_session() as session:
            book = self._get_for_update(session, book_id)
            authorize(requester_id, book.owner_id, "book", book_id)

            removed = session.execute(
                delete(Review).where(Review.book_id == book_id)
            ).rowcount
            session.delete(book)
            session.flush()

            # The book is gone, so this resolves to a no-op
            self.aggregator.recompute(session, book_id)

        logger.info("Book %s deleted by %s with %d review(s)", book_id, requester_id, removed or 0)

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _get_for_update(self, session: Session, book_id: str) -> Book:
        """Load and lock a book row for the rest of the transaction."""
        stmt = select(Book).where(Book.id == book_id).with_for_update()
        book = session.execute(stmt).scalar_one_or_none()
        if book is None:
            raise NotFoundError("book", book_id)
        return book
