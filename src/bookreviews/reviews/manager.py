"""Review manager for book review operations.

Every successful submit, amend and withdraw recomputes the parent book's
rating aggregates in the same transaction, so a committed review change is
never visible without its aggregate.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import authorize, normalize_identity, require_identity
from ..db.models import Book, Review, utcnow_iso
from ..db.sqlite import Database, get_db
from ..errors import ConflictError, NotFoundError, validate_model
from ..profiles.models import Profile
from ..ratings.aggregator import RatingAggregator
from .schemas import AuthoredReview, ReviewInput, ReviewResponse

logger = logging.getLogger(__name__)


def _is_duplicate_review(reason: str) -> bool:
    """Whether an integrity failure came from the one-review-per-author constraint."""
    return "uq_reviews_book_author" in reason or (
        "UNIQUE constraint failed" in reason and "reviews.author_id" in reason
    )


class ReviewManager:
    """Manages book review operations keyed by author identity."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize review manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()
        self.aggregator = RatingAggregator(self.db)

    # -------------------------------------------------------------------------
    # Review CRUD
    # -------------------------------------------------------------------------

    def submit(
        self,
        book_id: str,
        author_id: Optional[str],
        rating: int,
        text: Optional[str] = None,
    ) -> Review:
        """Create the author's review for a book.

        Args:
            book_id: Book being reviewed
            author_id: Identity of the reviewer
            rating: Whole-star rating, 1-5
            text: Optional review body

        Returns:
            Created review

        Raises:
            UnauthorizedError: If the caller is anonymous
            InvalidInputError: If the rating is out of range
            NotFoundError: If the book does not exist
            ConflictError: If the author already reviewed this book
        """
        author_id = require_identity(author_id, "review a book")
        data = validate_model(ReviewInput, {"rating": rating, "text": text})

        try:
            with self.db.get_session() as session:
                self._lock_book(session, book_id)

                now = utcnow_iso()
                review = Review(
                    book_id=book_id,
                    author_id=author_id,
                    rating=data.rating,
                    text=data.text,
                    created_at=now,
                    updated_at=now,
                )
                session.add(review)
                # The (book_id, author_id) unique constraint decides duplicates
                session.flush()

                self.aggregator.recompute(session, book_id)
                session.expunge(review)
        except IntegrityError as e:
            reason = str(e.orig)
            if _is_duplicate_review(reason):
                logger.info("Duplicate review rejected for book %s by %s", book_id, author_id)
                raise ConflictError(
                    "You have already reviewed this book. Amend your existing review instead."
                ) from e
            if "FOREIGN KEY constraint failed" in reason:
                # The book vanished before the insert
                raise NotFoundError("book", book_id) from e
            raise

        logger.info("Review %s submitted for book %s by %s", review.id, book_id, author_id)
        return review

    def amend(
        self,
        review_id: str,
        author_id: Optional[str],
        rating: int,
        text: Optional[str] = None,
    ) -> Review:
        """Replace the rating and text of an existing review.

        Raises:
            InvalidInputError: If the rating is out of range
            NotFoundError: If the review does not exist
            UnauthorizedError: If the caller is not the review's author
        """
        with self.db.get_session() as session:
            review = self._get_review(session, review_id)
            authorize(author_id, review.author_id, "review", review_id)
            data = validate_model(ReviewInput, {"rating": rating, "text": text})
            self._lock_book(session, review.book_id)

            review.rating = data.rating
            review.text = data.text
            review.updated_at = utcnow_iso()
            session.flush()

            self.aggregator.recompute(session, review.book_id)
            session.expunge(review)

        logger.info("Review %s amended by %s", review_id, author_id)
        return review

    def withdraw(self, review_id: str, author_id: Optional[str]) -> None:
        """Delete a review.

        Raises:
            NotFoundError: If the review does not exist
            UnauthorizedError: If the caller is not the review's author
        """
        with self.db.get_session() as session:
            review = self._get_review(session, review_id)
            authorize(author_id, review.author_id, "review", review_id)
            book_id = review.book_id
            self._lock_book(session, book_id)

            session.delete(review)
            session.flush()

            self.aggregator.recompute(session, book_id)

        logger.info("Review %s withdrawn by %s", review_id, author_id)

    def get(self, review_id: str) -> Review:
        """Get a review by ID.

        Raises:
            NotFoundError: If no such review exists
        """
        with self.db.get_session() as session:
            review = self._get_review(session, review_id)
            session.expunge(review)
            return review

    def find_by_author(self, book_id: str, author_id: Optional[str]) -> Optional[Review]:
        """Get the author's review of a book, if any.

        Args:
            book_id: Book ID
            author_id: Reviewer identity

        Returns:
            Review or None
        """
        author_id = normalize_identity(author_id)
        if author_id is None:
            return None
        with self.db.get_session() as session:
            stmt = select(Review).where(
                Review.book_id == book_id, Review.author_id == author_id
            )
            review = session.execute(stmt).scalar_one_or_none()
            if review:
                session.expunge(review)
            return review

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    def list_for_book(self, book_id: str) -> list[Review]:
        """List a book's reviews, newest first.

        Raises:
            NotFoundError: If the book does not exist
        """
        with self.db.get_session() as session:
            if session.get(Book, book_id) is None:
                raise NotFoundError("book", book_id)

            stmt = (
                select(Review)
                .where(Review.book_id == book_id)
                .order_by(Review.created_at.desc(), Review.id)
            )
            reviews = list(session.execute(stmt).scalars().all())
            for review in reviews:
                session.expunge(review)
            return reviews

    def list_for_book_with_names(self, book_id: str) -> list[ReviewResponse]:
        """List a book's reviews with reviewer display names, newest first."""
        with self.db.get_session() as session:
            if session.get(Book, book_id) is None:
                raise NotFoundError("book", book_id)

            stmt = (
                select(Review, Profile.name)
                .outerjoin(Profile, Profile.id == Review.author_id)
                .where(Review.book_id == book_id)
                .order_by(Review.created_at.desc(), Review.id)
            )
            results = []
            for review, name in session.execute(stmt).all():
                response = ReviewResponse.model_validate(review)
                response.author_name = name
                results.append(response)
            return results

    def list_by_author(self, author_id: Optional[str]) -> list[AuthoredReview]:
        """List every review written by a user, newest first, with book details."""
        author_id = normalize_identity(author_id)
        if author_id is None:
            return []
        with self.db.get_session() as session:
            stmt = (
                select(Review, Book.title, Book.author)
                .join(Book, Book.id == Review.book_id)
                .where(Review.author_id == author_id)
                .order_by(Review.created_at.desc(), Review.id)
            )
            return [
                AuthoredReview.from_row(review, title, author)
                for review, title, author in session.execute(stmt).all()
            ]

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _get_review(self, session: Session, review_id: str) -> Review:
        review = session.get(Review, review_id)
        if review is None:
            raise NotFoundError("review", review_id)
        return review

    def _lock_book(self, session: Session, book_id: str) -> Book:
        """Lock the parent book so aggregate writes serialize behind this mutation."""
        stmt = select(Book).where(Book.id == book_id).with_for_update()
        book = session.execute(stmt).scalar_one_or_none()
        if book is None:
            raise NotFoundError("book", book_id)
        return book
