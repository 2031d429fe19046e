"""Rating aggregator - the only writer of a book's rating aggregates.

``average_rating`` and ``review_count`` are a projection of the book's
reviews, recomputed in full after every review mutation inside the same
transaction as the mutation. They are never updated incrementally.
"""

import logging
import math
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import Book, Review
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError
from .schemas import RatingDrift, RatingSnapshot

logger = logging.getLogger(__name__)


def mean_rating(review_count: int, rating_total: int) -> float:
    """Arithmetic mean of the ratings, 0.0 when there are none."""
    if review_count == 0:
        return 0.0
    return rating_total / review_count


class RatingAggregator:
    """Recomputes and audits book rating aggregates."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize rating aggregator.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Recompute
    # -------------------------------------------------------------------------

    def recompute(self, session: Session, book_id: str) -> Optional[RatingSnapshot]:
        """Recompute a book's aggregates from its current reviews.

        Runs inside the caller's session so the result commits (or rolls
        back) together with the review mutation that triggered it.

        Args:
            session: Session of the triggering mutation
            book_id: Book ID

        Returns:
            The written aggregates, or None if the book no longer exists
        """
        # Pending review changes must be visible to the aggregate query
        session.flush()

        book = session.get(Book, book_id)
        if book is None:
            logger.debug("Skipping rating recompute, book %s no longer exists", book_id)
            return None

        review_count, rating_total = self._derive(session, book_id)
        book.review_count = review_count
        book.average_rating = mean_rating(review_count, rating_total)
        session.flush()

        return RatingSnapshot(
            book_id=book_id,
            review_count=book.review_count,
            average_rating=book.average_rating,
        )

    def refresh(self, book_id: str) -> Optional[RatingSnapshot]:
        """Recompute a single book's aggregates in its own transaction."""
        with self.db.get_session() as session:
            return self.recompute(session, book_id)

    def rebuild_all(self) -> int:
        """Recompute every book's aggregates.

        Returns:
            Number of books whose stored aggregates changed
        """
        changed = 0
        with self.db.get_session() as session:
            book_ids = session.execute(select(Book.id).order_by(Book.id)).scalars().all()
            for book_id in book_ids:
                book = session.get(Book, book_id)
                before = (book.review_count, book.average_rating)
                snapshot = self.recompute(session, book_id)
                if snapshot and not _same_aggregate(
                    before, (snapshot.review_count, snapshot.average_rating)
                ):
                    changed += 1

        if changed:
            logger.info("Rebuilt rating aggregates, %d book(s) corrected", changed)
        return changed

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    def check(self, book_id: str) -> Optional[RatingDrift]:
        """Compare a book's stored aggregates with its reviews.

        Args:
            book_id: Book ID

        Returns:
            RatingDrift if the stored values are stale, otherwise None
        """
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None:
                raise NotFoundError("book", book_id)

            review_count, rating_total = self._derive(session, book_id)
            return _drift(book, review_count, mean_rating(review_count, rating_total))

    def check_all(self) -> list[RatingDrift]:
        """Find every book whose stored aggregates disagree with its reviews."""
        totals = (
            select(
                Review.book_id.label("book_id"),
                func.count(Review.id).label("review_count"),
                func.sum(Review.rating).label("rating_total"),
            )
            .group_by(Review.book_id)
            .subquery()
        )
        stmt = (
            select(Book, totals.c.review_count, totals.c.rating_total)
            .outerjoin(totals, totals.c.book_id == Book.id)
            .order_by(Book.title, Book.id)
        )

        drifts = []
        with self.db.get_session() as session:
            for book, review_count, rating_total in session.execute(stmt).all():
                review_count = review_count or 0
                drift = _drift(book, review_count, mean_rating(review_count, rating_total or 0))
                if drift:
                    drifts.append(drift)
        return drifts

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _derive(self, session: Session, book_id: str) -> tuple[int, int]:
        """Count and sum the ratings of a book's reviews."""
        stmt = select(
            func.count(Review.id), func.coalesce(func.sum(Review.rating), 0)
        ).where(Review.book_id == book_id)
        review_count, rating_total = session.execute(stmt).one()
        return int(review_count), int(rating_total)


def _same_aggregate(a: tuple[int, float], b: tuple[int, float]) -> bool:
    return a[0] == b[0] and math.isclose(a[1], b[1], rel_tol=1e-9, abs_tol=1e-9)


def _drift(book: Book, actual_count: int, actual_average: float) -> Optional[RatingDrift]:
    if _same_aggregate((book.review_count, book.average_rating), (actual_count, actual_average)):
        return None
    return RatingDrift(
        book_id=book.id,
        title=book.title,
        stored_count=book.review_count,
        stored_average=book.average_rating,
        actual_count=actual_count,
        actual_average=actual_average,
    )
