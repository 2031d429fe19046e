"""Catalog manager - search, filter, sort and paginate the book collection."""

import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy import func, or_, select

from ..config import MAX_PAGE_SIZE, get_config
from ..db.models import Book
from ..db.sqlite import Database, get_db
from ..errors import InvalidInputError, UnavailableError, validate_model
from .schemas import BookSummary, CatalogPage, CatalogQuery, SortDirection, SortField, SortSpec

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"

_SORT_COLUMNS = {
    SortField.CREATED_AT: Book.created_at,
    SortField.AVERAGE_RATING: Book.average_rating,
    SortField.TITLE: func.casefold(Book.title),
    SortField.PUBLICATION_YEAR: Book.publication_year,
}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class CatalogManager:
    """Answers catalog queries with deterministic pagination."""

    def __init__(self, db: Optional[Database] = None, page_size: Optional[int] = None):
        """Initialize catalog manager.

        Args:
            db: Database instance
            page_size: Default page size when a query does not set one

        Raises:
            InvalidInputError: If the page size is outside 1..MAX_PAGE_SIZE
        """
        self.db = db or get_db()
        if page_size is None:
            page_size = get_config().page_size
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            message = f"Page size must be between 1 and {MAX_PAGE_SIZE}: {page_size}"
            raise InvalidInputError(message, [{"field": "page_size", "message": message}])
        self.page_size = page_size

    # -------------------------------------------------------------------------
    # Query Building
    # -------------------------------------------------------------------------

    def resolve(self, criteria: Union[CatalogQuery, Mapping[str, Any], None] = None) -> CatalogQuery:
        """Validate criteria and fill in the default page size.

        Raises:
            InvalidInputError: If a criterion is invalid (e.g. page < 1)
        """
        if isinstance(criteria, CatalogQuery):
            given = criteria.model_dump(exclude_unset=True)
        else:
            given = dict(criteria or {})
        given.setdefault("page_size", self.page_size)
        return validate_model(CatalogQuery, given)

    def _filters(self, query: CatalogQuery) -> list:
        """Conjunctive predicates for the query; absent criteria add nothing."""
        conditions = []
        if query.search_term:
            # SQLite's lower() only folds ASCII
            pattern = f"%{escape_like(query.search_term.casefold())}%"
            conditions.append(
                or_(
                    func.casefold(Book.title).like(pattern, escape=LIKE_ESCAPE),
                    func.casefold(Book.author).like(pattern, escape=LIKE_ESCAPE),
                )
            )
        if query.genre:
            conditions.append(Book.genre == query.genre.value)
        return conditions

    def _ordering(self, sort: SortSpec) -> list:
        """Primary sort key followed by stable tie-breakers."""
        column = _SORT_COLUMNS[sort.field]
        primary = column.desc() if sort.direction == SortDirection.DESC else column.asc()
        if sort.field == SortField.PUBLICATION_YEAR:
            primary = primary.nulls_last()
        return [primary, Book.created_at.asc(), Book.id.asc()]

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def count(self, criteria: Union[CatalogQuery, Mapping[str, Any], None] = None) -> int:
        """Number of books matching the filters, ignoring pagination."""
        query = self.resolve(criteria)
        with self.db.get_session() as session:
            stmt = select(func.count(Book.id)).where(*self._filters(query))
            return session.execute(stmt).scalar_one()

    def list(self, criteria: Union[CatalogQuery, Mapping[str, Any], None] = None) -> CatalogPage:
        """List one page of books matching the criteria.

        Pages past the end are empty but still report the total. A storage
        failure degrades to an empty page with ``error`` set.

        Args:
            criteria: CatalogQuery or mapping of its fields

        Returns:
            CatalogPage with the page items and the pre-pagination total

        Raises:
            InvalidInputError: If a criterion is invalid
        """
        query = self.resolve(criteria)
        filters = self._filters(query)

        try:
            with self.db.get_session() as session:
                total = session.execute(
                    select(func.count(Book.id)).where(*filters)
                ).scalar_one()

                stmt = (
                    select(Book)
                    .where(*filters)
                    .order_by(*self._ordering(query.sort))
                    .offset(query.offset)
                    .limit(query.page_size)
                )
                items = [
                    BookSummary.model_validate(book)
                    for book in session.execute(stmt).scalars().all()
                ]
        except UnavailableError as e:
            logger.error("Catalog listing failed: %s", e)
            return CatalogPage(page=query.page, page_size=query.page_size, error=str(e))

        return CatalogPage(
            items=items,
            total_matching=total,
            page=query.page,
            page_size=query.page_size,
        )
