"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the bookreviews application,
including databases, managers and sample catalog data.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from bookreviews.books import BookManager
from bookreviews.catalog import CatalogManager
from bookreviews.config import reset_config
from bookreviews.db.models import Book
from bookreviews.db.schemas import BookCreate, Genre
from bookreviews.db.sqlite import Database, reset_db
from bookreviews.profiles import ProfileManager
from bookreviews.ratings import RatingAggregator
from bookreviews.reviews import ReviewManager

ENV_VARS = (
    "BOOKREVIEWS_DB_PATH",
    "BOOKREVIEWS_USER",
    "BOOKREVIEWS_PAGE_SIZE",
    "BOOKREVIEWS_CONCEAL_FORBIDDEN",
    "BOOKREVIEWS_LOG_LEVEL",
    "BOOKREVIEWS_ECHO_SQL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> Generator[None, None, None]:
    """Isolate each test from the caller's BOOKREVIEWS_* settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_db()
    reset_config()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory test database."""
    database = Database(":memory:")
    database.create_tables()
    yield database
    database.engine.dispose()


@pytest.fixture(scope="function")
def file_db(temp_db_path: Path, monkeypatch) -> Generator[Database, None, None]:
    """Create a file-backed test database."""
    monkeypatch.setenv("BOOKREVIEWS_DB_PATH", str(temp_db_path))

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    database.engine.dispose()
    reset_db()


# ============================================================================
# Manager Fixtures
# ============================================================================


@pytest.fixture
def books(db: Database) -> BookManager:
    return BookManager(db)


@pytest.fixture
def reviews(db: Database) -> ReviewManager:
    return ReviewManager(db)


@pytest.fixture
def catalog(db: Database) -> CatalogManager:
    return CatalogManager(db, page_size=5)


@pytest.fixture
def aggregator(db: Database) -> RatingAggregator:
    return RatingAggregator(db)


@pytest.fixture
def profiles(db: Database) -> ProfileManager:
    return ProfileManager(db)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="Dune",
        author="Frank Herbert",
        description="Spice, sandworms and politics on Arrakis.",
        genre=Genre.SCIENCE_FICTION,
        publication_year=1965,
    )


@pytest.fixture
def created_book(books: BookManager, sample_book_data: BookCreate) -> Book:
    """Create and return a book owned by alice."""
    return books.create("alice", sample_book_data)


@pytest.fixture
def multiple_books(books: BookManager) -> list[Book]:
    """Create a small catalog owned by alice and bob."""
    data = [
        ("alice", {"title": "Dune", "author": "Frank Herbert", "genre": "Science Fiction", "publication_year": 1965}),
        ("alice", {"title": "Dunebury Tales", "author": "Mara Quill", "genre": "Fantasy", "publication_year": 2001}),
        ("bob", {"title": "Emma", "author": "Jane Austen", "genre": "Romance", "publication_year": 1815}),
        ("bob", {"title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy"}),
    ]
    return [books.create(owner, fields) for owner, fields in data]
