"""Database module for local SQLite storage."""

from .models import Book, Review
from .schemas import BookCreate, BookUpdate, BookResponse, Genre
from .sqlite import Database, get_db

__all__ = [
    "Book",
    "Review",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "Genre",
    "Database",
    "get_db",
]
