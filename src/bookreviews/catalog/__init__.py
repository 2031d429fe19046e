"""Catalog search, filtering, sorting and pagination."""

from .manager import CatalogManager
from .schemas import (
    BookSummary,
    CatalogPage,
    CatalogQuery,
    SortDirection,
    SortField,
    SortSpec,
)

__all__ = [
    "CatalogManager",
    "BookSummary",
    "CatalogPage",
    "CatalogQuery",
    "SortDirection",
    "SortField",
    "SortSpec",
]
