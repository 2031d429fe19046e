"""Book catalog entries and ownership."""

from .manager import BookManager

__all__ = ["BookManager"]
