"""Book reviews and ratings module."""

from ..db.models import Review
from .manager import ReviewManager
from .schemas import AuthoredReview, ReviewInput, ReviewResponse

__all__ = [
    "ReviewManager",
    "Review",
    "ReviewInput",
    "ReviewResponse",
    "AuthoredReview",
]
