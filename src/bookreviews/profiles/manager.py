"""Profile manager for display names and per-user activity."""

import logging
from typing import Iterable, Optional

from sqlalchemy import select

from ..auth import normalize_identity, require_identity
from ..catalog.schemas import BookSummary
from ..db.models import Book, Review, utcnow_iso
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, validate_model
from ..reviews.schemas import AuthoredReview
from .models import Profile
from .schemas import ProfileActivity, ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileManager:
    """Manages reader profiles."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize profile manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def upsert(self, user_id: Optional[str], name: str) -> Profile:
        """Create or rename the profile for ``user_id``.

        Raises:
            UnauthorizedError: If the caller is anonymous
            InvalidInputError: If the name is blank
        """
        user_id = require_identity(user_id, "set a profile name")
        data = validate_model(ProfileUpdate, {"name": name})

        with self.db.get_session() as session:
            now = utcnow_iso()
            profile = session.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id, name=data.name, created_at=now, updated_at=now)
                session.add(profile)
                logger.info("Profile created for %s", user_id)
            else:
                profile.name = data.name
                profile.updated_at = now
            session.flush()
            session.expunge(profile)
            return profile

    def get(self, user_id: Optional[str]) -> Profile:
        """Get a profile.

        Raises:
            NotFoundError: If the user has no profile
        """
        user_id = normalize_identity(user_id)
        with self.db.get_session() as session:
            profile = session.get(Profile, user_id) if user_id else None
            if profile is None:
                raise NotFoundError("profile", user_id)
            session.expunge(profile)
            return profile

    def display_names(self, user_ids: Iterable[str]) -> dict[str, str]:
        """Map user IDs to display names; users without a profile are omitted."""
        ids = {normalize_identity(uid) for uid in user_ids} - {None}
        if not ids:
            return {}
        with self.db.get_session() as session:
            stmt = select(Profile.id, Profile.name).where(Profile.id.in_(ids))
            return {uid: name for uid, name in session.execute(stmt).all()}

    def activity(self, user_id: Optional[str]) -> ProfileActivity:
        """Books added and reviews written by a user, newest first.

        Raises:
            NotFoundError: If the user ID is blank
        """
        normalized = normalize_identity(user_id)
        if normalized is None:
            raise NotFoundError("profile", str(user_id))
        user_id = normalized
        with self.db.get_session() as session:
            profile = session.get(Profile, user_id)
            name = profile.name if profile else user_id

            books = session.execute(
                select(Book)
                .where(Book.owner_id == user_id)
                .order_by(Book.created_at.desc(), Book.id)
            ).scalars().all()

            reviews = session.execute(
                select(Review, Book.title, Book.author)
                .join(Book, Book.id == Review.book_id)
                .where(Review.author_id == user_id)
                .order_by(Review.created_at.desc(), Review.id)
            ).all()

            return ProfileActivity(
                user_id=user_id,
                name=name,
                books=[BookSummary.model_validate(book) for book in books],
                reviews=[
                    AuthoredReview.from_row(review, title, author)
                    for review, title, author in reviews
                ],
            )
