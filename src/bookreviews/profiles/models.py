"""SQLAlchemy models for reader profiles.

Tables:
- profiles: Display names for identities issued by the identity gate
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, utcnow_iso


class Profile(Base):
    """Profile model - display name for a user identity."""

    __tablename__ = "profiles"

    # Identity string from the identity gate, not generated here
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utcnow_iso)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name='{self.name}')>"
