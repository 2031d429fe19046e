"""SQLite database operations.

Handles database connection, session management and the translation of
storage failures into domain errors.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import UnavailableError
from .models import Base

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces ON DELETE CASCADE with this pragma."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def _register_casefold(dbapi_connection, connection_record) -> None:
    """SQLite's own lower() leaves non-ASCII letters untouched."""
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)


class Database:
    """Database connection and session manager."""

    def __init__(self, db_path: Optional[str] = None, echo: Optional[bool] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file or ":memory:". If None, uses
                     BOOKREVIEWS_DB_PATH env var or default location.
            echo: Log emitted SQL. Defaults to BOOKREVIEWS_ECHO_SQL.
        """
        config = get_config()
        if db_path is None:
            db_path = str(config.db_path)
        if echo is None:
            echo = config.echo_sql

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        event.listen(self.engine, "connect", _enable_foreign_keys)
        event.listen(self.engine, "connect", _register_casefold)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import profile models to register them with Base
        from ..profiles.models import Profile  # noqa: F401

        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Commits on success and rolls back on any exception. Integrity errors
        are re-raised for the caller to interpret; any other storage failure
        surfaces as UnavailableError.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("Storage failure, transaction rolled back: %s", e)
            raise UnavailableError(f"Storage unavailable: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    if _db is not None:
        _db.engine.dispose()
    _db = None
