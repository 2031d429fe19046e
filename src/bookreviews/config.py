"""Configuration management for bookreviews.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUTHY


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    echo_sql: bool

    # Catalog
    page_size: int

    # Identity
    current_user: Optional[str]
    conceal_forbidden: bool  # non-owners see NotFound instead of Unauthorized

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "BOOKREVIEWS_DB_PATH",
            str(Path.home() / ".bookreviews" / "books.db"),
        )
        db_path = Path(db_path_str).expanduser() if db_path_str != ":memory:" else Path(db_path_str)

        current_user = os.environ.get("BOOKREVIEWS_USER", "").strip() or None

        return cls(
            db_path=db_path,
            echo_sql=_env_flag("BOOKREVIEWS_ECHO_SQL"),
            page_size=int(os.environ.get("BOOKREVIEWS_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
            current_user=current_user,
            conceal_forbidden=_env_flag("BOOKREVIEWS_CONCEAL_FORBIDDEN"),
            log_level=os.environ.get("BOOKREVIEWS_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def is_memory_db(self) -> bool:
        return str(self.db_path) == ":memory:"

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.page_size < 1 or self.page_size > MAX_PAGE_SIZE:
            errors.append(f"Page size must be between 1 and {MAX_PAGE_SIZE}: {self.page_size}")

        # Check database directory is writable
        if not self.is_memory_db and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
