"""Identity gate and the ownership predicate.

The core never manages credentials. It receives an opaque user id (or
``None`` for an anonymous caller) and compares it with the owner/author
recorded on the resource.
"""

from typing import Optional, Protocol

from .config import get_config
from .errors import NotFoundError, UnauthorizedError

# An anonymous caller has no identity.
ANONYMOUS = None

UserId = str


class IdentityGate(Protocol):
    """Supplies the identity of the current caller."""

    def current_identity(self) -> Optional[UserId]:
        ...


class StaticIdentityGate:
    """Identity gate that always answers with the same identity."""

    def __init__(self, user_id: Optional[UserId] = ANONYMOUS):
        self.user_id = normalize_identity(user_id)

    def current_identity(self) -> Optional[UserId]:
        return self.user_id


class EnvIdentityGate:
    """Identity gate backed by ``BOOKREVIEWS_USER``."""

    def current_identity(self) -> Optional[UserId]:
        return normalize_identity(get_config().current_user)


def normalize_identity(user_id: Optional[str]) -> Optional[UserId]:
    """Blank identities are anonymous."""
    if user_id is None:
        return ANONYMOUS
    user_id = str(user_id).strip()
    return user_id or ANONYMOUS


def can_mutate(actor_id: Optional[UserId], owner_id: Optional[UserId]) -> bool:
    """Whether ``actor_id`` may change a resource owned by ``owner_id``.

    Anonymous actors never may, and a resource without an owner is frozen.
    """
    actor_id = normalize_identity(actor_id)
    if actor_id is ANONYMOUS or owner_id is None:
        return False
    return actor_id == owner_id


def require_identity(actor_id: Optional[UserId], action: str) -> UserId:
    """Return the normalized identity or raise UnauthorizedError for anonymous callers."""
    actor_id = normalize_identity(actor_id)
    if actor_id is ANONYMOUS:
        raise UnauthorizedError(f"You must be signed in to {action}")
    return actor_id


def authorize(
    actor_id: Optional[UserId],
    owner_id: Optional[UserId],
    resource: str,
    resource_id: str,
    conceal: Optional[bool] = None,
) -> None:
    """Raise unless ``actor_id`` may mutate the resource.

    When ``conceal`` is set (defaults to the ``conceal_forbidden`` setting),
    the failure is reported as NotFoundError so non-owners cannot test for
    existence.
    """
    if can_mutate(actor_id, owner_id):
        return
    if conceal is None:
        conceal = get_config().conceal_forbidden
    if conceal:
        raise NotFoundError(resource, resource_id)
    raise UnauthorizedError(f"Only the {_owner_word(resource)} can modify this {resource}")


def _owner_word(resource: str) -> str:
    return "author" if resource == "review" else "owner"
