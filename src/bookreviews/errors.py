"""Error taxonomy shared by the book, review and catalog managers.

- InvalidInputError: malformed or out-of-range field, fix the input and retry
- UnauthorizedError: mutation by someone who is not the owner/author, terminal
- ConflictError: a review already exists for this (book, reader) pair
- NotFoundError: the referenced book or review does not exist (anymore)
- UnavailableError: the storage layer failed, safe to retry
"""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class BookReviewsError(Exception):
    """Base exception for all domain errors."""

    pass


class InvalidInputError(BookReviewsError):
    """Raised when a field is missing, malformed or out of range."""

    def __init__(self, message: str, errors: Optional[list[dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def fields(self) -> list[str]:
        """Names of the offending fields."""
        return [e["field"] for e in self.errors if e.get("field")]

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidInputError":
        """Build from a pydantic ValidationError, keeping per-field details."""
        errors = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()))
            errors.append({"field": field, "message": err.get("msg", "invalid value")})
        summary = "; ".join(
            f"{e['field']}: {e['message']}" if e["field"] else e["message"] for e in errors
        )
        return cls(f"Invalid input - {summary}", errors)


class UnauthorizedError(BookReviewsError):
    """Raised when a mutation is attempted by a non-owner or non-author."""

    pass


class ConflictError(BookReviewsError):
    """Raised when a reader already has a review for the book."""

    pass


class NotFoundError(BookReviewsError):
    """Raised when a referenced book or review does not exist."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource.capitalize()} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class UnavailableError(BookReviewsError):
    """Raised when the storage layer fails (connectivity, aborted transaction)."""

    pass


def validate_model(model_cls: type[ModelT], data: Any) -> ModelT:
    """Coerce ``data`` into ``model_cls``, raising InvalidInputError on failure.

    Instances of ``model_cls`` pass through untouched.
    """
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError.from_validation_error(e) from e
