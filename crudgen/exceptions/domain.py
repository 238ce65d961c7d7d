"""
Domain exceptions for the record lifecycle layer.

These exceptions are used in repositories and services to represent
business logic errors without coupling to HTTP status codes.
"""

from dataclasses import dataclass
from typing import Any


class CrudgenError(Exception):
    """Base exception for all crudgen-specific errors."""


@dataclass
class FieldError:
    """A single field-level validation message."""

    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


class ValidationError(CrudgenError):
    """Raised when submitted data fails validation.

    Carries every field-level error together with the submitted values so a
    form can be redisplayed.
    """

    def __init__(
        self,
        errors: list[FieldError] | None = None,
        values: dict[str, Any] | None = None,
        message: str = "Validation Error",
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.values = values or {}


class InvalidIdentityError(CrudgenError):
    """Raised when a record identity is malformed."""

    def __init__(self, raw_id: Any) -> None:
        super().__init__(f"Invalid ID format: {raw_id!r}")
        self.raw_id = raw_id


class DuplicateKeyError(CrudgenError):
    """Raised when a uniqueness constraint is violated."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"{field} already exists")
        self.field = field
        self.value = value


class NotFoundError(CrudgenError):
    """Raised when a record is absent or not in the state the operation expects."""

    def __init__(self, entity: str, record_id: Any = None, state: str | None = None) -> None:
        if record_id is None:
            message = f"{entity} not found"
        elif state:
            message = f"{entity} with ID {record_id} not found or not {state}"
        else:
            message = f"{entity} with ID {record_id} not found"
        super().__init__(message)
        self.entity = entity
        self.record_id = record_id


class InvalidOperationError(CrudgenError):
    """Raised when an operation is not available for an entity."""

    pass


class UploadError(CrudgenError):
    """Raised when a single attachment cannot be stored.

    Contained within the attachment manager and reported as a warning.
    """

    def __init__(self, field: str, filename: str | None, reason: str) -> None:
        super().__init__(f"Upload of {filename or '<unnamed>'} for {field} failed: {reason}")
        self.field = field
        self.filename = filename


class InternalError(CrudgenError):
    """Raised for unclassified failures."""

    pass


class ConfigurationError(CrudgenError):
    """Raised when an entity configuration is inconsistent."""

    pass


class StorageError(CrudgenError):
    """Raised when a file storage operation fails."""

    pass
