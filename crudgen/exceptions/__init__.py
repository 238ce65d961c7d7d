"""
Exceptions for crudgen.

Domain exceptions live in ``domain``; the API layer maps them to HTTP
responses in ``crudgen.api.exception_handlers``.
"""

from .domain import (
    ConfigurationError,
    CrudgenError,
    DuplicateKeyError,
    FieldError,
    InternalError,
    InvalidIdentityError,
    InvalidOperationError,
    NotFoundError,
    StorageError,
    UploadError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "CrudgenError",
    "DuplicateKeyError",
    "FieldError",
    "InternalError",
    "InvalidIdentityError",
    "InvalidOperationError",
    "NotFoundError",
    "StorageError",
    "UploadError",
    "ValidationError",
]
