"""
Base models for crudgen.

This module provides the shared enumerations describing field semantics and
how fields are rendered in administrative forms.
"""

import enum


class SemanticType(str, enum.Enum):
    """Persisted meaning of an entity field."""

    text = "text"
    number = "number"
    boolean = "boolean"
    date = "date"
    reference = "reference"
    array_reference = "array_reference"
    array_text = "array_text"

    @property
    def is_array(self) -> bool:
        return self in (SemanticType.array_reference, SemanticType.array_text)


class UIType(str, enum.Enum):
    """Form control used to render a field."""

    text = "text"
    textarea = "textarea"
    number = "number"
    checkbox = "checkbox"
    date = "date"
    email = "email"
    password = "password"
    select = "select"
    multiselect = "multiselect"
    tags = "tags"
    file = "file"


class RecordState(str, enum.Enum):
    """Lifecycle state of a record."""

    active = "active"
    soft_deleted = "soft_deleted"
    purged = "purged"


# Columns managed by the engine rather than submitted through forms
IDENTITY_FIELD = "id"
CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
DELETED_AT = "deleted_at"
CREATED_BY = "created_by"
UPDATED_BY = "updated_by"
TENANT_FIELD = "tenant_id"

SYSTEM_FIELDS = frozenset(
    {IDENTITY_FIELD, CREATED_AT, UPDATED_AT, DELETED_AT, CREATED_BY, UPDATED_BY, TENANT_FIELD}
)
