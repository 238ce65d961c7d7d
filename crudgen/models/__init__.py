"""
crudgen data models.

This package contains the SQLModel table for records, the declarative entity
configuration, and the pydantic schemas exchanged with clients.
"""

from .base import SYSTEM_FIELDS, RecordState, SemanticType, UIType
from .entity import (
    EntityConfig,
    EntitySchema,
    FieldOverrides,
    MenuEntry,
    Pagination,
    SchemaField,
)
from .field import FieldDescriptor, FieldDescriptorMap, FieldOption, FieldValidation
from .listing import (
    ANONYMOUS,
    Actor,
    DeleteResult,
    FilterEcho,
    FormView,
    ListParams,
    OperationResponse,
    OperationResult,
    PaginationInfo,
    RecordPage,
)
from .record import Record, RecordRead

__all__ = [
    "ANONYMOUS",
    "SYSTEM_FIELDS",
    "Actor",
    "DeleteResult",
    "EntityConfig",
    "EntitySchema",
    "FieldDescriptor",
    "FieldDescriptorMap",
    "FieldOption",
    "FieldOverrides",
    "FieldValidation",
    "FilterEcho",
    "FormView",
    "ListParams",
    "MenuEntry",
    "OperationResponse",
    "OperationResult",
    "Pagination",
    "PaginationInfo",
    "Record",
    "RecordPage",
    "RecordRead",
    "RecordState",
    "SchemaField",
    "SemanticType",
    "UIType",
]
