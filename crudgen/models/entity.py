"""
Entity configuration models.

An entity is declared once with an ``EntitySchema`` and an ``EntityConfig``;
both are immutable after declaration and the engine never mutates them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from crudgen.settings import settings

from .base import SYSTEM_FIELDS, SemanticType, UIType

if TYPE_CHECKING:
    from crudgen.hooks import EntityHooks


@dataclass(frozen=True)
class SchemaField:
    """Declarative description of one persisted field."""

    type: SemanticType = SemanticType.text
    required: bool = False
    enum: tuple[Any, ...] = ()
    ref: str | None = None
    default: Any = None
    ui_hint: UIType | None = None
    display_name: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    pattern: str | None = None
    unique: bool = False

    def resolve_default(self) -> Any:
        """Return the default value, invoking a producer if one was declared."""
        if callable(self.default):
            return self.default()
        return self.default


@dataclass(frozen=True)
class EntitySchema:
    """Mapping from field name to its declarative description."""

    fields: Mapping[str, SchemaField]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def __getitem__(self, name: str) -> SchemaField:
        return self.fields[name]

    def get(self, name: str) -> SchemaField | None:
        return self.fields.get(name)

    def declares(self, name: str) -> bool:
        """Whether the schema declares ``name`` (used for audit stamping)."""
        return name in self.fields

    def form_field_names(self) -> list[str]:
        """Field names in declaration order, excluding identity/audit/soft-delete fields."""
        return [name for name in self.fields if name not in SYSTEM_FIELDS]


@dataclass(frozen=True)
class Pagination:
    """Pagination defaults for list views."""

    default_limit: int = field(default_factory=lambda: settings.default_page_size)
    max_limit: int = field(default_factory=lambda: settings.max_page_size)


@dataclass(frozen=True)
class FieldOverrides:
    """Per-field overrides applied on top of schema inference."""

    types: Mapping[str, UIType] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)
    validation: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    options: Mapping[str, list[Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class MenuEntry:
    """Navigation metadata for the admin menu."""

    label: str | None = None
    icon: str = "fas fa-cog"
    description: str = ""
    order: int = 100
    enabled: bool = True


@dataclass(frozen=True)
class EntityConfig:
    """Everything the engine needs to administer one entity kind."""

    model_name: str
    schema: EntitySchema
    fields: tuple[str, ...] = ()
    overrides: FieldOverrides = field(default_factory=FieldOverrides)
    searchable_fields: tuple[str, ...] = ()
    filterable_fields: tuple[str, ...] = ()
    sortable_fields: tuple[str, ...] = ()
    pagination: Pagination = field(default_factory=Pagination)
    soft_delete: bool = False
    hooks: EntityHooks | None = None
    singular_name: str | None = None
    menu: MenuEntry = field(default_factory=MenuEntry)
    reference_label_field: str = "name"

    @property
    def singular(self) -> str:
        """Singular entity kind used in attachment paths."""
        if self.singular_name:
            return self.singular_name
        return self.model_name[:-1] if self.model_name.endswith("s") else self.model_name

    @property
    def title(self) -> str:
        return self.singular[:1].upper() + self.singular[1:]

    @property
    def field_names(self) -> list[str]:
        """Configured fields, or every form field of the schema."""
        return list(self.fields) if self.fields else self.schema.form_field_names()
