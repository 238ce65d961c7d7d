"""
Schema descriptor resolution.

Turns an entity schema into per-field descriptors for forms and validation.
UI types come from a static registry keyed by semantic type and a handful of
naming conventions; nothing inspects model classes at runtime.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from crudgen.exceptions.domain import ConfigurationError
from crudgen.models.base import SemanticType, UIType
from crudgen.models.entity import EntitySchema, FieldOverrides, SchemaField
from crudgen.models.field import FieldDescriptor, FieldOption, FieldValidation

# Default control per semantic type, before naming conventions apply
SEMANTIC_DEFAULTS: dict[SemanticType, UIType] = {
    SemanticType.text: UIType.text,
    SemanticType.number: UIType.number,
    SemanticType.boolean: UIType.checkbox,
    SemanticType.date: UIType.date,
    SemanticType.reference: UIType.select,
    SemanticType.array_reference: UIType.multiselect,
    SemanticType.array_text: UIType.tags,
}

# Controls that can faithfully render each semantic type
COMPATIBLE_UI_TYPES: dict[SemanticType, frozenset[UIType]] = {
    SemanticType.text: frozenset(
        {
            UIType.text,
            UIType.textarea,
            UIType.email,
            UIType.password,
            UIType.select,
            UIType.date,
            UIType.file,
        }
    ),
    SemanticType.number: frozenset({UIType.number, UIType.select}),
    SemanticType.boolean: frozenset({UIType.checkbox, UIType.select}),
    SemanticType.date: frozenset({UIType.date, UIType.text}),
    SemanticType.reference: frozenset({UIType.select, UIType.text}),
    SemanticType.array_reference: frozenset({UIType.multiselect, UIType.tags}),
    SemanticType.array_text: frozenset({UIType.tags, UIType.multiselect, UIType.file}),
}

IMAGE_NAME_HINTS = ("image", "photo", "picture")
TEXTAREA_NAME_HINTS = ("description", "content")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def infer_ui_type(name: str, schema_field: SchemaField) -> UIType:
    """Infer the control for a field from its semantic type and name."""
    semantic = schema_field.type
    match semantic:
        case SemanticType.text:
            if schema_field.enum:
                return UIType.select
            if name == "email":
                return UIType.email
            if name == "password":
                return UIType.password
            if any(hint in name for hint in TEXTAREA_NAME_HINTS):
                return UIType.textarea
            return UIType.text
        case SemanticType.array_text:
            if schema_field.enum:
                return UIType.multiselect
            if any(hint in name for hint in IMAGE_NAME_HINTS):
                return UIType.file
            return UIType.tags
        case _:
            return SEMANTIC_DEFAULTS[semantic]


def humanize(name: str) -> str:
    """``product_image`` -> ``Product image``; ``createdAt`` -> ``Created at``."""
    spaced = _CAMEL_BOUNDARY.sub(r" \1", name).replace("_", " ").strip()
    spaced = " ".join(spaced.split())
    return spaced[:1].upper() + spaced[1:].lower() if spaced else name


def _option_label(value: Any) -> str:
    text = str(value)
    return text[:1].upper() + text[1:]


def build_options(schema_field: SchemaField, override: Iterable[Any] | None) -> list[FieldOption]:
    """Explicit options win; otherwise enumerated values become options."""
    if override is not None:
        options = []
        for item in override:
            if isinstance(item, FieldOption):
                options.append(item)
            elif isinstance(item, Mapping):
                options.append(FieldOption(value=item["value"], label=str(item.get("label", item["value"]))))
            else:
                options.append(FieldOption(value=item, label=_option_label(item)))
        return options
    return [FieldOption(value=value, label=_option_label(value)) for value in schema_field.enum]


def build_validation(
    schema_field: SchemaField, override: Mapping[str, Any] | None
) -> FieldValidation:
    if override is not None:
        return FieldValidation.model_validate(dict(override))
    return FieldValidation(
        min_length=schema_field.min_length,
        max_length=schema_field.max_length,
        min=schema_field.minimum,
        max=schema_field.maximum,
        pattern=schema_field.pattern,
    )


def resolve_field(
    name: str,
    schema_field: SchemaField,
    overrides: FieldOverrides,
    with_default: bool = True,
) -> FieldDescriptor:
    """Build the descriptor for a single field.

    Raises:
        ConfigurationError: If an explicit type contradicts the semantic type
    """
    ui_type = overrides.types.get(name) or schema_field.ui_hint or infer_ui_type(name, schema_field)
    if ui_type not in COMPATIBLE_UI_TYPES[schema_field.type]:
        raise ConfigurationError(
            f"Field '{name}' of type {schema_field.type.value} cannot be rendered as {ui_type.value}"
        )

    label = overrides.labels.get(name) or schema_field.display_name or humanize(name)

    return FieldDescriptor(
        name=name,
        type=ui_type,
        semantic_type=schema_field.type,
        label=label,
        required=schema_field.required,
        validation=build_validation(schema_field, overrides.validation.get(name)),
        options=build_options(schema_field, overrides.options.get(name)),
        placeholder=f"Enter {name.replace('_', ' ')}",
        help_text="This field is required" if schema_field.required else "",
        default_value=schema_field.resolve_default() if with_default else None,
        ref=schema_field.ref,
    )


def derive_field_names(schema: EntitySchema) -> list[str]:
    """Form fields of ``schema``: everything but identity, audit and soft-delete columns."""
    return schema.form_field_names()


def resolve(
    schema: EntitySchema,
    field_names: Iterable[str] | None = None,
    overrides: FieldOverrides | None = None,
) -> dict[str, FieldDescriptor]:
    """Resolve descriptors for ``field_names`` (default: all form fields).

    Names the schema does not declare are skipped, so every key of the result
    is a key of the schema.
    """
    overrides = overrides or FieldOverrides()
    names = list(field_names) if field_names is not None else derive_field_names(schema)

    descriptors: dict[str, FieldDescriptor] = {}
    for name in names:
        schema_field = schema.get(name)
        if schema_field is None:
            continue
        descriptors[name] = resolve_field(name, schema_field, overrides)
    return descriptors


def resolve_defaults(schema: EntitySchema, field_names: Iterable[str]) -> dict[str, Any]:
    """Freshly produced default values for a new record, skipping empty ones."""
    defaults: dict[str, Any] = {}
    for name in field_names:
        schema_field = schema.get(name)
        if schema_field is None:
            continue
        value = schema_field.resolve_default()
        if value is not None:
            defaults[name] = value
    return defaults
