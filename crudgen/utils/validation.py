"""
JSON validation utilities for crudgen.

Entity schemas are compiled to JSON Schema (draft 2020-12) and record data is
validated with ``jsonschema``, collecting every field error instead of
stopping at the first one.
"""

from collections.abc import Mapping
from typing import Any

from jsonschema import Draft202012Validator, SchemaError
from jsonschema import ValidationError as JSONSchemaValidationError

from ..exceptions.domain import ConfigurationError, FieldError, ValidationError
from ..models.base import SemanticType, UIType
from ..models.entity import EntitySchema, SchemaField
from ..models.field import FieldDescriptor
from ..types import JSONDict, RecordData
from ..utils.logger import logger

_SCALAR_TYPES: dict[SemanticType, JSONDict] = {
    SemanticType.text: {"type": "string"},
    SemanticType.number: {"type": "number"},
    SemanticType.boolean: {"type": "boolean"},
    SemanticType.date: {"type": "string", "format": "date"},
    SemanticType.reference: {"type": "string", "format": "uuid"},
}

_EMPTY_VALUES: tuple[Any, ...] = (None, "", [])


def _field_schema(schema_field: SchemaField, descriptor: FieldDescriptor) -> JSONDict:
    validation = descriptor.validation
    if schema_field.type.is_array:
        items: JSONDict = (
            {"type": "string", "format": "uuid"}
            if schema_field.type == SemanticType.array_reference
            else {"type": "string"}
        )
        if schema_field.enum:
            items["enum"] = list(schema_field.enum)
        compiled: JSONDict = {"type": "array", "items": items}
        if schema_field.required and not descriptor.is_file:
            compiled["minItems"] = 1
        return compiled

    compiled = dict(_SCALAR_TYPES[schema_field.type])
    if descriptor.type == UIType.email:
        compiled["format"] = "email"
    if schema_field.enum:
        compiled["enum"] = list(schema_field.enum)
    if validation.min_length is not None:
        compiled["minLength"] = validation.min_length
    if validation.max_length is not None:
        compiled["maxLength"] = validation.max_length
    if validation.min is not None:
        compiled["minimum"] = validation.min
    if validation.max is not None:
        compiled["maximum"] = validation.max
    if validation.pattern:
        compiled["pattern"] = validation.pattern

    if not schema_field.required:
        # Optional fields accept an explicit null
        compiled = {"anyOf": [{"type": "null"}, compiled]}
    return compiled


def compile_json_schema(
    schema: EntitySchema, descriptors: Mapping[str, FieldDescriptor]
) -> JSONDict:
    """Compile the described fields of an entity into a JSON Schema.

    Args:
        schema: Entity schema
        descriptors: Resolved field descriptors (validation overrides included)

    Returns:
        A draft 2020-12 JSON Schema for the record's ``data``
    """
    properties: JSONDict = {}
    required: list[str] = []
    for name, descriptor in descriptors.items():
        schema_field = schema.get(name)
        if schema_field is None:
            continue
        properties[name] = _field_schema(schema_field, descriptor)
        if schema_field.required and not descriptor.is_file:
            required.append(name)

    json_schema: JSONDict = {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "properties": properties,
    }
    if required:
        json_schema["required"] = required

    try:
        Draft202012Validator.check_schema(json_schema)
    except SchemaError as e:
        raise ConfigurationError(f"Entity schema compiles to an invalid JSON Schema: {e.message}") from e
    return json_schema


def _message(
    name: str, error: JSONSchemaValidationError, descriptor: FieldDescriptor | None
) -> str:
    label = descriptor.label if descriptor else name
    value = error.instance
    if descriptor and descriptor.required and value in _EMPTY_VALUES:
        return f"{label} is required"

    match error.validator:
        case "minLength":
            return f"{label} must be at least {error.validator_value} characters"
        case "maxLength":
            return f"{label} must be at most {error.validator_value} characters"
        case "minimum":
            return f"{label} must be at least {error.validator_value}"
        case "maximum":
            return f"{label} must be at most {error.validator_value}"
        case "pattern":
            return f"{label} has an invalid format"
        case "format":
            return f"{label} must be a valid {error.validator_value}"
        case "enum":
            allowed = ", ".join(str(v) for v in error.validator_value)
            return f"{label} must be one of: {allowed}"
        case "minItems":
            return f"{label} is required"
        case "type":
            return f"{label} must be of type {error.validator_value}"
        case _:
            return f"{label}: {error.message}"


def collect_field_errors(
    data: RecordData,
    json_schema: JSONDict,
    descriptors: Mapping[str, FieldDescriptor],
) -> list[FieldError]:
    """Validate ``data`` and return one error per offending field.

    Errors are reported in descriptor order; only the first error per field is
    kept.
    """
    validator = Draft202012Validator(json_schema, format_checker=Draft202012Validator.FORMAT_CHECKER)
    by_field: dict[str, FieldError] = {}

    for error in validator.iter_errors(data):
        if error.validator == "required":
            for name in error.validator_value:
                if name in error.instance or name in by_field:
                    continue
                descriptor = descriptors.get(name)
                label = descriptor.label if descriptor else name
                by_field[name] = FieldError(name, f"{label} is required", None)
            continue

        if not error.path:
            logger.warning(f"Record-level validation error: {error.message}")
            by_field.setdefault("__all__", FieldError("__all__", error.message, None))
            continue

        name = str(error.path[0])
        if name in by_field:
            continue
        # anyOf wraps optional fields; report the non-null branch
        if error.validator == "anyOf" and error.context:
            error = next(
                (sub for sub in error.context if sub.validator != "type" or sub.validator_value != "null"),
                error.context[0],
            )
        by_field[name] = FieldError(name, _message(name, error, descriptors.get(name)), data.get(name))

    order = {name: index for index, name in enumerate(descriptors)}
    return sorted(by_field.values(), key=lambda e: order.get(e.field, len(order)))


def validate_json_by_schema(
    data: RecordData,
    json_schema: JSONDict,
    descriptors: Mapping[str, FieldDescriptor],
    values: Mapping[str, Any] | None = None,
) -> RecordData:
    """Validate record data against its compiled JSON Schema.

    Args:
        data: Data to validate
        json_schema: Schema from ``compile_json_schema``
        descriptors: Field descriptors, for labels and ordering
        values: Submitted values echoed back with the error

    Returns:
        The validated data

    Raises:
        ValidationError: If any field is invalid
    """
    errors = collect_field_errors(data, json_schema, descriptors)
    if errors:
        logger.info(f"Validation failed for fields: {', '.join(e.field for e in errors)}")
        raise ValidationError(errors, dict(values if values is not None else data))
    return data
