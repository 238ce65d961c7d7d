"""
Submitted payload normalization.

A multi-valued field can reach the server in several wire encodings. All of
them are decoded by ``decode`` into one canonical ordered list:

- ``DIRECT``: ``field`` already maps to a list or a dict (dict values are taken
  in ascending key order)
- ``INDEXED``: ``field[0]``, ``field[1]``, ... keys
- ``BRACKETED``: a single ``field[]`` key holding a string, list or dict
- ``SCALAR``: the bare ``field`` key holding one value

The first shape that matches wins. String elements that look like array or
object literals are parsed (JSON first, then single-quoted pseudo-JSON) and
flattened; object elements reduce to their first value; empty elements are
dropped.
"""

import enum
import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import UUID

from crudgen.models.base import SemanticType
from crudgen.models.field import FieldDescriptor
from crudgen.types import Payload, RecordData
from crudgen.utils.logger import logger

TRUE_VALUES = frozenset({"true", "on", "1", "yes"})
FALSE_VALUES = frozenset({"false", "off", "0", "no"})

REMOVAL_PREFIX = "removed_images_"

_INT_PATTERN = re.compile(r"^[+-]?\d+$")


class PayloadShape(str, enum.Enum):
    """Wire encodings of a multi-valued field, in decoding priority order."""

    DIRECT = "direct"
    INDEXED = "indexed"
    BRACKETED = "bracketed"
    SCALAR = "scalar"


@dataclass(frozen=True)
class NormalizedValues:
    """Decoded values of one multi-valued field.

    ``shape`` is None when the field was not submitted at all. ``rejected``
    holds elements dropped because they were not reference identifiers.
    """

    values: list[Any] = field(default_factory=list)
    shape: PayloadShape | None = None
    rejected: list[Any] = field(default_factory=list)

    @property
    def submitted(self) -> bool:
        return self.shape is not None


@dataclass
class NormalizedPayload:
    """Field values extracted from a payload, plus warnings about dropped input."""

    data: RecordData = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def is_reference_id(value: Any) -> bool:
    """Whether ``value`` is a well-formed reference identifier."""
    if isinstance(value, UUID):
        return True
    if not isinstance(value, str):
        return False
    try:
        UUID(value.strip())
    except ValueError:
        return False
    return True


def parse_literal(text: str) -> Any | None:
    """Parse an array/object literal, or return None if ``text`` is not one."""
    text = text.strip()
    if not text or text[0] not in "[{":
        return None
    for candidate in (text, text.replace("'", '"')):
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None


def _ordered_values(mapping: Mapping[Any, Any]) -> list[Any]:
    keys = list(mapping)
    if all(str(k).isdigit() for k in keys):
        keys.sort(key=lambda k: int(k))
    else:
        keys.sort(key=str)
    return [mapping[k] for k in keys]


def _members(raw: Any) -> list[Any]:
    """Unpack a top-level container into its elements."""
    if isinstance(raw, str):
        parsed = parse_literal(raw)
        if parsed is not None:
            raw = parsed
    if isinstance(raw, Mapping):
        return _ordered_values(raw)
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [raw]


def _flatten(element: Any) -> list[Any]:
    """Reduce one element to zero or more scalars."""
    if element is None:
        return []
    if isinstance(element, str):
        text = element.strip()
        if not text:
            return []
        parsed = parse_literal(text)
        if parsed is None:
            return [text]
        element = parsed
    if isinstance(element, Mapping):
        if not element:
            return []
        return _flatten(next(iter(element.values())))
    if isinstance(element, (list, tuple)):
        return [value for item in element for value in _flatten(item)]
    return [element]


def _indexed_entries(payload: Payload, name: str) -> list[Any]:
    pattern = re.compile(rf"^{re.escape(name)}\[(\d+)\](.*)$")
    grouped: dict[int, Any] = {}
    for key, value in payload.items():
        match = pattern.match(key)
        if match is None:
            continue
        index = int(match.group(1))
        # field[0][id]=... style keys keep the first sub-key per index
        grouped.setdefault(index, value)
    return [grouped[index] for index in sorted(grouped)]


def detect_shape(payload: Payload, name: str) -> PayloadShape | None:
    """Return the first matching wire encoding of ``name``, if any."""
    direct = payload.get(name)
    if isinstance(direct, (list, tuple, Mapping)):
        return PayloadShape.DIRECT
    prefix = f"{name}["
    if any(key.startswith(prefix) and key[len(prefix) : len(prefix) + 1].isdigit() for key in payload):
        return PayloadShape.INDEXED
    if f"{name}[]" in payload:
        return PayloadShape.BRACKETED
    if name in payload:
        return PayloadShape.SCALAR
    return None


def decode(payload: Payload, name: str, references: bool = False) -> NormalizedValues:
    """Decode the values submitted for ``name`` into an ordered list.

    Args:
        payload: Submitted payload, possibly with bracketed keys
        name: Field (or removal list) name
        references: Keep only well-formed reference identifiers

    Returns:
        The decoded values; always a list, possibly empty
    """
    shape = detect_shape(payload, name)
    match shape:
        case None:
            return NormalizedValues()
        case PayloadShape.DIRECT:
            elements = _members(payload[name])
        case PayloadShape.INDEXED:
            elements = _indexed_entries(payload, name)
        case PayloadShape.BRACKETED:
            elements = _members(payload[f"{name}[]"])
        case PayloadShape.SCALAR:
            elements = _members(payload[name])

    values = [value for element in elements for value in _flatten(element)]
    if not references:
        return NormalizedValues(values=values, shape=shape)

    kept: list[Any] = []
    rejected: list[Any] = []
    for value in values:
        if is_reference_id(value):
            kept.append(str(UUID(str(value).strip())))
        else:
            rejected.append(value)
    return NormalizedValues(values=kept, shape=shape, rejected=rejected)


def normalize(descriptor: FieldDescriptor, payload: Payload) -> NormalizedValues:
    """Decode a multi-valued field described by ``descriptor``."""
    references = descriptor.semantic_type == SemanticType.array_reference
    return decode(payload, descriptor.name, references=references)


def _single(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        # Repeated keys, e.g. a hidden "false" input before a checkbox
        return value[-1] if value else None
    return value


def coerce_scalar(descriptor: FieldDescriptor, value: Any) -> Any:
    """Coerce a submitted scalar to the field's semantic type.

    Values that cannot be coerced are returned unchanged so that validation
    can report them against the field.
    """
    value = _single(value)
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None

    match descriptor.semantic_type:
        case SemanticType.number:
            if isinstance(value, float) and not math.isfinite(value):
                # NaN and infinities are not JSON; validation reports them as non-numbers
                return str(value)
            if not isinstance(value, str):
                return value
            text = value.strip()
            try:
                number = int(text) if _INT_PATTERN.match(text) else float(text)
            except ValueError:
                return value
            return number if math.isfinite(number) else value
        case SemanticType.boolean:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in TRUE_VALUES:
                return True
            if text in FALSE_VALUES:
                return False
            return value
        case SemanticType.date:
            if isinstance(value, datetime):
                return value.date().isoformat()
            if isinstance(value, date):
                return value.isoformat()
            text = str(value).strip()
            try:
                return datetime.fromisoformat(text).date().isoformat()
            except ValueError:
                return value
        case SemanticType.reference:
            text = str(value).strip()
            return str(UUID(text)) if is_reference_id(text) else value
        case _:
            return value


def removal_list(payload: Payload, name: str) -> list[str]:
    """Paths requested for removal from the file field ``name``."""
    decoded = decode(payload, f"{REMOVAL_PREFIX}{name}")
    return [str(value) for value in decoded.values]


def normalize_payload(
    descriptors: Mapping[str, FieldDescriptor], payload: Payload
) -> NormalizedPayload:
    """Extract the values of every descriptor-backed field from ``payload``.

    Keys the descriptors do not name are ignored. File fields are skipped;
    their values come from the attachment manager. Fields absent from the
    payload are absent from the result.
    """
    result = NormalizedPayload()
    for name, descriptor in descriptors.items():
        if descriptor.is_file:
            continue
        if descriptor.is_multi_valued:
            normalized = normalize(descriptor, payload)
            if not normalized.submitted:
                continue
            if normalized.rejected:
                message = (
                    f"Dropped invalid reference identifiers for {name}: "
                    f"{', '.join(repr(v) for v in normalized.rejected)}"
                )
                logger.warning(message)
                result.warnings.append(message)
            result.data[name] = normalized.values
        elif name in payload:
            result.data[name] = coerce_scalar(descriptor, payload[name])
    return result
