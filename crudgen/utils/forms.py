"""
Submitted form utilities for crudgen.

Splits an inbound request body into a plain payload (field values, keys kept
as submitted) and the uploaded files grouped by field name.
"""

import json
import math
import re
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Request
from starlette.datastructures import UploadFile

from ..exceptions.domain import ValidationError
from ..types import Payload

_FILE_KEY_SUFFIX = re.compile(r"\[\d*\]$")


def _reject_constant(name: str) -> None:
    # Python's decoder accepts NaN and Infinity, which are not JSON
    raise ValueError(f"{name} is not a JSON value")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} overflows a double")
    return value


@dataclass
class Submission:
    """Payload and uploaded files of one insert or update request."""

    payload: Payload = field(default_factory=dict)
    files: dict[str, list[UploadFile]] = field(default_factory=dict)


def file_field_name(key: str) -> str:
    """``images[]`` and ``images[0]`` both upload into ``images``."""
    return _FILE_KEY_SUFFIX.sub("", key)


async def read_submission(request: Request) -> Submission:
    """Read a JSON, urlencoded, or multipart request body.

    Repeated form keys are collected into a list; file parts with an empty
    file name (an untouched file input) are ignored.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = json.loads(
                await request.body(), parse_constant=_reject_constant, parse_float=_finite_float
            )
        except ValueError:
            raise ValidationError(message="Request body is not valid JSON") from None
        if not isinstance(body, dict):
            raise ValidationError(message="Request body must be a JSON object")
        return Submission(payload=body)

    form = await request.form()
    payload: Payload = {}
    files: dict[str, list[UploadFile]] = defaultdict(list)
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if value.filename:
                files[file_field_name(key)].append(value)
            continue
        if key in payload:
            existing = payload[key]
            payload[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            payload[key] = value
    return Submission(payload=payload, files=dict(files))
