"""Type & value classifier — reduces one decoded value to a schema fragment.

Every numeric value classifies as ``number``; promoting a field to
``integer`` is left to the merger, which sees all observed values.
"""

import enum
import math
import re
import uuid
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from .base import PropertySchema

DEFAULT_MAX_DEPTH = 32

_DATE_TIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:?\d{2})?$"
)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def classify(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> PropertySchema:
    """Map one decoded value to a PropertySchema leaf (or subtree)."""
    return _classify(value, max_depth, 0, set())


def detect_format(text: str) -> str | None:
    """Return the string format a whole value matches, if any."""
    if _DATE_TIME_RE.match(text):
        return "date-time"
    if _DATE_RE.match(text):
        return "date"
    if _UUID_RE.match(text):
        return "uuid"
    if _EMAIL_RE.match(text):
        return "email"
    return None


def _classify(value: Any, max_depth: int, depth: int, active: set[int]) -> PropertySchema:
    if value is None:
        return {"type": "null"}

    if isinstance(value, bool):
        return {"type": "boolean", "example": value}

    if isinstance(value, enum.Enum):
        return _classify(value.value, max_depth, depth, active)

    if isinstance(value, BaseModel):
        return _classify(value.model_dump(mode="json"), max_depth, depth, active)

    if isinstance(value, (list, tuple)):
        if depth >= max_depth or id(value) in active:
            return {"type": "array"}
        if not value:
            return {"type": "array", "items": {}}
        active.add(id(value))
        try:
            items = _classify(value[0], max_depth, depth + 1, active)
        finally:
            active.discard(id(value))
        return {"type": "array", "items": items}

    if isinstance(value, Mapping):
        if depth >= max_depth or id(value) in active:
            return {"type": "object"}
        active.add(id(value))
        try:
            properties = {
                str(k): _classify(v, max_depth, depth + 1, active) for k, v in value.items()
            }
        finally:
            active.discard(id(value))
        return {"type": "object", "properties": properties}

    if isinstance(value, (int, float, Decimal)):
        return _classify_number(value)

    if isinstance(value, str):
        schema: PropertySchema = {"type": "string"}
        fmt = detect_format(value)
        if fmt:
            schema["format"] = fmt
        schema["example"] = value
        return schema

    if isinstance(value, datetime):
        return {"type": "string", "format": "date-time", "example": value.isoformat()}

    if isinstance(value, date):
        return {"type": "string", "format": "date", "example": value.isoformat()}

    if isinstance(value, uuid.UUID):
        return {"type": "string", "format": "uuid", "example": str(value)}

    if isinstance(value, (bytes, bytearray)):
        return {"type": "string", "format": "byte"}

    # Unknown kinds go over the wire as text in practice.
    return {"type": "string"}


def _classify_number(value: int | float | Decimal) -> PropertySchema:
    if isinstance(value, Decimal):
        if not value.is_finite():
            return {"type": "number"}
        value = int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, float) and not math.isfinite(value):
        return {"type": "number"}
    return {"type": "number", "example": value}
