"""Unified data models for captured samples and inferred schemas.

Every sample source (runtime capture, sample files, OpenAPI declarations,
validator adapters) reduces its input to these models before the
pattern detector and merger see it.
"""

import copy
import hashlib
import json
import math
from datetime import datetime, timezone
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Keywords the engine reads from fragments and emits in merged schemas.
SCHEMA_KEYWORDS = (
    "type",
    "format",
    "pattern",
    "enum",
    "minimum",
    "maximum",
    "example",
    "items",
    "properties",
    "required",
)

SCHEMA_TYPES = ("null", "boolean", "integer", "number", "string", "array", "object")

SIDES = ("request", "response")


class PropertySchema(TypedDict, total=False):
    """Canonical structural description of one value."""

    type: str
    format: str
    pattern: str
    enum: list
    minimum: float
    maximum: float
    example: Any
    items: "PropertySchema"
    properties: dict[str, "PropertySchema"]
    required: list[str]


class Sample(BaseModel):
    """One observed request/response pair reduced to schema fragments."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: str
    path: str
    request_schema: dict | None = Field(default=None, alias="requestSchema")
    response_schema: dict | None = Field(default=None, alias="responseSchema")
    timestamp: str = ""
    hash: str = ""

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return v.upper()

    @field_validator("request_schema", "response_schema")
    @classmethod
    def _detach_fragment(cls, v: dict | None) -> dict | None:
        # Stored samples must not share structure with the caller.
        return copy.deepcopy(v) if v is not None else None

    @classmethod
    def create(
        cls,
        method: str,
        path: str,
        request_schema: dict | None = None,
        response_schema: dict | None = None,
    ) -> "Sample":
        """Build a sample stamped with the current UTC time and its content hash."""
        return cls(
            method=method,
            path=path,
            request_schema=request_schema,
            response_schema=response_schema,
            timestamp=datetime.now(timezone.utc).isoformat(),
            hash=content_hash(method, path, request_schema, response_schema),
        )

    def side(self, name: str) -> dict | None:
        """Return the fragment for 'request' or 'response'."""
        if name == "request":
            return self.request_schema
        if name == "response":
            return self.response_schema
        raise ValueError(f"unknown side: {name!r}")


class PatternReport(BaseModel):
    """Field presence and enum-candidate statistics for one side of one operation."""

    required_fields: list[str] = []
    optional_fields: list[str] = []
    enum_candidates: dict[str, list] = {}
    total: int = 0


def content_hash(
    method: str,
    path: str,
    request_schema: dict | None,
    response_schema: dict | None,
) -> str:
    """Stable 16-hex-char identity of a sample's content."""
    content = json.dumps(
        {
            "method": method.upper(),
            "path": path,
            "requestSchema": request_schema,
            "responseSchema": response_schema,
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def coerce_samples(samples) -> list[Sample]:
    """Accept Sample models or plain mappings; drop entries that don't validate."""
    result = []
    for s in samples:
        if isinstance(s, Sample):
            result.append(s)
        elif isinstance(s, dict):
            try:
                result.append(Sample.model_validate(s))
            except ValueError:
                continue
    return result


def fragment_type(fragment: Any) -> str | None:
    """The declared or implied type of a fragment, or None if it has none."""
    if not isinstance(fragment, dict):
        return None
    t = fragment.get("type")
    if isinstance(t, str) and t in SCHEMA_TYPES:
        return t
    if t is not None:
        return None
    if isinstance(fragment.get("properties"), dict):
        return "object"
    if isinstance(fragment.get("items"), dict):
        return "array"
    return None


def asserted_properties(fragment: dict) -> tuple[dict, set[str]]:
    """Split an object fragment into its properties and the names it asserts present.

    A fragment with its own ``required`` list (a declared schema, or a
    previously merged one) only asserts the listed names; a raw observation
    asserts every property it has.
    """
    props = fragment.get("properties")
    if not isinstance(props, dict):
        return {}, set()
    declared = fragment.get("required")
    if isinstance(declared, list):
        present = {name for name in props if name in declared}
    else:
        present = set(props)
    return props, present


def is_literal(value: Any) -> bool:
    """True for string and (non-boolean, finite) numeric literals."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (str, int))
