"""Reduce declared JSON Schema / OpenAPI schemas to the engine's fragment vocabulary."""

from typing import Any

from .base import SCHEMA_KEYWORDS, PropertySchema

REF_PREFIXES = ("#/components/schemas/", "#/$defs/", "#/definitions/")

MAX_REF_DEPTH = 32


def normalize_fragment(raw: Any, definitions: dict | None = None) -> PropertySchema:
    """Inline local refs, collapse nullable unions, and drop unknown keywords.

    Anything that cannot be expressed without ``$ref``/``oneOf``/``allOf``
    becomes ``{}``.
    """
    return _normalize(raw, definitions or {}, 0, ())


def _normalize(raw: Any, definitions: dict, depth: int, refs: tuple[str, ...]) -> PropertySchema:
    if not isinstance(raw, dict) or depth > MAX_REF_DEPTH:
        return {}

    ref = raw.get("$ref")
    if isinstance(ref, str):
        target = _resolve_ref(ref, definitions)
        if target is None or ref in refs:
            return {}
        return _normalize(target, definitions, depth + 1, refs + (ref,))

    for union_key in ("anyOf", "oneOf"):
        members = raw.get(union_key)
        if isinstance(members, list):
            non_null = [m for m in members if not (isinstance(m, dict) and m.get("type") == "null")]
            if len(non_null) != 1:
                return {}
            merged = {k: v for k, v in raw.items() if k != union_key}
            merged.update(_normalize(non_null[0], definitions, depth + 1, refs))
            return _normalize(merged, definitions, depth + 1, refs)

    members = raw.get("allOf")
    if isinstance(members, list):
        if len(members) != 1:
            return {}
        merged = {k: v for k, v in raw.items() if k != "allOf"}
        merged.update(_normalize(members[0], definitions, depth + 1, refs))
        return _normalize(merged, definitions, depth + 1, refs)

    result: PropertySchema = {}
    t = raw.get("type")
    if isinstance(t, list):
        # JSON Schema 2020 style ["string", "null"]
        non_null = [x for x in t if x != "null"]
        if len(non_null) == 1:
            result["type"] = non_null[0]
    elif isinstance(t, str):
        result["type"] = t

    if "const" in raw and "enum" not in raw:
        result["enum"] = [raw["const"]]

    for key in SCHEMA_KEYWORDS:
        if key in ("type", "items", "properties") or key not in raw:
            continue
        result[key] = raw[key]

    if isinstance(raw.get("items"), dict):
        result["items"] = _normalize(raw["items"], definitions, depth + 1, refs)

    if isinstance(raw.get("properties"), dict):
        result["properties"] = {
            str(name): _normalize(prop, definitions, depth + 1, refs)
            for name, prop in raw["properties"].items()
        }
        result.setdefault("type", "object")
        # no required list means every declared property is optional
        result.setdefault("required", [])

    return result


def _resolve_ref(ref: str, definitions: dict) -> dict | None:
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix):
            target = definitions.get(ref[len(prefix):])
            return target if isinstance(target, dict) else None
    return None
