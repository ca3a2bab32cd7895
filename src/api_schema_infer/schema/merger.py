"""Schema merger — folds many sample fragments into one canonical schema.

The merge is recomputed from the full history on every call. Each field
is tracked by a ``_Node`` accumulator that keeps presence counters,
distinct literals and numeric extrema; only ``render()`` turns it into
an output schema, so none of that state leaks into the result.

Type conflicts between fragments at the same path are resolved by
letting the later fragment replace the accumulated one. ``integer`` and
``number`` are one family and never conflict, and a ``null`` observation
never replaces a typed one.
"""

import logging
from collections.abc import Iterable

from api_schema_infer.config import InferConfig

from .base import SIDES, PropertySchema, Sample, asserted_properties, coerce_samples, fragment_type, is_literal
from .patterns import ValueSet, literals_of

logger = logging.getLogger(__name__)

_MISSING = object()


def merge_snapshots(samples: Iterable[Sample | dict], config: InferConfig | None = None) -> dict:
    """Merge a sample history into ``{"request_schema"?, "response_schema"?}``.

    An empty history yields ``{}``; a side no sample carries is omitted.
    """
    cfg = config or InferConfig()
    history = coerce_samples(samples)
    result = {}
    for side in SIDES:
        fragments = [s.side(side) for s in history if s.side(side) is not None]
        if fragments:
            result[f"{side}_schema"] = merge_fragments(fragments, cfg)
    return result


def merge_fragments(fragments: Iterable[dict], config: InferConfig | None = None) -> PropertySchema:
    """Fold schema fragments in order and render the merged schema."""
    cfg = config or InferConfig()
    root = _Node()
    for fragment in fragments:
        root.fold(fragment, cfg, 0, "$")
    return root.render(cfg)


class _Node:
    """Accumulator for every fragment observed at one schema path."""

    def __init__(self):
        self._reset()

    def _reset(self) -> None:
        self.kind: str | None = None

        # object
        self.objects = 0
        self.properties: dict[str, _Node] = {}
        self.presence: dict[str, int] = {}

        # array
        self.items: _Node | None = None

        # scalars
        self.values = ValueSet()
        self.last_value = _MISSING
        self.minimum: float | None = None
        self.maximum: float | None = None
        self.int_evidence = False
        self.fractional = False
        self.formats: set[str] = set()
        self.format_missing = False
        self.patterns: set[str] = set()
        self.pattern_missing = False

    def fold(self, fragment, cfg: InferConfig, depth: int, path: str) -> None:
        t = fragment_type(fragment)
        if t is None or depth > cfg.max_depth:
            return

        kind = "number" if t == "integer" else t
        if kind == "null":
            if self.kind is None:
                self.kind = "null"
            return
        if self.kind not in (None, "null", kind):
            logger.debug("type conflict at %s: %s replaced by %s", path, self.kind, kind)
            self._reset()
        self.kind = kind

        if kind == "object":
            self._fold_object(fragment, cfg, depth, path)
        elif kind == "array":
            items = fragment.get("items")
            if isinstance(items, dict) and items:
                if self.items is None:
                    self.items = _Node()
                self.items.fold(items, cfg, depth + 1, f"{path}[]")
        elif kind == "number":
            self._fold_number(fragment, t)
        elif kind == "string":
            self._fold_string(fragment)
        elif kind == "boolean":
            example = fragment.get("example")
            if isinstance(example, bool):
                self.last_value = example

    def _fold_object(self, fragment: dict, cfg: InferConfig, depth: int, path: str) -> None:
        if not isinstance(fragment.get("properties"), dict):
            # A bare {"type": "object"} says nothing about its fields.
            return
        self.objects += 1
        props, present = asserted_properties(fragment)
        for name, prop in props.items():
            node = self.properties.setdefault(name, _Node())
            self.presence.setdefault(name, 0)
            if name in present:
                self.presence[name] += 1
            node.fold(prop, cfg, depth + 1, f"{path}.{name}")

    def _fold_number(self, fragment: dict, declared: str) -> None:
        numbers = [v for v in literals_of(fragment) if not isinstance(v, str)]
        if numbers:
            if all(_is_whole(v) for v in numbers):
                self.int_evidence = True
            else:
                self.fractional = True
        elif declared == "integer":
            self.int_evidence = True
        else:
            self.fractional = True

        bounds = [fragment.get("minimum"), fragment.get("maximum")]
        for v in numbers + [b for b in bounds if is_literal(b) and not isinstance(b, str)]:
            self.minimum = v if self.minimum is None else min(self.minimum, v)
            self.maximum = v if self.maximum is None else max(self.maximum, v)

        self._remember(numbers)

    def _fold_string(self, fragment: dict) -> None:
        fmt = fragment.get("format")
        if isinstance(fmt, str):
            self.formats.add(fmt)
        else:
            self.format_missing = True
        pattern = fragment.get("pattern")
        if isinstance(pattern, str):
            self.patterns.add(pattern)
        else:
            self.pattern_missing = True

        self._remember([v for v in literals_of(fragment) if isinstance(v, str)])

    def _remember(self, literals: list) -> None:
        for v in literals:
            self.values.add(v)
            self.last_value = v

    def render(self, cfg: InferConfig) -> PropertySchema:
        if self.kind is None:
            return {}
        if self.kind == "object":
            return self._render_object(cfg)
        if self.kind == "array":
            return {"type": "array", "items": self.items.render(cfg) if self.items else {}}
        if self.kind == "number":
            return self._render_number(cfg)
        if self.kind == "string":
            return self._render_string(cfg)

        schema: PropertySchema = {"type": self.kind}
        if self.kind == "boolean" and self.last_value is not _MISSING:
            schema["example"] = self.last_value
        return schema

    def _render_object(self, cfg: InferConfig) -> PropertySchema:
        schema: PropertySchema = {"type": "object"}
        if not self.objects:
            return schema
        schema["properties"] = {name: node.render(cfg) for name, node in self.properties.items()}
        required = [name for name, count in self.presence.items() if count == self.objects]
        if required:
            schema["required"] = required
        return schema

    def _render_number(self, cfg: InferConfig) -> PropertySchema:
        integer = self.int_evidence and not self.fractional
        schema: PropertySchema = {"type": "integer" if integer else "number"}
        self._render_literals(schema, cfg)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        return schema

    def _render_string(self, cfg: InferConfig) -> PropertySchema:
        schema: PropertySchema = {"type": "string"}
        if len(self.formats) == 1 and not self.format_missing:
            schema["format"] = next(iter(self.formats))
        if len(self.patterns) == 1 and not self.pattern_missing:
            schema["pattern"] = next(iter(self.patterns))
        self._render_literals(schema, cfg)
        return schema

    def _render_literals(self, schema: PropertySchema, cfg: InferConfig) -> None:
        if cfg.enum_min <= len(self.values) <= cfg.enum_max:
            schema["enum"] = list(self.values.ordered)
        elif self.last_value is not _MISSING:
            schema["example"] = self.last_value


def _is_whole(v: int | float) -> bool:
    if isinstance(v, int):
        return True
    return v.is_integer()
