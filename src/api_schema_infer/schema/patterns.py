"""Pattern detector — field presence and distinct-value statistics for one operation.

Detection is kept apart from the enum cardinality policy: this module
reports every field with two or more distinct literals, and the merger
decides which of them become an ``enum``.
"""

from collections.abc import Iterable

from .base import PatternReport, Sample, asserted_properties, coerce_samples, fragment_type, is_literal
from .classifier import DEFAULT_MAX_DEPTH


def detect_patterns(
    samples: Iterable[Sample | dict],
    side: str = "response",
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> PatternReport:
    """Compute required/optional top-level fields and enum candidates for one side."""
    presence: dict[str, int] = {}
    total = 0
    values: dict[str, ValueSet] = {}

    for sample in coerce_samples(samples):
        fragment = sample.side(side)
        if fragment_type(fragment) != "object" or not isinstance(fragment.get("properties"), dict):
            continue
        total += 1
        props, present = asserted_properties(fragment)
        for name in props:
            presence.setdefault(name, 0)
            if name in present:
                presence[name] += 1
        _collect_values(fragment, "", values, max_depth, 0)

    required = [name for name, count in presence.items() if count == total]
    optional = [name for name, count in presence.items() if count < total]

    enum_candidates = {path: vs.ordered for path, vs in values.items() if len(vs) >= 2}

    return PatternReport(
        required_fields=required,
        optional_fields=optional,
        enum_candidates=enum_candidates,
        total=total,
    )


class ValueSet:
    """Distinct literals in first-seen order."""

    def __init__(self):
        self.ordered: list = []
        self._keys: set = set()

    def add(self, value) -> None:
        if value not in self._keys:
            self._keys.add(value)
            self.ordered.append(value)

    def __contains__(self, value) -> bool:
        return value in self._keys

    def __len__(self) -> int:
        return len(self.ordered)


def _collect_values(fragment: dict, prefix: str, values: dict, max_depth: int, depth: int) -> None:
    if depth > max_depth:
        return
    t = fragment_type(fragment)
    if t == "object":
        props = fragment.get("properties")
        if not isinstance(props, dict):
            return
        for name, prop in props.items():
            path = f"{prefix}.{name}" if prefix else str(name)
            _collect_values(prop, path, values, max_depth, depth + 1)
    elif t == "array":
        items = fragment.get("items")
        if isinstance(items, dict) and items:
            _collect_values(items, f"{prefix}[]", values, max_depth, depth + 1)
    elif t in ("string", "number", "integer") and prefix:
        for literal in literals_of(fragment):
            values.setdefault(prefix, ValueSet()).add(literal)


def literals_of(fragment: dict) -> list:
    """The string/number literals a scalar fragment carries (declared enum, then example)."""
    found = []
    declared = fragment.get("enum")
    if isinstance(declared, list):
        found.extend(v for v in declared if is_literal(v))
    if "example" in fragment and is_literal(fragment["example"]):
        found.append(fragment["example"])
    return found
