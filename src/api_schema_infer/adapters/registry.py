"""Validator adapters — turn request-validation declarations into schema fragments.

Adapters live in an explicit ``AdapterSet`` that callers build and pass
around; there is no process-wide registry.
"""

import logging
from typing import Any

from pydantic import BaseModel

from api_schema_infer.schema.base import PropertySchema
from api_schema_infer.schema.normalize import normalize_fragment

logger = logging.getLogger(__name__)


class ValidatorAdapter:
    """Base class: detect a declaration kind and convert it to a fragment."""

    name: str = ""
    capabilities: frozenset[str] = frozenset()

    def detect(self, declaration: Any) -> bool:
        raise NotImplementedError

    def convert(self, declaration: Any) -> PropertySchema:
        raise NotImplementedError


class PydanticAdapter(ValidatorAdapter):
    """Pydantic model classes and instances."""

    name = "pydantic"
    capabilities = frozenset({"model", "json-schema"})

    def detect(self, declaration: Any) -> bool:
        if isinstance(declaration, BaseModel):
            return True
        return isinstance(declaration, type) and issubclass(declaration, BaseModel)

    def convert(self, declaration: Any) -> PropertySchema:
        model = declaration if isinstance(declaration, type) else type(declaration)
        raw = model.model_json_schema()
        return normalize_fragment(raw, raw.get("$defs", {}))


class JsonSchemaAdapter(ValidatorAdapter):
    """Plain JSON Schema / OpenAPI schema dicts."""

    name = "json-schema"
    capabilities = frozenset({"json-schema"})

    def detect(self, declaration: Any) -> bool:
        if not isinstance(declaration, dict):
            return False
        return any(k in declaration for k in ("type", "properties", "$ref", "anyOf", "oneOf", "allOf"))

    def convert(self, declaration: Any) -> PropertySchema:
        definitions = {}
        for key in ("$defs", "definitions"):
            if isinstance(declaration.get(key), dict):
                definitions.update(declaration[key])
        return normalize_fragment(declaration, definitions)


class AdapterSet:
    """An ordered, explicit collection of validator adapters."""

    def __init__(self, adapters: list[ValidatorAdapter] | None = None):
        self._adapters: dict[str, ValidatorAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    @classmethod
    def default(cls) -> "AdapterSet":
        """A fresh set holding the built-in adapters."""
        return cls([PydanticAdapter(), JsonSchemaAdapter()])

    def register(self, adapter: ValidatorAdapter) -> None:
        if adapter.name in self._adapters:
            logger.warning('validator adapter "%s" is already registered, overwriting', adapter.name)
        self._adapters[adapter.name] = adapter

    def unregister(self, name: str) -> bool:
        return self._adapters.pop(name, None) is not None

    def get(self, name: str) -> ValidatorAdapter | None:
        return self._adapters.get(name)

    def with_capability(self, capability: str) -> list[ValidatorAdapter]:
        return [a for a in self._adapters.values() if capability in a.capabilities]

    def detect_and_convert(self, declaration: Any) -> PropertySchema | None:
        """Convert with the first adapter that recognizes the declaration, else None."""
        for adapter in self._adapters.values():
            if adapter.detect(declaration):
                return adapter.convert(declaration)
        return None

    def __contains__(self, name: str) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
