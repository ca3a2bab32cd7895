"""Configuration for capture and inference.

Sources are merged in priority order:
    1. Defaults (defined in InferConfig)
    2. YAML file (./schema-infer.yaml, or an explicit path)
    3. Environment (SCHEMA_INFER_CAPTURE, SCHEMA_INFER_MAX_SAMPLES, SCHEMA_INFER_MAX_DEPTH)
    4. Explicit overrides passed to load_config
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from api_schema_infer.errors import ConfigError

DEFAULT_CONFIG_FILE = "schema-infer.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class InferConfig(BaseModel):
    """Tunables shared by the snapshot store, pattern detector and merger."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    capture_enabled: bool = True
    max_samples_per_route: int | None = None  # None keeps every sample
    dedupe: bool = True
    enum_min: int = 2
    enum_max: int = 10
    max_depth: int = 32

    @model_validator(mode="after")
    def _check_ranges(self) -> "InferConfig":
        if self.max_samples_per_route is not None and self.max_samples_per_route < 1:
            raise ValueError("max_samples_per_route must be at least 1")
        if self.enum_min < 1 or self.enum_max < self.enum_min:
            raise ValueError("enum bounds must satisfy 1 <= enum_min <= enum_max")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        return self


def load_config(path: Path | None = None, **overrides) -> InferConfig:
    """Build an InferConfig from file, environment and explicit overrides."""
    values: dict = {}

    file_path = path if path is not None else Path.cwd() / DEFAULT_CONFIG_FILE
    if path is not None or file_path.exists():
        values.update(_read_file(file_path))

    values.update(_read_env())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return InferConfig(**values)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def _read_file(file_path: Path) -> dict:
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {file_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{file_path}: expected a mapping at top level")
    bad_keys = [key for key in data if not isinstance(key, str)]
    if bad_keys:
        raise ConfigError(f"{file_path}: setting names must be strings, got {bad_keys!r}")
    return data


def _read_env() -> dict:
    values: dict = {}

    capture = os.getenv("SCHEMA_INFER_CAPTURE")
    if capture is not None:
        flag = capture.strip().lower()
        if flag in _TRUE:
            values["capture_enabled"] = True
        elif flag in _FALSE:
            values["capture_enabled"] = False
        else:
            raise ConfigError(f"SCHEMA_INFER_CAPTURE: not a boolean: {capture!r}")

    for env_name, key in (
        ("SCHEMA_INFER_MAX_SAMPLES", "max_samples_per_route"),
        ("SCHEMA_INFER_MAX_DEPTH", "max_depth"),
    ):
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            values[key] = int(raw)
        except ValueError as e:
            raise ConfigError(f"{env_name}: not an integer: {raw!r}") from e

    return values
