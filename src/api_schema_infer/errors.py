"""Exceptions raised at the I/O edges of schema-infer.

The inference engine itself never raises; these cover reading sample
files, OpenAPI documents and configuration.
"""


class SchemaInferError(Exception):
    """Base class for all schema-infer errors."""


class SampleFileError(SchemaInferError):
    """A sample or OpenAPI file could not be read or has the wrong shape."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ConfigError(SchemaInferError):
    """Configuration file or environment holds an invalid value."""
