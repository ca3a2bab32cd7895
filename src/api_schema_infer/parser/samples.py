"""Sample file loader.

Accepts a JSON/YAML file holding a list of records (or ``{samples: [...]}``),
or a directory of ``*.json`` snapshot files, one record each. A record is
either in schema form::

    {method, path, requestSchema?, responseSchema?, timestamp?, hash?}

or in payload form, with raw decoded bodies that get classified::

    {method, path, request?, response?}
"""

import json
import logging
from pathlib import Path

import yaml

from api_schema_infer.errors import SampleFileError
from api_schema_infer.schema.base import Sample, content_hash
from api_schema_infer.schema.classifier import DEFAULT_MAX_DEPTH, classify

logger = logging.getLogger(__name__)


def load_samples(path: Path, max_depth: int = DEFAULT_MAX_DEPTH) -> list[Sample]:
    """Load every valid sample record from a file or snapshot directory."""
    if path.is_dir():
        records = []
        for file_path in sorted(path.glob("*.json")):
            data = _read(file_path)
            records.extend(data if isinstance(data, list) else [data])
    else:
        data = _read(path)
        if isinstance(data, dict) and "samples" in data:
            data = data["samples"]
        if not isinstance(data, list):
            raise SampleFileError(path, "expected a list of sample records")
        records = data

    samples = []
    for index, record in enumerate(records):
        sample = _to_sample(record, max_depth)
        if sample is None:
            logger.warning("%s: skipping malformed sample record #%d", path, index)
            continue
        samples.append(sample)
    return samples


def _read(file_path: Path):
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SampleFileError(file_path, f"cannot read file: {e}") from e

    # YAML is a superset of JSON, but plain json is far faster on large captures.
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SampleFileError(file_path, f"not valid JSON or YAML: {e}") from e


def _to_sample(record, max_depth: int) -> Sample | None:
    if not isinstance(record, dict):
        return None
    method = record.get("method")
    path = record.get("path")
    if not isinstance(method, str) or not isinstance(path, str):
        return None

    if "request" in record or "response" in record:
        request = record.get("request")
        response = record.get("response")
        request_schema = classify(request, max_depth) if request is not None else None
        response_schema = classify(response, max_depth) if response is not None else None
    else:
        request_schema = record.get("requestSchema", record.get("request_schema"))
        response_schema = record.get("responseSchema", record.get("response_schema"))
        if not isinstance(request_schema, dict):
            request_schema = None
        if not isinstance(response_schema, dict):
            response_schema = None

    try:
        return Sample(
            method=method,
            path=path,
            request_schema=request_schema,
            response_schema=response_schema,
            timestamp=str(record.get("timestamp", "")),
            hash=str(record.get("hash") or content_hash(method, path, request_schema, response_schema)),
        )
    except (ValueError, TypeError):
        # unhashable or otherwise unusable fragment
        return None
