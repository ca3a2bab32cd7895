"""OpenAPI / Swagger declared-schema parser.

Turns the request and success-response schemas of an OpenAPI 3.x or
Swagger 2.0 document into declared samples the merger can fold together
with captured traffic.
"""

from pathlib import Path

import yaml

from api_schema_infer.errors import SampleFileError
from api_schema_infer.schema.base import Sample
from api_schema_infer.schema.normalize import normalize_fragment

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


def parse_declared(file_path: Path) -> list[Sample]:
    """Parse an OpenAPI/Swagger file into one declared Sample per operation with a schema."""
    try:
        doc = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise SampleFileError(file_path, f"cannot read document: {e}") from e
    if not isinstance(doc, dict) or not ("openapi" in doc or "swagger" in doc):
        raise SampleFileError(file_path, "not an OpenAPI or Swagger document")

    definitions = _definitions(doc)
    samples = []
    paths = doc.get("paths") or {}
    if not isinstance(paths, dict):
        raise SampleFileError(file_path, "'paths' must be a mapping")

    for path, methods in paths.items():
        if not isinstance(methods, dict):
            continue
        for method, operation in methods.items():
            if not isinstance(method, str) or method.upper() not in HTTP_METHODS or not isinstance(operation, dict):
                continue

            request = _request_schema(operation)
            responses = operation.get("responses")
            response = _response_schema(responses) if isinstance(responses, dict) else None
            if request is None and response is None:
                continue

            samples.append(
                Sample.create(
                    method,
                    path,
                    request_schema=normalize_fragment(request, definitions) if request else None,
                    response_schema=normalize_fragment(response, definitions) if response else None,
                )
            )

    return samples


def _definitions(doc: dict) -> dict:
    components = doc.get("components") or {}
    definitions = doc.get("definitions") or {}
    definitions = dict(definitions) if isinstance(definitions, dict) else {}
    schemas = components.get("schemas") if isinstance(components, dict) else None
    if isinstance(schemas, dict):
        definitions.update(schemas)
    return definitions


def _request_schema(operation: dict) -> dict | None:
    body = operation.get("requestBody")
    if isinstance(body, dict):
        return _content_schema(body.get("content") or {})
    # Swagger 2.0: body parameter
    parameters = operation.get("parameters")
    if not isinstance(parameters, list):
        return None
    for p in parameters:
        if isinstance(p, dict) and p.get("in") == "body" and isinstance(p.get("schema"), dict):
            return p["schema"]
    return None


def _response_schema(responses: dict) -> dict | None:
    for status_code in sorted(responses, key=str):
        if not str(status_code).startswith("2"):
            continue
        resp = responses[status_code]
        if not isinstance(resp, dict):
            continue
        if isinstance(resp.get("schema"), dict):
            return resp["schema"]
        schema = _content_schema(resp.get("content") or {})
        if schema is not None:
            return schema
    return None


def _content_schema(content: dict) -> dict | None:
    if not isinstance(content, dict):
        return None
    for content_type in ("application/json", "multipart/form-data"):
        if isinstance(content.get(content_type), dict):
            schema = content[content_type].get("schema")
            if isinstance(schema, dict):
                return schema
    # Fallback: first available schema
    for ct_data in content.values():
        if isinstance(ct_data, dict) and isinstance(ct_data.get("schema"), dict):
            return ct_data["schema"]
    return None
