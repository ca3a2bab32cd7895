"""CLI entry point for schema-infer."""

import fnmatch
import json
import logging
from pathlib import Path

import click
import yaml

from api_schema_infer.config import load_config
from api_schema_infer.errors import SchemaInferError
from api_schema_infer.parser.openapi import parse_declared
from api_schema_infer.parser.samples import load_samples
from api_schema_infer.store.snapshots import SnapshotStore


def _build_store(ctx: click.Context, samples_path: Path, declared: Path | None) -> SnapshotStore:
    """Load captured (and optionally declared) samples into a fresh store."""
    config = ctx.obj["config"]
    try:
        samples = load_samples(samples_path, config.max_depth)
        if declared is not None:
            samples = parse_declared(declared) + samples
    except SchemaInferError as e:
        raise click.ClickException(str(e)) from e

    # Capture switches don't apply to offline files.
    store = SnapshotStore(config.model_copy(update={"capture_enabled": True}))
    for s in samples:
        store.record(s.method, s.path, s.request_schema, s.response_schema)
    return store


def _filter_routes(routes: list[tuple[str, str]], filters: tuple[str, ...]) -> list[tuple[str, str]]:
    """Keep routes matching any 'METHOD /path' or '/path' glob filter."""
    if not filters:
        return routes
    result = []
    for method, path in routes:
        for f in filters:
            if " " in f:
                f_method, f_path = f.split(" ", 1)
                if f_method.upper() == method and fnmatch.fnmatch(path, f_path.strip()):
                    result.append((method, path))
                    break
            elif fnmatch.fnmatch(path, f):
                result.append((method, path))
                break
    return result


def _emit(data, fmt: str, output: Path | None) -> None:
    if fmt == "json":
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Written to {output}")


@click.group()
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML config file.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool):
    """Schema Infer — merge captured API samples into canonical schemas."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(config_path)
    except SchemaInferError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj = {"config": config}


@main.command()
@click.argument("samples_path", type=click.Path(exists=True, path_type=Path))
@click.option("--declared", default=None, type=click.Path(exists=True, path_type=Path), help="OpenAPI document whose schemas are folded in.")
@click.option("--route", "routes", multiple=True, help="Only these routes, e.g. 'GET /users' or '/users/*'. Repeatable.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["yaml", "json"]), help="Output format.")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file (default: stdout).")
@click.pass_context
def merge(ctx: click.Context, samples_path: Path, declared: Path | None, routes: tuple[str, ...], fmt: str, output: Path | None):
    """Merge every route's samples into request/response schemas."""
    store = _build_store(ctx, samples_path, declared)
    result = {}
    for method, path in _filter_routes(store.routes(), routes):
        result[f"{method} {path}"] = store.merge(method, path)
    _emit(result, fmt, output)


@main.command()
@click.argument("samples_path", type=click.Path(exists=True, path_type=Path))
@click.option("--side", default="response", type=click.Choice(["request", "response"]), help="Which payload to analyze.")
@click.option("--route", "routes", multiple=True, help="Only these routes, e.g. 'GET /users' or '/users/*'. Repeatable.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["yaml", "json"]), help="Output format.")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file (default: stdout).")
@click.pass_context
def patterns(ctx: click.Context, samples_path: Path, side: str, routes: tuple[str, ...], fmt: str, output: Path | None):
    """Report required/optional fields and enum candidates per route."""
    store = _build_store(ctx, samples_path, None)
    result = {}
    for method, path in _filter_routes(store.routes(), routes):
        result[f"{method} {path}"] = store.patterns(method, path, side).model_dump()
    _emit(result, fmt, output)


@main.command(name="routes")
@click.argument("samples_path", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def list_routes(ctx: click.Context, samples_path: Path):
    """List captured routes with their sample counts."""
    store = _build_store(ctx, samples_path, None)
    all_samples = store.all_samples()
    for method, path in store.routes():
        click.echo(f"{method} {path}  ({len(all_samples[(method, path)])} samples)")
    click.echo(f"Found {len(all_samples)} routes.")
