from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from tablemap.config import get_settings
from tablemap.domain.models import MappingOptions, StorageType
from tablemap.errors import ApiError, SchemaConflictError
from tablemap.infrastructure.http_client import ApiClient
from tablemap.infrastructure.postgres import PostgresEngine
from tablemap.mapping.generator import generate_mapping, mapping_from_dict, mapping_to_dict
from tablemap.mapping.schema import build_schema
from tablemap.mapping.transformer import field_errors, strip_field_errors, transform
from tablemap.reporter import print_batch_result, print_mapping, print_schema
from tablemap.storage.table_store import TableStore
from tablemap.utils.logging import configure_from_settings

app = typer.Typer(help="Infer table schemas and field mappings from API payloads.")


def _load_example(path: Path) -> Any:
    """Read a JSON file; a list yields its first element."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        typer.echo(f"Cannot read example {path}: {exc}", err=True)
        raise typer.Exit(code=1)
    if isinstance(data, list):
        if not data:
            typer.echo(f"Example {path} is an empty list.", err=True)
            raise typer.Exit(code=1)
        data = data[0]
    if not isinstance(data, dict):
        typer.echo(f"Example {path} must contain a JSON object.", err=True)
        raise typer.Exit(code=1)
    return data


def _mapping_options(
    title_field: Optional[str],
    content_field: Optional[str],
    detect_images: Optional[bool],
    max_depth: Optional[int],
) -> MappingOptions:
    settings = get_settings()
    return MappingOptions(
        title_field=title_field or settings.mapping_title_field,
        content_field=content_field or settings.mapping_content_field,
        detect_images=settings.mapping_detect_images if detect_images is None else detect_images,
        max_depth=settings.mapping_max_depth if max_depth is None else max_depth,
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pk={settings.primary_key_name} {settings.primary_key_type} | "
        f"max_depth={settings.mapping_max_depth} detect_images={settings.mapping_detect_images} | "
        f"api={settings.api_base_url or '-'}"
    )


@app.command("infer-schema")
def infer_schema(
    example: Path = typer.Argument(..., help="JSON file holding an example record (or a list of records)."),
    primary_key: Optional[str] = typer.Option(None, "--primary-key", "-k", help="Primary-key column name."),
    primary_key_type: Optional[str] = typer.Option(None, "--primary-key-type", help="Primary-key storage type."),
    as_json: bool = typer.Option(False, "--json", help="Print the schema as JSON."),
) -> None:
    """
    Infer the column schema a table created from EXAMPLE would get.
    """
    configure_from_settings()
    settings = get_settings()
    record = _load_example(example)
    try:
        schema = build_schema(
            record,
            primary_key=primary_key or settings.primary_key_name,
            primary_key_type=StorageType.parse(primary_key_type or settings.primary_key_type),
        )
    except (SchemaConflictError, ValueError) as exc:
        typer.echo(f"Schema conflict: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(schema.render(), indent=2))
    else:
        print_schema(schema)


@app.command("generate-mapping")
def generate_mapping_command(
    example: Path = typer.Argument(..., help="JSON file holding an example record (or a list of records)."),
    title_field: Optional[str] = typer.Option(None, "--title-field", help="Source field mapped to `title`."),
    content_field: Optional[str] = typer.Option(None, "--content-field", help="Source field mapped to `content`."),
    detect_images: Optional[bool] = typer.Option(
        None, "--detect-images/--no-detect-images", help="Detect image and gallery fields."
    ),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=0, help="Maximum repeater nesting depth."),
    as_json: bool = typer.Option(False, "--json", help="Print the mapping as JSON."),
) -> None:
    """
    Generate a field mapping from EXAMPLE.
    """
    configure_from_settings()
    record = _load_example(example)
    mapping = generate_mapping(record, _mapping_options(title_field, content_field, detect_images, max_depth))
    if as_json:
        typer.echo(json.dumps(mapping_to_dict(mapping), indent=2))
    else:
        print_mapping(mapping)


@app.command()
def load(
    endpoint: str = typer.Argument(..., help="Endpoint (relative to --base-url) returning a record list."),
    table: str = typer.Option(..., "--table", "-t", help="Target table; created on first load."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="API root (default from settings)."),
    mapping_file: Optional[Path] = typer.Option(None, "--mapping", help="JSON mapping to use instead of generating one."),
    primary_key: Optional[str] = typer.Option(None, "--primary-key", "-k", help="Primary-key column name."),
    title_field: Optional[str] = typer.Option(None, "--title-field"),
    content_field: Optional[str] = typer.Option(None, "--content-field"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=0),
) -> None:
    """
    Fetch ENDPOINT, map every record and batch-insert them into TABLE.
    """
    configure_from_settings()
    try:
        with ApiClient(base_url=base_url) as client:
            payload = client.fetch(endpoint)
    except ApiError as exc:
        typer.echo(f"Fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    records = [r for r in (payload if isinstance(payload, list) else [payload]) if isinstance(r, dict)]
    if not records:
        typer.echo("No records returned.")
        return

    if mapping_file is not None:
        mapping = mapping_from_dict(json.loads(mapping_file.read_text(encoding="utf-8")))
    else:
        mapping = generate_mapping(records[0], _mapping_options(title_field, content_field, None, max_depth))

    rows = []
    for record in records:
        transformed = transform(record, mapping)
        for error in field_errors(transformed):
            typer.echo(f"Field '{error.field}' stored as NULL: {error.message}", err=True)
        rows.append(strip_field_errors(transformed))

    store = TableStore(PostgresEngine(), primary_key=primary_key)
    try:
        result = store.batch_insert(table, rows)
    except SchemaConflictError as exc:
        typer.echo(f"Schema conflict: {exc}", err=True)
        raise typer.Exit(code=1)
    print_batch_result(table, result)
    if result.inserted == 0:
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
