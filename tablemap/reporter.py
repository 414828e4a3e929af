from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from tablemap.domain.models import BatchInsertResult, ColumnSchema, FieldMapping, FieldRef, RepeaterSpec


def schema_table(schema: ColumnSchema, title: str = "Inferred Schema") -> Table:
    """
    Build a rich table listing the columns of a schema in order.
    """
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Column", style="cyan", no_wrap=True)
    table.add_column("Type", style="green")
    table.add_column("Primary Key", justify="center", style="bold yellow")
    table.add_column("Auto Increment", justify="center", style="magenta")

    for column in schema.columns:
        table.add_row(
            column.name,
            column.storage_type.value,
            "✔" if column.primary_key else "",
            "✔" if column.auto_increment else "",
        )
    return table


def _mapping_rows(mapping: FieldMapping, indent: int = 0) -> List[tuple[str, str, str]]:
    rows = []
    prefix = "  " * indent + ("└ " if indent else "")
    for target, spec in mapping.items():
        if isinstance(spec, RepeaterSpec):
            rows.append((prefix + target, spec.path, f"repeater (depth {spec.depth})"))
            rows.extend(_mapping_rows(spec.sub_fields, indent + 1))
        elif isinstance(spec, FieldRef):
            details = [spec.kind.value] if spec.kind else []
            if spec.filter is not None:
                details.append(f"filter={spec.filter if isinstance(spec.filter, str) else 'callable'}")
            rows.append((prefix + target, spec.path, ", ".join(details)))
        else:
            rows.append((prefix + target, spec, ""))
    return rows


def mapping_table(mapping: FieldMapping, title: str = "Field Mapping") -> Table:
    """
    Build a rich table of target fields, source locators and entry details.
    Repeater sub-fields are indented below their repeater.
    """
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Target Field", style="cyan", no_wrap=True)
    table.add_column("Source", style="green")
    table.add_column("Details", style="yellow")

    for row in _mapping_rows(mapping):
        table.add_row(*row)
    return table


def print_schema(schema: ColumnSchema, console: Optional[Console] = None) -> None:
    (console or Console()).print(schema_table(schema))


def print_mapping(mapping: FieldMapping, console: Optional[Console] = None) -> None:
    console = console or Console()
    if not mapping:
        console.print("[yellow]No fields mapped.[/yellow]")
        return
    console.print(mapping_table(mapping))


def print_batch_result(table_name: str, result: BatchInsertResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    if result.inserted == 0:
        console.print(f"[red]No rows inserted into {table_name}.[/red]")
        return
    first, last = result.ids[0], result.ids[-1]
    console.print(
        f"[green]Inserted {result.inserted:,} rows into {table_name}[/green] "
        f"[dim](ids {first} … {last})[/dim]"
    )


__all__ = ["mapping_table", "print_batch_result", "print_mapping", "print_schema", "schema_table"]
