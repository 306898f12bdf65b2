"""Shared CLI plumbing for command modules.

Connection resolution, the per-instance loop, format-option handling
and output helpers. Distinct from cli.helpers which contains pure
data-formatting functions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.helpers import fmt_size
from mssql_tool.cli.output import (
    OutputFormat,
    get_formatter,
    resolve_format,
    write_failures,
    write_output,
)
from mssql_tool.core.client import MssqlClient
from mssql_tool.core.config import load_config, resolve_config
from mssql_tool.core.instances import run_on_instances
from mssql_tool.core.models import ColumnMeta, QueryResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from mssql_tool.core.config import ResolvedConfig
    from mssql_tool.core.instances import InstanceBatch

FormatOption = Annotated[
    OutputFormat | None,
    typer.Option("--format", "-f", help="Output format: table|json|csv"),
]
TableOption = Annotated[
    bool, typer.Option("--table", help="Shorthand for --format table")
]
CompactOption = Annotated[
    bool, typer.Option("--compact", help="Compact JSON output (no indentation)")
]
WidthOption = Annotated[
    int | None, typer.Option("--width", help="Column width for table format")
]
NoHeaderOption = Annotated[
    bool, typer.Option("--no-header", help="Suppress header row in CSV output")
]
DatabaseFilterOption = Annotated[
    list[str] | None,
    typer.Option("--database", "-d", help="Database to include (repeatable)"),
]
ExcludeDatabaseOption = Annotated[
    list[str] | None,
    typer.Option("--exclude-database", "-x", help="Database to skip (repeatable)"),
]
WhatIfOption = Annotated[
    bool, typer.Option("--what-if", help="Show the statements without running them")
]


def resolve_connection(ctx: typer.Context, timeout: float | None = None) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("port", "database", "user", "password", "trust_server_certificate"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def target_instances(ctx: typer.Context) -> list[str]:
    """Instances from --sql-instance, else the profile's list, else its host."""
    cli_instances = ctx.ensure_object(dict).get("instances")
    if cli_instances:
        return list(cli_instances)
    resolved = resolve_connection(ctx)
    return list(resolved.instances) or [resolved.server]


def get_client(
    ctx: typer.Context, instance: str | None = None, timeout: float | None = None
) -> MssqlClient:
    resolved = resolve_connection(ctx, timeout)
    if instance is not None:
        resolved = resolved.for_instance(instance)
    return MssqlClient(resolved)


def run_for_instances(
    ctx: typer.Context,
    operation: Callable[[MssqlClient, str], Iterable[tuple[Any, ...]]],
    *,
    instances: Sequence[str] | None = None,
    timeout: float | None = None,
) -> InstanceBatch:
    targets = list(instances) if instances is not None else target_instances(ctx)
    return run_on_instances(
        targets, lambda instance: get_client(ctx, instance, timeout), operation
    )


def _configured_format(obj: dict[str, Any]) -> str | None:
    """default_format from the config file, only when set there explicitly."""
    if "configured_format" not in obj:
        config = load_config(obj.get("config_file"))
        explicit = "default_format" in config.model_fields_set
        obj["configured_format"] = config.default_format if explicit else None
    return obj["configured_format"]


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    return {
        "format_flag": obj.get("format"),
        "configured": _configured_format(obj),
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    write_output(get_formatter(**format_options(ctx)), result)


def is_table_format(ctx: typer.Context) -> bool:
    opts = format_options(ctx)
    return resolve_format(opts["format_flag"], opts["configured"]) == "table"


def _column_type(rows: Sequence[tuple[Any, ...]], index: int) -> str:
    for row in rows:
        if row[index] is not None:
            return type(row[index]).__name__
    return "str"


def output_rows(
    ctx: typer.Context,
    columns: Sequence[str],
    rows: Sequence[tuple[Any, ...]],
    *,
    size_columns: Sequence[str] = (),
) -> None:
    """Render plain rows. Byte counts in ``size_columns`` are humanised for tables."""
    rows = list(rows)
    metas = [
        ColumnMeta(name=name, type_name=_column_type(rows, i))
        for i, name in enumerate(columns)
    ]
    if size_columns and is_table_format(ctx):
        positions = [columns.index(c) for c in size_columns]
        rows = [
            tuple(
                fmt_size(v) if i in positions and isinstance(v, int) else v
                for i, v in enumerate(row)
            )
            for row in rows
        ]
        for i in positions:
            metas[i] = ColumnMeta(name=columns[i], type_name="int")
    output_result(ctx, QueryResult.from_rows(metas, rows))


def finish_batch(
    ctx: typer.Context,
    columns: Sequence[str],
    batch: InstanceBatch,
    *,
    size_columns: Sequence[str] = (),
) -> None:
    """Print the collected rows, warn about failed instances, set the exit code."""
    output_rows(ctx, columns, batch.rows, size_columns=size_columns)
    write_failures(batch.failures)
    if batch.exit_code:
        raise typer.Exit(batch.exit_code)


def apply_local_format_options(
    ctx: typer.Context,
    *,
    format: OutputFormat | None = None,
    table: bool = False,
    compact: bool = False,
    width: int | None = None,
    no_header: bool = False,
) -> None:
    obj = ctx.ensure_object(dict)
    if format is not None:
        obj["format"] = format.value
    if table:
        obj["format"] = "table"
    if compact:
        obj["compact"] = compact
    if width is not None:
        obj["width"] = width
    if no_header:
        obj["no_header"] = no_header
