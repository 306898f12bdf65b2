from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.commands._shared import (
    CompactOption,
    FormatOption,
    NoHeaderOption,
    TableOption,
    WidthOption,
    apply_local_format_options,
    finish_batch,
    run_for_instances,
)
from mssql_tool.core.exceptions import InputError
from mssql_tool.core.exit_codes import ExitCode
from mssql_tool.core.query_source import resolve_query_source

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="T-SQL script file to execute"),
    ] = None,
    query: Annotated[
        str | None,
        typer.Option("--query", "-Q", help="Execute an inline T-SQL batch"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds"),
    ] = None,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Run a T-SQL batch from a file, inline (-Q) or stdin on every target instance.

    Rows are prefixed with the instance they came from. Every instance
    must return the same columns.
    """
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if query is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        sql = resolve_query_source(inline=query, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    columns: list[str] = []

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        result = client.execute_query(sql)
        names = ["instance", *result.column_names]
        if not columns:
            columns.extend(names)
        elif names != columns:
            msg = f"Result columns from {instance} differ from earlier instances"
            raise InputError(msg)
        return [(instance, *row) for row in result.rows]

    batch = run_for_instances(ctx, operation, timeout=timeout)
    finish_batch(ctx, columns or ["instance"], batch)
