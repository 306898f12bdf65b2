"""SqlWatch monitoring add-on commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.commands._shared import (
    CompactOption,
    FormatOption,
    NoHeaderOption,
    TableOption,
    WhatIfOption,
    WidthOption,
    apply_local_format_options,
    finish_batch,
    run_for_instances,
)
from mssql_tool.core.sqlwatch import (
    DEFAULT_DATABASE,
    UNINSTALL_COLUMNS,
    uninstall_sqlwatch,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

sqlwatch_app = typer.Typer(help="SqlWatch monitoring add-on commands")


@sqlwatch_app.callback(invoke_without_command=True)
def sqlwatch_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@sqlwatch_app.command("uninstall")
def uninstall_command(
    ctx: typer.Context,
    database: Annotated[
        str,
        typer.Option("--database", "-d", help="Database SqlWatch is installed in"),
    ] = DEFAULT_DATABASE,
    what_if: WhatIfOption = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Remove SqlWatch: its agent jobs, then its objects, then its schema.

    The database itself is kept.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        rows = uninstall_sqlwatch(client, database, what_if=what_if)
        return [(instance, *row[1:]) for row in rows]

    finish_batch(ctx, UNINSTALL_COLUMNS, run_for_instances(ctx, operation))
