"""Startup parameter commands."""

from __future__ import annotations

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
from mssql_tool.core.startup import (
    STARTUP_COLUMNS,
    STARTUP_COLUMNS_SIMPLE,
    get_startup_parameters,
    startup_row,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

startup_app = typer.Typer(help="Engine startup parameter commands")


@startup_app.callback(invoke_without_command=True)
def startup_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@startup_app.command("show")
def show_command(
    ctx: typer.Context,
    simple: Annotated[
        bool,
        typer.Option(
            "--simple",
            help="Only master files, error log, trace flags and start modes",
        ),
    ] = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Show the parsed startup parameters of each instance."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        return [startup_row(instance, get_startup_parameters(client), simple=simple)]

    columns = STARTUP_COLUMNS_SIMPLE if simple else STARTUP_COLUMNS
    finish_batch(ctx, columns, run_for_instances(ctx, operation))
