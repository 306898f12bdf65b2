"""SQL Server service commands."""

from __future__ import annotations

from datetime import datetime
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
    is_table_format,
    run_for_instances,
)
from mssql_tool.cli.helpers import format_relative_time
from mssql_tool.core.exceptions import InputError
from mssql_tool.core.services import SERVICE_COLUMNS, SERVICE_TYPES, list_services

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

service_app = typer.Typer(help="SQL Server service commands")

_LAST_STARTUP = SERVICE_COLUMNS.index("last_startup")


@service_app.callback(invoke_without_command=True)
def service_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@service_app.command("list")
def list_command(
    ctx: typer.Context,
    service_type: Annotated[
        str | None,
        typer.Option(
            "--type",
            "-t",
            help=f"Only services of this type: {', '.join(SERVICE_TYPES)}",
        ),
    ] = None,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """List the services that belong to each instance."""
    if service_type is not None and service_type.lower() not in {
        t.lower() for t in SERVICE_TYPES
    }:
        msg = (
            f"Unknown service type '{service_type}'. "
            f"Expected one of: {', '.join(SERVICE_TYPES)}"
        )
        raise InputError(msg)
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )
    relative = is_table_format(ctx)

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        rows = []
        for service in list_services(client, service_type):
            row = (instance, *service)
            started = row[_LAST_STARTUP]
            if relative and isinstance(started, datetime):
                row = (
                    *row[:_LAST_STARTUP],
                    format_relative_time(started),
                    *row[_LAST_STARTUP + 1 :],
                )
            rows.append(row)
        return rows

    finish_batch(ctx, SERVICE_COLUMNS, run_for_instances(ctx, operation))
