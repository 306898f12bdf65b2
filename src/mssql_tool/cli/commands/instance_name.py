"""Instance name check and repair commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

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
from mssql_tool.core.rename import (
    RENAME_COLUMNS,
    check_instance_name,
    rename_row,
    repair_instance_name,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

instance_name_app = typer.Typer(help="Instance name (@@SERVERNAME) commands")

REPAIR_COLUMNS = [*RENAME_COLUMNS, "statements", "status"]


@instance_name_app.callback(invoke_without_command=True)
def instance_name_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@instance_name_app.command("test")
def test_command(
    ctx: typer.Context,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Check whether @@SERVERNAME matches the host and instance name."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        return [rename_row(instance, check_instance_name(client))]

    finish_batch(ctx, RENAME_COLUMNS, run_for_instances(ctx, operation))


@instance_name_app.command("repair")
def repair_command(
    ctx: typer.Context,
    what_if: WhatIfOption = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Re-register @@SERVERNAME after a host rename.

    Runs sp_dropserver / sp_addserver. The new name is only visible
    after the engine service is restarted.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        check, statements = repair_instance_name(client, what_if=what_if)
        if not statements:
            status = "already correct"
        elif what_if:
            status = "would rename"
        else:
            status = "renamed, restart required"
        return [(*rename_row(instance, check), " ".join(statements), status)]

    finish_batch(ctx, REPAIR_COLUMNS, run_for_instances(ctx, operation))
