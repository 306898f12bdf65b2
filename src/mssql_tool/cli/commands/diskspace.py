"""Disk space requirement commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.commands._shared import (
    CompactOption,
    DatabaseFilterOption,
    FormatOption,
    NoHeaderOption,
    TableOption,
    WidthOption,
    apply_local_format_options,
    finish_batch,
    get_client,
    run_for_instances,
)
from mssql_tool.core.diskspace import (
    DISKSPACE_COLUMNS,
    MountPointCache,
    check_disk_space_requirement,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

diskspace_app = typer.Typer(help="Disk space requirement commands")

_SIZE_COLUMNS = ("source_size", "destination_size", "difference", "free_space_after")


@diskspace_app.callback(invoke_without_command=True)
def diskspace_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@diskspace_app.command("requirement")
def requirement_command(
    ctx: typer.Context,
    source: Annotated[
        str,
        typer.Option("--source", "-s", help="Instance the databases come from"),
    ],
    destination: Annotated[
        list[str],
        typer.Option(
            "--destination", "-D", help="Instance the databases go to (repeatable)"
        ),
    ],
    database: DatabaseFilterOption = None,
    destination_database: Annotated[
        str | None,
        typer.Option(
            "--destination-database",
            help="Name on the destination when it differs (single database only)",
        ),
    ] = None,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Estimate the space needed to move databases to another instance.

    Files are matched by logical name. Each file's size difference is
    charged to the destination mount point that would hold it; a row is
    not feasible once that mount point runs out of free space. Without
    --database every user database of the source is checked.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )
    cache = MountPointCache()

    def operation(dest_client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        with get_client(ctx, source) as source_client:
            return check_disk_space_requirement(
                source_client,
                dest_client,
                database,
                destination_database=destination_database,
                cache=cache,
            )

    batch = run_for_instances(ctx, operation, instances=destination)
    finish_batch(ctx, DISKSPACE_COLUMNS, batch, size_columns=_SIZE_COLUMNS)
