"""Database snapshot commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.commands._shared import (
    CompactOption,
    DatabaseFilterOption,
    FormatOption,
    NoHeaderOption,
    TableOption,
    WhatIfOption,
    WidthOption,
    apply_local_format_options,
    finish_batch,
    run_for_instances,
)
from mssql_tool.core.exceptions import InputError
from mssql_tool.core.snapshots import (
    SNAPSHOT_ACTION_COLUMNS,
    SNAPSHOT_COLUMNS,
    create_snapshot,
    list_snapshots,
    remove_snapshot,
    restore_from_snapshot,
    snapshot_rows,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

snapshot_app = typer.Typer(help="Database snapshot commands")

SnapshotArgument = Annotated[list[str], typer.Argument(help="Snapshot name(s)")]


@snapshot_app.callback(invoke_without_command=True)
def snapshot_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@snapshot_app.command("list")
def list_command(
    ctx: typer.Context,
    database: DatabaseFilterOption = None,
    snapshot: Annotated[
        list[str] | None,
        typer.Option("--snapshot", help="Snapshot name (repeatable)"),
    ] = None,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """List database snapshots with their base database and size on disk."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        return snapshot_rows(instance, list_snapshots(client, database, snapshot))

    finish_batch(
        ctx,
        SNAPSHOT_COLUMNS,
        run_for_instances(ctx, operation),
        size_columns=("size_on_disk",),
    )


@snapshot_app.command("create")
def create_command(
    ctx: typer.Context,
    database: Annotated[
        list[str],
        typer.Argument(help="Database(s) to snapshot"),
    ],
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            help="Snapshot name (single database only). Default: <db>_<yyyyMMddHHmmss>",
        ),
    ] = None,
    what_if: WhatIfOption = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Create a snapshot of each database.

    One sparse file per data file is placed next to the original data
    file and named <logical name>_<timestamp>.ss.
    """
    if name is not None and len(database) > 1:
        msg = "--name can only be used with a single database"
        raise InputError(msg)
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        rows = []
        for db in database:
            snapshot, statement = create_snapshot(client, db, name=name, what_if=what_if)
            action = "would create" if what_if else "created"
            rows.append((instance, snapshot, db, action, statement))
        return rows

    finish_batch(ctx, SNAPSHOT_ACTION_COLUMNS, run_for_instances(ctx, operation))


@snapshot_app.command("remove")
def remove_command(
    ctx: typer.Context,
    snapshot: SnapshotArgument,
    what_if: WhatIfOption = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Drop snapshots. Names that are regular databases are refused."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        rows = []
        for name in snapshot:
            database, statement = remove_snapshot(client, name, what_if=what_if)
            action = "would remove" if what_if else "removed"
            rows.append((instance, name, database, action, statement))
        return rows

    finish_batch(ctx, SNAPSHOT_ACTION_COLUMNS, run_for_instances(ctx, operation))


@snapshot_app.command("restore")
def restore_command(
    ctx: typer.Context,
    snapshot: Annotated[str, typer.Argument(help="Snapshot to revert to")],
    what_if: WhatIfOption = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Revert a database to its snapshot.

    The base database is switched to single user for the revert. It must
    have no other snapshots.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        database, statement = restore_from_snapshot(client, snapshot, what_if=what_if)
        action = "would restore" if what_if else "restored"
        return [(instance, snapshot, database, action, statement)]

    finish_batch(ctx, SNAPSHOT_ACTION_COLUMNS, run_for_instances(ctx, operation))
