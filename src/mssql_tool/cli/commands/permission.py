"""Permission listing and public/guest cleanup commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

import typer

from mssql_tool.cli.commands._shared import (
    CompactOption,
    DatabaseFilterOption,
    ExcludeDatabaseOption,
    FormatOption,
    NoHeaderOption,
    TableOption,
    WidthOption,
    apply_local_format_options,
    finish_batch,
    run_for_instances,
)
from mssql_tool.core.permissions import (
    PERMISSION_COLUMNS,
    REVOCATION_COLUMNS,
    apply_revocations,
    list_permissions,
    permission_rows,
    public_guest_revocations,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

permission_app = typer.Typer(help="Permission commands")


@permission_app.callback(invoke_without_command=True)
def permission_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@permission_app.command("list")
def list_command(
    ctx: typer.Context,
    database: DatabaseFilterOption = None,
    exclude_database: ExcludeDatabaseOption = None,
    include_server_level: Annotated[
        bool,
        typer.Option("--include-server-level", help="Also list server permissions"),
    ] = False,
    exclude_system_objects: Annotated[
        bool,
        typer.Option(
            "--exclude-system-objects",
            help="Skip securables in the sys and INFORMATION_SCHEMA schemas",
        ),
    ] = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    List permissions with the statements that grant and revoke them.

    Database-level permissions come from every accessible database
    unless filtered with --database / --exclude-database.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        permissions = list_permissions(
            client,
            databases=database,
            exclude_databases=exclude_database,
            include_server_level=include_server_level,
            exclude_system_objects=exclude_system_objects,
        )
        return permission_rows(instance, permissions)

    finish_batch(ctx, PERMISSION_COLUMNS, run_for_instances(ctx, operation))


@permission_app.command("revoke-public")
def revoke_public_command(
    ctx: typer.Context,
    database: DatabaseFilterOption = None,
    execute: Annotated[
        bool,
        typer.Option("--execute", help="Run the statements instead of only listing them"),
    ] = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Revoke permissions held by public and guest.

    Without --execute the statements are only printed. guest keeps
    CONNECT in master and tempdb.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        plan = public_guest_revocations(client, databases=database)
        rows = apply_revocations(client, plan, execute=execute)
        return [(instance, *row[1:]) for row in rows]

    finish_batch(ctx, REVOCATION_COLUMNS, run_for_instances(ctx, operation))
