"""Index analysis commands."""

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
from mssql_tool.core.databases import list_database_names
from mssql_tool.core.indexes import (
    INDEX_COLUMNS,
    find_duplicate_indexes,
    get_database_indexes,
    index_match_rows,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient
    from mssql_tool.core.indexes import IndexInfo

index_app = typer.Typer(help="Index analysis commands")


@index_app.callback(invoke_without_command=True)
def index_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@index_app.command("duplicates")
def duplicates_command(
    ctx: typer.Context,
    database: DatabaseFilterOption = None,
    exclude_database: ExcludeDatabaseOption = None,
    overlapping: Annotated[
        bool,
        typer.Option(
            "--overlapping",
            help="Also report indexes whose key columns are a prefix of another's",
        ),
    ] = False,
    include_system: Annotated[
        bool,
        typer.Option("--include-system", help="Include system databases"),
    ] = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """
    Find duplicate (and optionally overlapping) indexes.

    Duplicates share table, ordered key columns, included columns and
    filter. Every index of a group is listed with the same group number.
    """
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        indexes: list[IndexInfo] = []
        for name in list_database_names(
            client,
            include=database,
            exclude=exclude_database,
            include_system=include_system,
        ):
            indexes.extend(get_database_indexes(client, name))
        matches = find_duplicate_indexes(indexes, include_overlapping=overlapping)
        return index_match_rows(instance, matches)

    finish_batch(ctx, INDEX_COLUMNS, run_for_instances(ctx, operation))
