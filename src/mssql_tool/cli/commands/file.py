"""Remote file browsing commands.

Paths are resolved on the server host, with the permissions of the
engine's service account.
"""

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
from mssql_tool.core.exceptions import InputError
from mssql_tool.core.files import (
    DEFAULT_PATH_COLUMNS,
    EXISTS_COLUMNS,
    FILE_COLUMNS,
    check_path,
    file_rows,
    get_default_paths,
    list_files,
)

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

file_app = typer.Typer(help="Remote file system commands")


@file_app.callback(invoke_without_command=True)
def file_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@file_app.command("list")
def list_command(
    ctx: typer.Context,
    path: Annotated[
        list[str] | None,
        typer.Argument(
            help="Directory to list. Default: the data, log and backup paths"
        ),
    ] = None,
    depth: Annotated[
        int,
        typer.Option("--depth", help="Levels to descend (0 = unlimited)"),
    ] = 1,
    extension: Annotated[
        list[str] | None,
        typer.Option(
            "--extension", "-e", help="Only files with this extension (repeatable)"
        ),
    ] = None,
    include_directories: Annotated[
        bool,
        typer.Option("--directories", help="Also list directories"),
    ] = False,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """List files in directories on the server."""
    if depth < 0:
        msg = "--depth must be 0 or greater"
        raise InputError(msg)
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        targets = list(path) if path else None
        if targets is None:
            defaults = get_default_paths(client)
            candidates = (defaults.data, defaults.log, defaults.backup)
            targets = list(dict.fromkeys(p for p in candidates if p))
        rows: list[tuple[Any, ...]] = []
        for target in targets:
            files = list_files(
                client,
                target,
                depth=depth,
                extensions=extension,
                include_directories=include_directories,
            )
            rows.extend(file_rows(instance, files))
        return rows

    finish_batch(ctx, FILE_COLUMNS, run_for_instances(ctx, operation))


@file_app.command("exists")
def exists_command(
    ctx: typer.Context,
    path: Annotated[list[str], typer.Argument(help="Path(s) to test")],
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Test whether paths exist on the server."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        rows: list[tuple[Any, ...]] = []
        for p in path:
            check = check_path(client, p)
            rows.append(
                (instance, check.path, check.exists, check.is_directory, check.parent_exists)
            )
        return rows

    finish_batch(ctx, EXISTS_COLUMNS, run_for_instances(ctx, operation))


@file_app.command("default-paths")
def default_paths_command(
    ctx: typer.Context,
    format: FormatOption = None,
    table: TableOption = False,
    compact: CompactOption = False,
    width: WidthOption = None,
    no_header: NoHeaderOption = False,
) -> None:
    """Show the default data, log and backup directories."""
    apply_local_format_options(
        ctx, format=format, table=table, compact=compact, width=width, no_header=no_header
    )

    def operation(client: MssqlClient, instance: str) -> list[tuple[Any, ...]]:
        paths = get_default_paths(client)
        return [(instance, paths.data, paths.log, paths.backup)]

    finish_batch(ctx, DEFAULT_PATH_COLUMNS, run_for_instances(ctx, operation))
