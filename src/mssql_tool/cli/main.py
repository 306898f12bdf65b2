"""MSSQL Tool main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from mssql_tool.__about__ import __version__
from mssql_tool.cli.commands.config import config_app
from mssql_tool.cli.commands.diskspace import diskspace_app
from mssql_tool.cli.commands.file import file_app
from mssql_tool.cli.commands.index import index_app
from mssql_tool.cli.commands.instance_name import instance_name_app
from mssql_tool.cli.commands.permission import permission_app
from mssql_tool.cli.commands.query import query_command
from mssql_tool.cli.commands.service import service_app
from mssql_tool.cli.commands.snapshot import snapshot_app
from mssql_tool.cli.commands.sqlwatch import sqlwatch_app
from mssql_tool.cli.commands.startup import startup_app
from mssql_tool.cli.output import OutputFormat  # noqa: TC001
from mssql_tool.core.exceptions import MssqlToolError
from mssql_tool.core.logging import LOG_FORMATS, setup_logging
from mssql_tool.core.monitoring import setup_sentry

app = typer.Typer(
    help="MSSQL Tool - SQL Server administration tool",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(index_app, name="index")
app.add_typer(service_app, name="service")
app.add_typer(startup_app, name="startup")
app.add_typer(permission_app, name="permission")
app.add_typer(diskspace_app, name="diskspace")
app.add_typer(snapshot_app, name="snapshot")
app.add_typer(instance_name_app, name="instance-name")
app.add_typer(file_app, name="file")
app.add_typer(sqlwatch_app, name="sqlwatch")
app.command("query")(query_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mssql-tool {__version__}")
        raise typer.Exit()


def log_format_callback(value: str) -> str:
    if value not in LOG_FORMATS:
        msg = f"must be one of: {', '.join(LOG_FORMATS)}"
        raise typer.BadParameter(msg)
    return value


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    log_format: Annotated[
        str,
        typer.Option(
            "--log-format",
            help="Log rendering on stderr: console|json",
            callback=log_format_callback,
        ),
    ] = "console",
    sql_instance: Annotated[
        list[str] | None,
        typer.Option(
            "--sql-instance",
            "-S",
            help="Target instance as host[\\instance][,port] (repeatable)",
        ),
    ] = None,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="TCP port"),
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database to connect to"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="SQL login (omit for integrated auth)"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="Connection DSN (mssql://...)"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    trust_server_certificate: Annotated[
        bool,
        typer.Option(
            "--trust-server-certificate",
            help="Accept the server certificate without validation",
        ),
    ] = False,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|csv"),
    ] = None,
    table: Annotated[
        bool,
        typer.Option("--table", help="Shorthand for --format table"),
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Suppress header row in CSV output"),
    ] = False,
) -> None:
    """MSSQL Tool - SQL Server administration tool."""
    setup_logging(verbose, log_format)
    setup_sentry()

    transaction = sentry_sdk.start_transaction(
        op="cli", name=ctx.invoked_subcommand or "mssql-tool"
    )
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["instances"] = list(sql_instance) if sql_instance else []
    ctx.obj["profile"] = profile
    ctx.obj["port"] = port
    ctx.obj["database"] = database
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["dsn"] = dsn
    ctx.obj["config_file"] = config_file
    ctx.obj["trust_server_certificate"] = trust_server_certificate or None

    fmt = "table" if table else (format.value if format else None)
    ctx.obj["format"] = fmt
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except MssqlToolError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
