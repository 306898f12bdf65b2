"""Configuration management CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from mssql_tool.cli.commands._shared import resolve_connection, target_instances
from mssql_tool.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_password(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = resolve_connection(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("host", "host", resolved.host),
        ("port", "port", str(resolved.port) if resolved.port else "default"),
        ("database", "dbname", resolved.dbname),
        ("user", "user", resolved.user or "not set (integrated auth)"),
        ("password", "password", _mask_password(resolved.password)),
        ("driver", "driver", resolved.driver),
        ("encrypt", "encrypt", resolved.encrypt),
        (
            "trust_server_certificate",
            "trust_server_certificate",
            str(resolved.trust_server_certificate).lower(),
        ),
    ]
    for label, source_key, value in connection_fields:
        source = sources.get(source_key, "default")
        typer.echo(f"  {label}: {value} ({source})")

    typer.echo("")
    typer.echo("Target Instances:")
    for instance in target_instances(ctx):
        typer.echo(f"  {instance}")

    typer.echo("")
    typer.echo("General:")
    timeout_source = sources.get("default_timeout", "default")
    typer.echo(f"  timeout: {resolved.default_timeout}s ({timeout_source})")
    format_source = sources.get("default_format", "default")
    typer.echo(f"  format: {resolved.default_format} ({format_source})")

    typer.echo("")
    typer.echo(f"Active Profile: {resolved.active_profile or 'none'}")
    typer.echo(f"Config File: {config_path or DEFAULT_CONFIG_PATH}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        typer.echo(f"Add profiles to: {config_path or DEFAULT_CONFIG_PATH}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [("host", profile.host), ("database", profile.dbname)]
        if profile.port is not None:
            display_fields.insert(1, ("port", str(profile.port)))
        if profile.user:
            display_fields.append(("user", profile.user))
        if profile.instances:
            display_fields.append(("instances", ", ".join(profile.instances)))
        if profile.encrypt != "yes":
            display_fields.append(("encrypt", profile.encrypt))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
