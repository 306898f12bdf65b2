"""Output format selection, rendering and per-instance warnings.

Result rows go to stdout; warnings about instances that failed go to
stderr so piped CSV/JSON stays parseable.
"""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mssql_tool.core.instances import InstanceFailure
    from mssql_tool.core.models import QueryResult
    from mssql_tool.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None, configured: str | None = None) -> str:
    """Pick the output format.

    An explicit --format wins, then a format set in the config file.
    Otherwise table on a terminal and csv when piped.
    """
    if format_flag is not None:
        return format_flag
    if configured is not None:
        return configured
    return "table" if detect_tty() else "csv"


def get_formatter(
    format_flag: str | None = None,
    *,
    configured: str | None = None,
    compact: bool = False,
    width: int = 40,
    no_header: bool = False,
) -> Formatter:
    # Importing the modules registers their formatters.
    import mssql_tool.formatters.csv  # noqa: F401
    import mssql_tool.formatters.json  # noqa: F401
    import mssql_tool.formatters.table  # noqa: F401
    from mssql_tool.formatters.base import registry

    name = resolve_format(format_flag, configured)
    per_format: dict[str, dict[str, object]] = {
        "table": {"width": width},
        "json": {"compact": compact},
        "csv": {"no_header": no_header},
    }
    return registry.get(name, **per_format.get(name, {}))


def write_output(formatter: Formatter, result: QueryResult) -> None:
    for line in formatter.format(result):
        sys.stdout.write(line + "\n")


def write_failures(failures: Iterable[InstanceFailure]) -> None:
    for failure in failures:
        typer.echo(f"Warning: [{failure.instance}] {failure.message}", err=True)
