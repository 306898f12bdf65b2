"""Database selection shared by per-database commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mssql_tool.core.client import MssqlClient

SYSTEM_DATABASES = ("master", "model", "msdb", "tempdb")


def list_database_names(
    client: MssqlClient,
    *,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
    include_system: bool = False,
) -> list[str]:
    """List accessible online databases, excluding snapshots.

    ``include``/``exclude`` match names case-insensitively.
    """
    sql = """
    SELECT name
    FROM sys.databases
    WHERE state_desc = 'ONLINE'
      AND source_database_id IS NULL
      AND HAS_DBACCESS(name) = 1
    ORDER BY name
    """
    result = client.execute_query(sql)
    names = [row[0] for row in result.rows]
    return filter_database_names(
        names, include=include, exclude=exclude, include_system=include_system
    )


def filter_database_names(
    names: Sequence[str],
    *,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
    include_system: bool = False,
) -> list[str]:
    wanted = {n.lower() for n in include} if include else None
    unwanted = {n.lower() for n in exclude} if exclude else set()
    selected: list[str] = []
    for name in names:
        key = name.lower()
        if wanted is not None:
            # An explicit include list may name system databases.
            if key not in wanted:
                continue
        elif not include_system and key in SYSTEM_DATABASES:
            continue
        if key in unwanted:
            continue
        selected.append(name)
    return selected
