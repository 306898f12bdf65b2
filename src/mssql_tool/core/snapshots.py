"""Database snapshots: list, create, remove, restore."""

from __future__ import annotations

import ntpath
import posixpath
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from mssql_tool.core.exceptions import InputError
from mssql_tool.core.files import separator_for
from mssql_tool.core.tsql import quote_name, quote_string

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mssql_tool.core.client import MssqlClient

_LIST_SNAPSHOTS_SQL = """
SELECT
    snap.name AS snapshot_name,
    src.name AS database_name,
    snap.create_date,
    (SELECT SUM(vfs.size_on_disk_bytes)
     FROM sys.dm_io_virtual_file_stats(snap.database_id, NULL) AS vfs) AS size_on_disk
FROM sys.databases AS snap
JOIN sys.databases AS src ON src.database_id = snap.source_database_id
ORDER BY src.name, snap.create_date
"""

_DATA_FILES_SQL = """
SELECT mf.name, mf.physical_name
FROM sys.master_files AS mf
WHERE mf.database_id = DB_ID(?) AND mf.type_desc = 'ROWS'
ORDER BY mf.file_id
"""

_SNAPSHOT_SOURCE_SQL = """
SELECT src.name
FROM sys.databases AS snap
LEFT JOIN sys.databases AS src ON src.database_id = snap.source_database_id
WHERE snap.name = ?
"""

_IS_SNAPSHOT_SQL = """
SELECT CASE WHEN source_database_id IS NULL THEN 0 ELSE 1 END
FROM sys.databases WHERE name = ?
"""

SNAPSHOT_COLUMNS = ["instance", "snapshot", "database", "created", "size_on_disk"]

SNAPSHOT_ACTION_COLUMNS = ["instance", "snapshot", "database", "action", "statement"]

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class SnapshotInfo:
    name: str
    database: str
    created: datetime | None
    size_on_disk: int


def list_snapshots(
    client: MssqlClient,
    databases: Sequence[str] | None = None,
    snapshots: Sequence[str] | None = None,
) -> list[SnapshotInfo]:
    """List snapshots, optionally filtered by base database or snapshot name."""
    result = client.execute_query(_LIST_SNAPSHOTS_SQL)
    db_filter = {d.lower() for d in databases} if databases else None
    snap_filter = {s.lower() for s in snapshots} if snapshots else None
    found: list[SnapshotInfo] = []
    for name, database, created, size in result.rows:
        if db_filter is not None and database.lower() not in db_filter:
            continue
        if snap_filter is not None and name.lower() not in snap_filter:
            continue
        found.append(SnapshotInfo(name, database, created, int(size or 0)))
    return found


def default_snapshot_name(database: str, now: datetime) -> str:
    return f"{database}_{now.strftime(TIMESTAMP_FORMAT)}"


def sparse_file_path(physical_name: str, logical_name: str, suffix: str) -> str:
    """Sparse file next to the original data file: ``<dir>/<logical>_<suffix>.ss``."""
    module = posixpath if separator_for(physical_name) == "/" else ntpath
    return module.join(module.dirname(physical_name), f"{logical_name}_{suffix}.ss")


def create_snapshot_statement(
    database: str,
    snapshot: str,
    data_files: Sequence[tuple[str, str]],
    suffix: str,
) -> str:
    """CREATE DATABASE ... AS SNAPSHOT OF for the given (logical, physical) data files."""
    file_specs = ",\n    ".join(
        f"(NAME = {quote_name(logical)}, "
        f"FILENAME = {quote_string(sparse_file_path(physical, logical, suffix))})"
        for logical, physical in data_files
    )
    return (
        f"CREATE DATABASE {quote_name(snapshot)} ON\n    {file_specs}\n"
        f"AS SNAPSHOT OF {quote_name(database)};"
    )


def create_snapshot(
    client: MssqlClient,
    database: str,
    *,
    name: str | None = None,
    now: datetime | None = None,
    what_if: bool = False,
) -> tuple[str, str]:
    """Create a snapshot of ``database``. Returns (snapshot name, statement)."""
    log = structlog.get_logger()
    now = now or datetime.now()
    suffix = now.strftime(TIMESTAMP_FORMAT)
    snapshot = name or default_snapshot_name(database, now)
    data_files = [
        (logical, physical)
        for logical, physical in client.execute_query(_DATA_FILES_SQL, (database,)).rows
    ]
    if not data_files:
        msg = f"Database '{database}' not found on {client.instance}"
        raise InputError(msg)
    statement = create_snapshot_statement(database, snapshot, data_files, suffix)
    if not what_if:
        client.execute_non_query(statement)
        log.info(
            "snapshot created",
            instance=client.instance,
            database=database,
            snapshot=snapshot,
        )
    return snapshot, statement


def _require_snapshot(client: MssqlClient, snapshot: str) -> str:
    """Return the base database name, or raise if ``snapshot`` is not a snapshot."""
    is_snapshot = client.scalar(_IS_SNAPSHOT_SQL, (snapshot,))
    if is_snapshot is None:
        msg = f"Snapshot '{snapshot}' not found on {client.instance}"
        raise InputError(msg)
    if not is_snapshot:
        msg = f"'{snapshot}' on {client.instance} is a database, not a snapshot"
        raise InputError(msg)
    return client.scalar(_SNAPSHOT_SOURCE_SQL, (snapshot,)) or ""


def remove_snapshot(
    client: MssqlClient, snapshot: str, *, what_if: bool = False
) -> tuple[str, str]:
    """Drop a snapshot. Returns (base database, statement)."""
    database = _require_snapshot(client, snapshot)
    statement = f"DROP DATABASE {quote_name(snapshot)};"
    if not what_if:
        client.execute_non_query(statement)
        structlog.get_logger().info(
            "snapshot removed", instance=client.instance, snapshot=snapshot
        )
    return database, statement


def restore_from_snapshot(
    client: MssqlClient, snapshot: str, *, what_if: bool = False
) -> tuple[str, str]:
    """Revert the base database to ``snapshot``.

    The engine refuses the revert while other snapshots of the same
    database exist; those must be removed first. The database is put
    back into MULTI_USER even when the restore fails.
    """
    database = _require_snapshot(client, snapshot)
    others = [
        s.name
        for s in list_snapshots(client, databases=[database])
        if s.name.lower() != snapshot.lower()
    ]
    if others:
        msg = (
            f"Cannot restore '{database}' from '{snapshot}': other snapshots exist "
            f"({', '.join(others)})"
        )
        raise InputError(msg)
    db = quote_name(database)
    single_user = f"ALTER DATABASE {db} SET SINGLE_USER WITH ROLLBACK IMMEDIATE;"
    restore = f"RESTORE DATABASE {db} FROM DATABASE_SNAPSHOT = {quote_string(snapshot)};"
    multi_user = f"ALTER DATABASE {db} SET MULTI_USER;"
    statement = "\n".join((single_user, restore, multi_user))
    if not what_if:
        client.execute_non_query(single_user)
        try:
            client.execute_non_query(restore)
        finally:
            # A failed restore must not leave the database in SINGLE_USER.
            client.execute_non_query(multi_user)
        structlog.get_logger().info(
            "database restored from snapshot",
            instance=client.instance,
            database=database,
            snapshot=snapshot,
        )
    return database, statement


def snapshot_rows(instance: str, snapshots: Sequence[SnapshotInfo]) -> list[tuple[Any, ...]]:
    return [(instance, s.name, s.database, s.created, s.size_on_disk) for s in snapshots]
