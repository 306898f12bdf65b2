"""Disk space requirements for moving databases between instances.

Source and destination database files are matched by logical name. For
every file the size delta is placed on the destination mount point that
would hold it, and the remaining free space of that mount point is
tracked across all files of the run.
"""

from __future__ import annotations

import ntpath
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from mssql_tool.core.exceptions import InputError
from mssql_tool.core.files import get_default_paths

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from mssql_tool.core.client import MssqlClient

BOTH = "both"
SOURCE_ONLY = "source_only"
DESTINATION_ONLY = "destination_only"

_DATABASE_FILES_SQL = """
SELECT
    mf.name,
    mf.physical_name,
    mf.type_desc,
    CAST(mf.size AS bigint) * 8192 AS size_bytes
FROM sys.master_files AS mf
WHERE mf.database_id = DB_ID(?)
ORDER BY mf.file_id
"""

_MOUNT_POINTS_SQL = """
SELECT DISTINCT
    vs.volume_mount_point,
    vs.total_bytes,
    vs.available_bytes
FROM sys.master_files AS mf
CROSS APPLY sys.dm_os_volume_stats(mf.database_id, mf.file_id) AS vs
"""

_COMPUTER_NAME_SQL = (
    "SELECT CAST(SERVERPROPERTY('ComputerNamePhysicalNetBIOS') AS nvarchar(128))"
)

_USER_DATABASES_SQL = """
SELECT name FROM sys.databases
WHERE database_id > 4 AND source_database_id IS NULL AND state_desc = 'ONLINE'
ORDER BY name
"""

DISKSPACE_COLUMNS = [
    "source_instance",
    "source_database",
    "destination_instance",
    "destination_database",
    "logical_name",
    "file_type",
    "file_location",
    "source_path",
    "source_size",
    "destination_path",
    "destination_size",
    "difference",
    "mount_point",
    "free_space_after",
    "is_feasible",
    "notes",
]


@dataclass(frozen=True)
class DatabaseFile:
    logical_name: str
    physical_name: str
    type_desc: str
    size_bytes: int


@dataclass(frozen=True)
class FileComparison:
    logical_name: str
    source: DatabaseFile | None
    destination: DatabaseFile | None

    @property
    def status(self) -> str:
        if self.source and self.destination:
            return BOTH
        return SOURCE_ONLY if self.source else DESTINATION_ONLY

    @property
    def difference(self) -> int:
        """Destination size minus source size. Negative means space is needed."""
        src = self.source.size_bytes if self.source else 0
        dst = self.destination.size_bytes if self.destination else 0
        return dst - src

    @property
    def type_desc(self) -> str:
        f = self.source or self.destination
        return f.type_desc if f else ""


@dataclass(frozen=True)
class MountPoint:
    computer: str
    path: str
    total_bytes: int
    free_bytes: int


@dataclass
class MountPointCache:
    """Mount points per computer name, loaded at most once per computer."""

    _entries: dict[str, list[MountPoint]] = field(default_factory=dict)

    def get(
        self, computer: str, loader: Callable[[], list[MountPoint]]
    ) -> list[MountPoint]:
        key = computer.lower()
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def __contains__(self, computer: str) -> bool:
        return computer.lower() in self._entries


@dataclass(frozen=True)
class DiskSpaceRow:
    comparison: FileComparison
    destination_path: str
    mount_point: MountPoint | None
    free_space_after: int | None
    is_feasible: bool
    notes: str


def compare_database_files(
    source_files: Iterable[DatabaseFile], destination_files: Iterable[DatabaseFile]
) -> list[FileComparison]:
    """Match files by logical name (case-insensitive).

    Source order is kept; destination-only files follow in destination order.
    """
    destination = {f.logical_name.lower(): f for f in destination_files}
    matched: set[str] = set()
    comparisons: list[FileComparison] = []
    for src in source_files:
        key = src.logical_name.lower()
        dst = destination.get(key)
        if dst is not None:
            matched.add(key)
        comparisons.append(FileComparison(src.logical_name, src, dst))
    for key, dst in destination.items():
        if key not in matched:
            comparisons.append(FileComparison(dst.logical_name, None, dst))
    return comparisons


def _normalize_path(path: str) -> str:
    return path.replace("\\", "/").lower()


def find_mount_point(path: str, mount_points: Sequence[MountPoint]) -> MountPoint | None:
    """Longest mount point that is a prefix of ``path`` (case-insensitive)."""
    target = _normalize_path(path)
    best: MountPoint | None = None
    best_len = -1
    for mp in mount_points:
        prefix = _normalize_path(mp.path)
        if not prefix.endswith("/"):
            prefix += "/"
        if target.startswith(prefix) and len(prefix) > best_len:
            best, best_len = mp, len(prefix)
    return best


def _join(directory: str, filename: str) -> str:
    if "\\" in directory or (len(directory) > 1 and directory[1] == ":"):
        return ntpath.join(directory, filename)
    return posixpath.join(directory, filename)


def _basename(path: str) -> str:
    return ntpath.basename(path) if "\\" in path else posixpath.basename(path)


def destination_path(comparison: FileComparison, data_path: str, log_path: str) -> str:
    """Where the file would live on the destination."""
    if comparison.destination is not None:
        return comparison.destination.physical_name
    source = comparison.source
    if source is None:
        return ""
    directory = log_path if source.type_desc == "LOG" else data_path
    return _join(directory, _basename(source.physical_name))


def plan_disk_space(
    comparisons: Iterable[FileComparison],
    mount_points: Sequence[MountPoint],
    *,
    data_path: str,
    log_path: str,
    free: dict[str, int] | None = None,
) -> list[DiskSpaceRow]:
    """Apply every file's size delta to its mount point's running free space.

    Pass the same ``free`` mapping to carry running totals across databases.
    """
    if free is None:
        free = {}
    for mp in mount_points:
        free.setdefault(mp.path.lower(), mp.free_bytes)
    rows: list[DiskSpaceRow] = []
    for comparison in comparisons:
        path = destination_path(comparison, data_path, log_path)
        mp = find_mount_point(path, mount_points)
        if mp is None:
            rows.append(
                DiskSpaceRow(
                    comparison, path, None, None, False, "Mount point not found"
                )
            )
            continue
        key = mp.path.lower()
        free[key] += comparison.difference
        notes = {
            BOTH: "",
            SOURCE_ONLY: "File does not exist on destination",
            DESTINATION_ONLY: "File does not exist on source",
        }[comparison.status]
        rows.append(DiskSpaceRow(comparison, path, mp, free[key], free[key] >= 0, notes))
    return rows


def get_database_files(client: MssqlClient, database: str) -> list[DatabaseFile]:
    result = client.execute_query(_DATABASE_FILES_SQL, (database,))
    return [
        DatabaseFile(name, physical, type_desc, int(size or 0))
        for name, physical, type_desc, size in result.rows
    ]


def get_mount_points(client: MssqlClient, computer: str) -> list[MountPoint]:
    result = client.execute_query(_MOUNT_POINTS_SQL)
    return [
        MountPoint(computer, path, int(total or 0), int(available or 0))
        for path, total, available in result.rows
    ]


def list_user_databases(client: MssqlClient) -> list[str]:
    return [row[0] for row in client.execute_query(_USER_DATABASES_SQL).rows]


def check_disk_space_requirement(
    source: MssqlClient,
    destination: MssqlClient,
    databases: Sequence[str] | None = None,
    *,
    destination_database: str | None = None,
    cache: MountPointCache | None = None,
) -> list[tuple[Any, ...]]:
    """Output rows describing the space each source database needs on the destination."""
    log = structlog.get_logger()
    if cache is None:
        cache = MountPointCache()
    selected = list(databases) if databases else list_user_databases(source)
    if destination_database and len(selected) != 1:
        msg = "--destination-database requires exactly one source database"
        raise InputError(msg)

    computer = destination.scalar(_COMPUTER_NAME_SQL) or destination.instance
    mount_points = cache.get(computer, lambda: get_mount_points(destination, computer))
    defaults = get_default_paths(destination)

    free: dict[str, int] = {}
    rows: list[tuple[Any, ...]] = []
    for database in selected:
        source_files = get_database_files(source, database)
        if not source_files:
            msg = f"Database '{database}' not found on {source.instance}"
            raise InputError(msg)
        target_db = destination_database or database
        dest_files = get_database_files(destination, target_db)
        log.debug(
            "comparing database files",
            database=database,
            destination_database=target_db,
            source_files=len(source_files),
            destination_files=len(dest_files),
        )
        plan = plan_disk_space(
            compare_database_files(source_files, dest_files),
            mount_points,
            data_path=defaults.data,
            log_path=defaults.log,
            free=free,
        )
        rows.extend(
            diskspace_row(source.instance, database, destination.instance, target_db, r)
            for r in plan
        )
    return rows


def diskspace_row(
    source_instance: str,
    source_database: str,
    destination_instance: str,
    destination_database: str,
    row: DiskSpaceRow,
) -> tuple[Any, ...]:
    c = row.comparison
    return (
        source_instance,
        source_database,
        destination_instance,
        destination_database,
        c.logical_name,
        c.type_desc,
        c.status,
        c.source.physical_name if c.source else "",
        c.source.size_bytes if c.source else 0,
        row.destination_path,
        c.destination.size_bytes if c.destination else 0,
        c.difference,
        row.mount_point.path if row.mount_point else "",
        row.free_space_after,
        row.is_feasible,
        row.notes,
    )
