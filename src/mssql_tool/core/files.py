"""Remote file system browsing through the database engine.

Everything here runs as the engine's service account on the server host:
listings come from xp_dirtree, existence checks from xp_fileexist.
"""

from __future__ import annotations

import ntpath
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mssql_tool.core.client import MssqlClient

_DIRTREE_SQL = "EXEC master.sys.xp_dirtree ?, ?, 1"

_FILEEXIST_SQL = "EXEC master.dbo.xp_fileexist ?"

_DEFAULT_PATHS_SQL = """
SET NOCOUNT ON;
DECLARE @backup nvarchar(4000);
EXEC master.dbo.xp_instance_regread
    N'HKEY_LOCAL_MACHINE',
    N'Software\\Microsoft\\MSSQLServer\\MSSQLServer',
    N'BackupDirectory',
    @backup OUTPUT;
SELECT
    CAST(SERVERPROPERTY('InstanceDefaultDataPath') AS nvarchar(4000)) AS data_path,
    CAST(SERVERPROPERTY('InstanceDefaultLogPath') AS nvarchar(4000)) AS log_path,
    @backup AS backup_path,
    (SELECT physical_name FROM sys.master_files
     WHERE database_id = 1 AND file_id = 1) AS master_data,
    (SELECT physical_name FROM sys.master_files
     WHERE database_id = 1 AND file_id = 2) AS master_log
"""

FILE_COLUMNS = ["instance", "path", "name", "depth", "is_directory"]

EXISTS_COLUMNS = ["instance", "path", "exists", "is_directory", "parent_exists"]

DEFAULT_PATH_COLUMNS = ["instance", "data", "log", "backup"]


@dataclass(frozen=True)
class RemoteFile:
    path: str
    name: str
    depth: int
    is_directory: bool


@dataclass(frozen=True)
class PathCheck:
    path: str
    exists: bool
    is_directory: bool
    parent_exists: bool


@dataclass(frozen=True)
class DefaultPaths:
    data: str
    log: str
    backup: str


def separator_for(path: str) -> str:
    """Windows separator unless the path is clearly POSIX."""
    return "/" if path.startswith("/") or ("/" in path and "\\" not in path) else "\\"


def _strip_trailing(path: str) -> str:
    stripped = path.rstrip("\\/")
    # Keep roots such as "C:\" and "/" intact.
    if not stripped or stripped.endswith(":"):
        return path
    return stripped


def directory_of(path: str) -> str:
    module = posixpath if separator_for(path) == "/" else ntpath
    return module.dirname(path)


def build_tree(base: str, entries: Iterable[tuple[str, int, int]]) -> list[RemoteFile]:
    """Rebuild full paths from xp_dirtree's depth-first (name, depth, file) rows."""
    sep = separator_for(base)
    root = _strip_trailing(base).rstrip(sep)
    parents: list[str] = []
    files: list[RemoteFile] = []
    for name, depth, is_file in entries:
        depth = int(depth)
        del parents[depth - 1 :]
        path = sep.join([root, *parents, name])
        is_directory = not is_file
        files.append(RemoteFile(path, name, depth, is_directory))
        if is_directory:
            parents.append(name)
    return files


def list_files(
    client: MssqlClient,
    path: str,
    *,
    depth: int = 1,
    extensions: Sequence[str] | None = None,
    include_directories: bool = False,
) -> list[RemoteFile]:
    """List files under ``path`` down to ``depth`` levels (0 = unlimited)."""
    result = client.execute_query(_DIRTREE_SQL, (path, depth))
    entries = build_tree(path, result.rows)
    wanted = {e.lower().lstrip(".") for e in extensions} if extensions else None
    selected: list[RemoteFile] = []
    for entry in entries:
        if entry.is_directory:
            if include_directories and wanted is None:
                selected.append(entry)
            continue
        if wanted is not None:
            suffix = entry.name.rsplit(".", 1)[-1].lower() if "." in entry.name else ""
            if suffix not in wanted:
                continue
        selected.append(entry)
    return selected


def check_path(client: MssqlClient, path: str) -> PathCheck:
    result = client.execute_query(_FILEEXIST_SQL, (path,))
    if not result.rows:
        return PathCheck(path, False, False, False)
    exists, is_dir, parent = result.rows[0][:3]
    return PathCheck(path, bool(exists) or bool(is_dir), bool(is_dir), bool(parent))


def get_default_paths(client: MssqlClient) -> DefaultPaths:
    """Default data, log and backup directories, falling back to master's files."""
    row = client.execute_query(_DEFAULT_PATHS_SQL).rows[0]
    data, log, backup, master_data, master_log = row
    data = data or (directory_of(master_data) if master_data else "")
    log = log or (directory_of(master_log) if master_log else data)
    return DefaultPaths(
        data=_strip_trailing(data) if data else "",
        log=_strip_trailing(log) if log else "",
        backup=_strip_trailing(backup) if backup else "",
    )


def file_rows(instance: str, files: Iterable[RemoteFile]) -> list[tuple[Any, ...]]:
    return [(instance, f.path, f.name, f.depth, f.is_directory) for f in files]
