"""Instance name check and repair.

After a host rename, @@SERVERNAME keeps returning the old name until the
local server entry is dropped and re-added. Replication, remote logins
and database mirroring all depend on the old name and block the repair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from mssql_tool.core.exceptions import InputError
from mssql_tool.core.tsql import quote_string

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

_NAMES_SQL = """
SELECT
    @@SERVERNAME AS server_name,
    CAST(SERVERPROPERTY('MachineName') AS nvarchar(128)) AS machine_name,
    CAST(SERVERPROPERTY('InstanceName') AS nvarchar(128)) AS instance_name,
    CAST(SERVERPROPERTY('IsClustered') AS int) AS is_clustered
"""

_BLOCKERS_SQL = """
SELECT
    (SELECT COUNT(*) FROM sys.databases
     WHERE is_published = 1 OR is_merge_published = 1 OR is_distributor = 1) AS replicated,
    (SELECT COUNT(*) FROM sys.remote_logins) AS remote_logins,
    (SELECT COUNT(*) FROM sys.database_mirroring
     WHERE mirroring_guid IS NOT NULL) AS mirrored
"""

RENAME_COLUMNS = [
    "instance",
    "server_name",
    "new_server_name",
    "rename_required",
    "updatable",
    "warnings",
]


@dataclass
class InstanceNameCheck:
    server_name: str
    new_server_name: str
    is_clustered: bool = False
    blockers: list[str] = field(default_factory=list)

    @property
    def rename_required(self) -> bool:
        return self.server_name.lower() != self.new_server_name.lower()

    @property
    def updatable(self) -> bool:
        return self.rename_required and not self.blockers


def expected_server_name(machine_name: str, instance_name: str | None) -> str:
    if instance_name:
        return f"{machine_name}\\{instance_name}"
    return machine_name


def blocker_messages(replicated: int, remote_logins: int, mirrored: int, clustered: bool) -> list[str]:
    messages: list[str] = []
    if replicated:
        messages.append("Replication is configured; remove it before renaming")
    if remote_logins:
        messages.append("Remote logins exist; drop them before renaming")
    if mirrored:
        messages.append("Database mirroring is configured; remove it before renaming")
    if clustered:
        messages.append("Clustered instance; rename through the cluster manager")
    return messages


def check_instance_name(client: MssqlClient) -> InstanceNameCheck:
    server_name, machine, instance_name, clustered = client.execute_query(_NAMES_SQL).rows[0]
    check = InstanceNameCheck(
        server_name=server_name or "",
        new_server_name=expected_server_name(machine, instance_name),
        is_clustered=bool(clustered),
    )
    if check.rename_required:
        replicated, remote_logins, mirrored = client.execute_query(_BLOCKERS_SQL).rows[0]
        check.blockers = blocker_messages(
            int(replicated or 0), int(remote_logins or 0), int(mirrored or 0), check.is_clustered
        )
    return check


def rename_statements(old_name: str, new_name: str) -> list[str]:
    return [
        f"EXEC master.dbo.sp_dropserver {quote_string(old_name)};",
        f"EXEC master.dbo.sp_addserver {quote_string(new_name)}, N'local';",
    ]


def repair_instance_name(
    client: MssqlClient, *, what_if: bool = False
) -> tuple[InstanceNameCheck, list[str]]:
    """Re-register the local server name. Takes effect after an engine restart."""
    check = check_instance_name(client)
    if not check.rename_required:
        return check, []
    if check.blockers:
        msg = f"Cannot rename {client.instance}: " + "; ".join(check.blockers)
        raise InputError(msg)
    statements = rename_statements(check.server_name, check.new_server_name)
    if not what_if:
        for statement in statements:
            client.execute_non_query(statement)
        structlog.get_logger().info(
            "instance renamed",
            instance=client.instance,
            old_name=check.server_name,
            new_name=check.new_server_name,
            restart_required=True,
        )
    return check, statements


def rename_row(instance: str, check: InstanceNameCheck) -> tuple[Any, ...]:
    return (
        instance,
        check.server_name,
        check.new_server_name,
        check.rename_required,
        check.updatable,
        "; ".join(check.blockers),
    )
