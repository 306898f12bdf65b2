"""SQL Server service discovery through sys.dm_server_services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

_SERVICES_SQL = """
SELECT
    servicename,
    status_desc,
    startup_type_desc,
    service_account,
    process_id,
    -- datetimeoffset has no native pyodbc mapping
    CAST(last_startup_time AS datetime2) AS last_startup_time,
    is_clustered,
    cluster_nodename,
    filename
FROM sys.dm_server_services
ORDER BY servicename
"""

# Checked in order; the first matching fragment wins.
_SERVICE_TYPES: list[tuple[tuple[str, ...], str]] = [
    (("sql server agent",), "Agent"),
    (("browser",), "Browser"),
    (("full-text", "fulltext", "full text"), "FullText"),
    (("launchpad",), "Launchpad"),
    (("analysis",), "SSAS"),
    (("reporting", "power bi report"), "SSRS"),
    (("integration",), "SSIS"),
    (("vss writer",), "VSS"),
    (("ceip", "telemetry"), "CEIP"),
    (("polybase",), "PolyBase"),
    (("sql server (",), "Engine"),
]

SERVICE_TYPES = sorted({t for _, t in _SERVICE_TYPES} | {"Other"})

SERVICE_COLUMNS = [
    "instance",
    "service_name",
    "service_type",
    "state",
    "start_mode",
    "start_name",
    "process_id",
    "last_startup",
    "clustered",
    "cluster_node",
    "binary_path",
]


def classify_service(service_name: str) -> str:
    """Map a service display name to a short service type."""
    lowered = service_name.lower()
    for fragments, service_type in _SERVICE_TYPES:
        if any(f in lowered for f in fragments):
            return service_type
    return "Other"


def list_services(
    client: MssqlClient, service_type: str | None = None
) -> list[tuple[Any, ...]]:
    """One row per service (without the instance column), optionally filtered by type."""
    result = client.execute_query(_SERVICES_SQL)
    wanted = service_type.lower() if service_type else None
    rows: list[tuple[Any, ...]] = []
    for (
        name,
        status,
        startup,
        account,
        pid,
        last_startup,
        clustered,
        node,
        filename,
    ) in result.rows:
        kind = classify_service(name)
        if wanted and kind.lower() != wanted:
            continue
        rows.append(
            (
                name,
                kind,
                status,
                startup,
                account,
                pid,
                last_startup,
                clustered == "Y" if isinstance(clustered, str) else bool(clustered),
                node or "",
                filename,
            )
        )
    return rows
