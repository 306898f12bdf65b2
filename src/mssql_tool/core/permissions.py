"""Server and database permission listing, and public/guest revocation.

Every listed permission carries the statement that grants (or denies)
it and the statement that revokes it, so the output can be replayed on
another instance or used to clean up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from mssql_tool.core.databases import list_database_names
from mssql_tool.core.tsql import qualified, quote_name, quote_string

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mssql_tool.core.client import MssqlClient

_SERVER_PERMISSIONS_SQL = """
SELECT
    p.state_desc,
    p.permission_name,
    p.class_desc,
    CASE p.class
        WHEN 100 THEN @@SERVERNAME
        WHEN 101 THEN (SELECT sp.name FROM sys.server_principals AS sp
                       WHERE sp.principal_id = p.major_id)
        WHEN 105 THEN (SELECT e.name FROM sys.endpoints AS e
                       WHERE e.endpoint_id = p.major_id)
        ELSE CAST(p.major_id AS nvarchar(128))
    END AS securable,
    NULL AS securable_schema,
    grantee.name AS grantee,
    grantee.type_desc AS grantee_type,
    grantor.name AS grantor
FROM sys.server_permissions AS p
JOIN sys.server_principals AS grantee ON grantee.principal_id = p.grantee_principal_id
JOIN sys.server_principals AS grantor ON grantor.principal_id = p.grantor_principal_id
ORDER BY grantee.name, p.permission_name
"""

_DATABASE_PERMISSIONS_SQL = """
SELECT
    p.state_desc,
    p.permission_name,
    p.class_desc,
    CASE p.class
        WHEN 0 THEN {db_literal}
        WHEN 1 THEN o.name
        WHEN 3 THEN sch.name
        WHEN 4 THEN (SELECT dp.name FROM {db}.sys.database_principals AS dp
                     WHERE dp.principal_id = p.major_id)
        WHEN 6 THEN (SELECT ty.name FROM {db}.sys.types AS ty
                     WHERE ty.user_type_id = p.major_id)
        ELSE CAST(p.major_id AS nvarchar(128))
    END AS securable,
    CASE p.class WHEN 1 THEN osch.name END AS securable_schema,
    grantee.name AS grantee,
    grantee.type_desc AS grantee_type,
    grantor.name AS grantor
FROM {db}.sys.database_permissions AS p
JOIN {db}.sys.database_principals AS grantee
    ON grantee.principal_id = p.grantee_principal_id
JOIN {db}.sys.database_principals AS grantor
    ON grantor.principal_id = p.grantor_principal_id
LEFT JOIN {db}.sys.all_objects AS o ON p.class = 1 AND o.object_id = p.major_id
LEFT JOIN {db}.sys.schemas AS osch ON osch.schema_id = o.schema_id
LEFT JOIN {db}.sys.schemas AS sch ON p.class = 3 AND sch.schema_id = p.major_id
ORDER BY grantee.name, p.permission_name
"""

# Object permissions held by public (principal 0) or guest (principal 2).
_PUBLIC_GUEST_OBJECT_SQL = """
SELECT
    p.permission_name,
    SCHEMA_NAME(o.schema_id) AS schema_name,
    o.name AS object_name,
    u.name AS role_name
FROM {db}.sys.database_permissions AS p
JOIN {db}.sys.database_principals AS u ON p.grantee_principal_id = u.principal_id
JOIN {db}.sys.all_objects AS o ON o.object_id = p.major_id
WHERE p.grantee_principal_id IN (0, 2)
  AND p.class = 1
ORDER BY u.name, o.schema_id, o.name, p.permission_name
"""

SYSTEM_SCHEMAS = ("sys", "information_schema")

# Databases whose guest user must keep CONNECT.
GUEST_REQUIRED_DATABASES = ("master", "tempdb")

PERMISSION_COLUMNS = [
    "instance",
    "database",
    "permission_state",
    "permission_name",
    "securable_type",
    "securable",
    "grantee",
    "grantee_type",
    "grantor",
    "grant_statement",
    "revoke_statement",
]

REVOCATION_COLUMNS = ["instance", "database", "statement", "executed"]


@dataclass(frozen=True)
class Permission:
    database: str
    state: str
    permission: str
    securable_type: str
    securable: str
    securable_schema: str | None
    grantee: str
    grantee_type: str
    grantor: str

    @property
    def is_server_level(self) -> bool:
        return self.database == ""

    @property
    def is_system_object(self) -> bool:
        schema = (self.securable_schema or "").lower()
        if self.securable_type == "OBJECT_OR_COLUMN" and schema in SYSTEM_SCHEMAS:
            return True
        return (
            self.securable_type == "SCHEMA" and self.securable.lower() in SYSTEM_SCHEMAS
        )


def _securable_clause(p: Permission) -> str:
    """ON clause for GRANT/REVOKE, empty for server or database scope."""
    kind = p.securable_type
    if kind in ("SERVER", "DATABASE"):
        return ""
    if kind == "OBJECT_OR_COLUMN":
        if p.securable_schema:
            return f" ON OBJECT::{qualified(p.securable_schema, p.securable)}"
        return f" ON OBJECT::{quote_name(p.securable)}"
    if kind == "SCHEMA":
        return f" ON SCHEMA::{quote_name(p.securable)}"
    if kind == "SERVER_PRINCIPAL":
        return f" ON LOGIN::{quote_name(p.securable)}"
    if kind == "DATABASE_PRINCIPAL":
        return f" ON USER::{quote_name(p.securable)}"
    if kind == "ENDPOINT":
        return f" ON ENDPOINT::{quote_name(p.securable)}"
    if kind == "TYPE":
        return f" ON TYPE::{quote_name(p.securable)}"
    return f" ON {kind}::{quote_name(p.securable)}"


def _use_prefix(p: Permission) -> str:
    # Server-scope permissions can only be granted or revoked from master.
    database = "master" if p.is_server_level else p.database
    return f"USE {quote_name(database)}; "


def grant_statement(p: Permission) -> str:
    """Statement that recreates the permission (GRANT, DENY, or GRANT ... WITH GRANT OPTION)."""
    on = _securable_clause(p)
    grantee = quote_name(p.grantee)
    if p.state == "GRANT_WITH_GRANT_OPTION":
        body = f"GRANT {p.permission}{on} TO {grantee} WITH GRANT OPTION"
    elif p.state == "DENY":
        body = f"DENY {p.permission}{on} TO {grantee}"
    else:
        body = f"GRANT {p.permission}{on} TO {grantee}"
    return f"{_use_prefix(p)}{body};"


def revoke_statement(p: Permission) -> str:
    on = _securable_clause(p)
    grantee = quote_name(p.grantee)
    cascade = " CASCADE" if p.state == "GRANT_WITH_GRANT_OPTION" else ""
    return f"{_use_prefix(p)}REVOKE {p.permission}{on} FROM {grantee}{cascade};"


def _to_permissions(database: str, rows: Iterable[tuple[Any, ...]]) -> list[Permission]:
    return [
        Permission(
            database=database,
            state=state,
            permission=name,
            securable_type=class_desc,
            securable=securable or "",
            securable_schema=schema,
            grantee=grantee,
            grantee_type=grantee_type,
            grantor=grantor,
        )
        for state, name, class_desc, securable, schema, grantee, grantee_type, grantor in rows
    ]


def get_server_permissions(client: MssqlClient) -> list[Permission]:
    return _to_permissions("", client.execute_query(_SERVER_PERMISSIONS_SQL).rows)


def get_database_permissions(client: MssqlClient, database: str) -> list[Permission]:
    sql = _DATABASE_PERMISSIONS_SQL.format(
        db=quote_name(database),
        db_literal=quote_string(database),
    )
    return _to_permissions(database, client.execute_query(sql).rows)


def list_permissions(
    client: MssqlClient,
    *,
    databases: Sequence[str] | None = None,
    exclude_databases: Sequence[str] | None = None,
    include_server_level: bool = False,
    exclude_system_objects: bool = False,
) -> list[Permission]:
    permissions: list[Permission] = []
    if include_server_level:
        permissions.extend(get_server_permissions(client))
    for database in list_database_names(
        client, include=databases, exclude=exclude_databases, include_system=True
    ):
        permissions.extend(get_database_permissions(client, database))
    if exclude_system_objects:
        permissions = [p for p in permissions if not p.is_system_object]
    return permissions


def permission_rows(instance: str, permissions: Iterable[Permission]) -> list[tuple[Any, ...]]:
    return [
        (
            instance,
            p.database,
            p.state,
            p.permission,
            p.securable_type,
            p.securable,
            p.grantee,
            p.grantee_type,
            p.grantor,
            grant_statement(p),
            revoke_statement(p),
        )
        for p in permissions
    ]


def public_guest_revocations(
    client: MssqlClient, databases: Sequence[str] | None = None
) -> list[tuple[str, str]]:
    """Plan revocations of permissions held by public and guest.

    Returns (database, statement) pairs; the server-level statement runs
    in master. guest keeps CONNECT in master and tempdb.
    """
    plan: list[tuple[str, str]] = [
        ("master", "USE [master]; REVOKE VIEW ANY DATABASE FROM PUBLIC;")
    ]
    for database in list_database_names(client, include=databases, include_system=True):
        db = quote_name(database)
        result = client.execute_query(_PUBLIC_GUEST_OBJECT_SQL.format(db=db))
        for permission, schema, obj, role in result.rows:
            plan.append(
                (
                    database,
                    f"USE {db}; REVOKE {permission} ON "
                    f"{qualified(schema, obj)} FROM {quote_name(role)};",
                )
            )
        if database.lower() not in GUEST_REQUIRED_DATABASES:
            plan.append((database, f"USE {db}; REVOKE CONNECT FROM GUEST;"))
    return plan


def apply_revocations(
    client: MssqlClient, plan: Iterable[tuple[str, str]], *, execute: bool = False
) -> list[tuple[Any, ...]]:
    """Return output rows for the plan, executing each statement when asked."""
    log = structlog.get_logger()
    rows: list[tuple[Any, ...]] = []
    for database, statement in plan:
        if execute:
            client.execute_non_query(statement)
            log.info("revoked", instance=client.instance, statement=statement)
        rows.append((client.instance, database, statement, execute))
    return rows
