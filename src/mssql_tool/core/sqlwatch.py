"""Removal of the SqlWatch monitoring add-on from a database.

The uninstall is planned first as an ordered list of statements, so it
can be shown without running it. Order matters: agent jobs go first,
then foreign keys so tables can be dropped in any order, then views,
procedures, tables, functions, table types and finally the schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from mssql_tool.core.exceptions import InputError
from mssql_tool.core.tsql import qualified, quote_name, quote_string

if TYPE_CHECKING:
    from mssql_tool.core.client import MssqlClient

DEFAULT_DATABASE = "SQLWATCH"

_JOBS_SQL = """
SELECT name FROM msdb.dbo.sysjobs
WHERE name LIKE N'SqlWatch-%'
ORDER BY name
"""

_DATABASE_EXISTS_SQL = "SELECT DB_ID(?)"

_FOREIGN_KEYS_SQL = """
SELECT SCHEMA_NAME(t.schema_id), t.name, fk.name
FROM {db}.sys.foreign_keys AS fk
JOIN {db}.sys.tables AS t ON t.object_id = fk.parent_object_id
WHERE t.name LIKE N'%sqlwatch%' OR SCHEMA_NAME(t.schema_id) = N'SqlWatch'
ORDER BY t.name, fk.name
"""

_OBJECTS_SQL = """
SELECT SCHEMA_NAME(o.schema_id), o.name, o.type
FROM {db}.sys.objects AS o
WHERE o.type IN ('P', 'FN', 'IF', 'TF', 'V', 'U')
  AND o.is_ms_shipped = 0
  AND (o.name LIKE N'%sqlwatch%' OR SCHEMA_NAME(o.schema_id) = N'SqlWatch')
ORDER BY o.name
"""

_TABLE_TYPES_SQL = """
SELECT SCHEMA_NAME(tt.schema_id), tt.name
FROM {db}.sys.table_types AS tt
WHERE tt.name LIKE N'%sqlwatch%'
   OR SCHEMA_NAME(tt.schema_id) = N'SqlWatch'
ORDER BY tt.name
"""

_SCHEMA_SQL = "SELECT schema_id FROM {db}.sys.schemas WHERE name = N'SqlWatch'"

# Object type code -> DROP keyword, in drop order.
_DROP_KINDS = {
    "P": "PROCEDURE",
    "FN": "FUNCTION",
    "IF": "FUNCTION",
    "TF": "FUNCTION",
    "V": "VIEW",
    "U": "TABLE",
}
# Table defaults call ufn_sqlwatch_* functions, so functions go after tables.
_DROP_ORDER = ("VIEW", "PROCEDURE", "TABLE", "FUNCTION")

UNINSTALL_COLUMNS = ["instance", "database", "step", "object", "statement", "executed"]


@dataclass(frozen=True)
class UninstallStep:
    step: str
    target: str
    statement: str


def plan_uninstall(client: MssqlClient, database: str = DEFAULT_DATABASE) -> list[UninstallStep]:
    """Ordered statements that remove SqlWatch jobs and objects."""
    if client.scalar(_DATABASE_EXISTS_SQL, (database,)) is None:
        msg = f"Database '{database}' not found on {client.instance}"
        raise InputError(msg)

    db = quote_name(database)
    steps: list[UninstallStep] = []

    for (job,) in client.execute_query(_JOBS_SQL).rows:
        steps.append(
            UninstallStep(
                "job",
                job,
                f"EXEC msdb.dbo.sp_delete_job @job_name = {quote_string(job)};",
            )
        )

    for schema, table, fk in client.execute_query(_FOREIGN_KEYS_SQL.format(db=db)).rows:
        steps.append(
            UninstallStep(
                "foreign_key",
                f"{schema}.{table}.{fk}",
                f"USE {db}; ALTER TABLE {qualified(schema, table)} "
                f"DROP CONSTRAINT {quote_name(fk)};",
            )
        )

    by_kind: dict[str, list[tuple[str, str]]] = {kind: [] for kind in _DROP_ORDER}
    for schema, name, type_code in client.execute_query(_OBJECTS_SQL.format(db=db)).rows:
        kind = _DROP_KINDS.get(type_code.strip())
        if kind is not None:
            by_kind[kind].append((schema, name))
    for kind in _DROP_ORDER:
        for schema, name in by_kind[kind]:
            steps.append(
                UninstallStep(
                    kind.lower(),
                    f"{schema}.{name}",
                    f"USE {db}; DROP {kind} {qualified(schema, name)};",
                )
            )

    for schema, name in client.execute_query(_TABLE_TYPES_SQL.format(db=db)).rows:
        steps.append(
            UninstallStep(
                "type",
                f"{schema}.{name}",
                f"USE {db}; DROP TYPE {qualified(schema, name)};",
            )
        )

    if client.scalar(_SCHEMA_SQL.format(db=db)) is not None:
        steps.append(
            UninstallStep("schema", "SqlWatch", f"USE {db}; DROP SCHEMA [SqlWatch];")
        )

    return steps


def uninstall_sqlwatch(
    client: MssqlClient,
    database: str = DEFAULT_DATABASE,
    *,
    what_if: bool = False,
) -> list[tuple[Any, ...]]:
    """Run (or with ``what_if`` only list) the uninstall steps."""
    log = structlog.get_logger()
    steps = plan_uninstall(client, database)
    log.info(
        "sqlwatch uninstall planned",
        instance=client.instance,
        database=database,
        steps=len(steps),
        what_if=what_if,
    )
    rows: list[tuple[Any, ...]] = []
    for step in steps:
        if not what_if:
            client.execute_non_query(step.statement)
            log.info(
                "sqlwatch step done",
                instance=client.instance,
                step=step.step,
                target=step.target,
            )
        rows.append(uninstall_row(client.instance, database, step, executed=not what_if))
    return rows


def uninstall_row(
    instance: str, database: str, step: UninstallStep, *, executed: bool
) -> tuple[Any, ...]:
    return (instance, database, step.step, step.target, step.statement, executed)
