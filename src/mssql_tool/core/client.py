"""SQL Server client for MSSQL Tool.

Wraps pyodbc connections with query execution, query timeout, and
exception mapping to the MssqlToolError hierarchy.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import pyodbc
import sentry_sdk
import structlog

from mssql_tool.core.exceptions import (
    AuthenticationError,
    MssqlToolError,
    NetworkError,
    TimeoutError,
)
from mssql_tool.core.models import ColumnMeta, QueryResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mssql_tool.core.config import ResolvedConfig

_TIMEOUT_STATES = {"HYT00", "HYT01"}
_LOGIN_FAILED_STATE = "28000"


def _sqlstate(error: pyodbc.Error) -> str:
    if error.args and isinstance(error.args[0], str):
        return error.args[0]
    return ""


def _message(error: pyodbc.Error) -> str:
    if len(error.args) > 1:
        return str(error.args[1])
    return str(error)


def map_driver_error(error: pyodbc.Error, *, server: str) -> MssqlToolError:
    """Translate a pyodbc error into the matching MssqlToolError."""
    state = _sqlstate(error)
    message = _message(error)
    if state in _TIMEOUT_STATES:
        return TimeoutError(f"Timed out talking to {server}: {message}")
    if state == _LOGIN_FAILED_STATE:
        return AuthenticationError(f"Login failed for {server}: {message}")
    if state.startswith("08") or isinstance(error, pyodbc.InterfaceError):
        return NetworkError(f"Connection failed to {server}: {message}")
    if isinstance(error, pyodbc.OperationalError):
        return NetworkError(f"Database error on {server}: {message}")
    return MssqlToolError(f"SQL error on {server}: {message}")


def _type_name(type_code: Any) -> str:
    return getattr(type_code, "__name__", str(type_code))


class MssqlClient:
    """Synchronous SQL Server client using pyodbc."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._connection: pyodbc.Connection | None = None

    def __enter__(self) -> MssqlClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def instance(self) -> str:
        return self.config.host

    def _connect(self) -> pyodbc.Connection:
        if self._connection is not None:
            return self._connection

        log = structlog.get_logger()
        log.debug(
            "connecting",
            server=self.config.server,
            database=self.config.dbname,
            integrated_auth=self.config.integrated_auth,
        )
        try:
            self._connection = pyodbc.connect(
                self.config.odbc_connection_string(),
                autocommit=True,
                timeout=self.config.connect_timeout,
            )
        except pyodbc.Error as e:
            raise map_driver_error(e, server=self.config.server) from e

        self._connection.timeout = int(self.config.default_timeout)
        return self._connection

    def execute_query(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> QueryResult:
        """Execute a T-SQL batch and return its first row-returning result set."""
        log = structlog.get_logger()
        conn = self._connect()

        sql_normalized = " ".join(sql.split())
        log.debug("executing query", instance=self.instance, sql=sql_normalized)
        with sentry_sdk.start_span(
            op="db.query", description=sql_normalized[:100]
        ) as span:
            start_time = time.monotonic()
            cur = conn.cursor()
            try:
                if params:
                    cur.execute(sql, list(params))
                else:
                    cur.execute(sql)

                # Batches with SET NOCOUNT OFF or DDL yield row-count-only
                # result sets before the SELECT we want.
                while cur.description is None and cur.nextset():
                    pass

                columns: list[ColumnMeta] = []
                rows: list[tuple[Any, ...]] = []
                if cur.description:
                    columns = [
                        ColumnMeta(name=desc[0], type_name=_type_name(desc[1]))
                        for desc in cur.description
                    ]
                    rows = [tuple(r) for r in cur.fetchall()]

                duration_ms = (time.monotonic() - start_time) * 1000
                span.set_data("row_count", len(rows))
                span.set_data("duration_ms", duration_ms)
                log.debug(
                    "query complete",
                    instance=self.instance,
                    duration_ms=f"{duration_ms:.1f}",
                    row_count=len(rows),
                )
                return QueryResult(
                    columns=columns,
                    rows=rows,
                    row_count=len(rows),
                    status_message=f"SELECT {len(rows)}" if columns else "OK",
                )
            except pyodbc.Error as e:
                err = map_driver_error(e, server=self.config.server)
                timed_out = isinstance(err, TimeoutError)
                span.set_status("deadline_exceeded" if timed_out else "internal_error")
                log.error(
                    "query failed",
                    instance=self.instance,
                    sql=sql_normalized,
                    error=err.message,
                )
                raise err from e
            finally:
                cur.close()

    def execute_non_query(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Execute DDL/DML. Returns the affected row count (-1 when unknown)."""
        log = structlog.get_logger()
        conn = self._connect()
        sql_normalized = " ".join(sql.split())
        log.debug("executing statement", instance=self.instance, sql=sql_normalized)
        with sentry_sdk.start_span(op="db.execute", description=sql_normalized[:100]):
            cur = conn.cursor()
            try:
                if params:
                    cur.execute(sql, list(params))
                else:
                    cur.execute(sql)
                rowcount = cur.rowcount
                # Drain every result set so later statements in the batch run.
                while cur.nextset():
                    pass
                return rowcount
            except pyodbc.Error as e:
                err = map_driver_error(e, server=self.config.server)
                log.error(
                    "statement failed",
                    instance=self.instance,
                    sql=sql_normalized,
                    error=err.message,
                )
                raise err from e
            finally:
                cur.close()

    def scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """Return the first column of the first row, or None."""
        result = self.execute_query(sql, params)
        if not result.rows:
            return None
        return result.rows[0][0]

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
