"""Query result models for MSSQL Tool.

Pydantic models for representing query results and column metadata
returned by MssqlClient.execute_query() and built by the command modules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence


class ColumnMeta(BaseModel):
    """Metadata for a single result column.

    type_name is the Python type the driver maps the column to
    ("str", "int", "Decimal", "datetime", ...).
    """

    name: str
    type_name: str = "str"


class QueryResult(BaseModel):
    """Tabular result: one tuple per row, positionally matching columns."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[ColumnMeta]
    rows: list[tuple[Any, ...]]
    row_count: int
    status_message: str = ""

    @classmethod
    def from_rows(
        cls,
        names: Sequence[str] | Sequence[ColumnMeta],
        rows: Iterable[Sequence[Any]],
        status_message: str | None = None,
    ) -> QueryResult:
        columns = [
            n if isinstance(n, ColumnMeta) else ColumnMeta(name=n) for n in names
        ]
        materialized = [tuple(r) for r in rows]
        return cls(
            columns=columns,
            rows=materialized,
            row_count=len(materialized),
            status_message=status_message
            if status_message is not None
            else f"SELECT {len(materialized)}",
        )

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def as_dicts(self) -> Iterator[dict[str, Any]]:
        names = self.column_names
        for row in self.rows:
            yield dict(zip(names, row, strict=True))
