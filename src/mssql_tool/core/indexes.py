"""Duplicate and overlapping index detection.

Index definitions are fetched one row per index column and assembled
here; matching happens on the assembled definitions:

- duplicate: same table, same ordered key columns (with direction),
  same included columns, same filter
- overlapping: same table, the key columns of one index are a leading
  prefix of (or equal to) the key columns of another, and the group is
  not made of exact duplicates only
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mssql_tool.core.tsql import quote_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mssql_tool.core.client import MssqlClient

DUPLICATE = "duplicate"
OVERLAPPING = "overlapping"

# Rowstore clustered and nonclustered only: heaps, XML, spatial and
# columnstore indexes have no comparable key column list.
_INDEX_COLUMNS_SQL = """
SELECT
    s.name AS schema_name,
    t.name AS table_name,
    i.name AS index_name,
    i.type_desc,
    i.is_unique,
    i.is_disabled,
    i.filter_definition,
    c.name AS column_name,
    ic.key_ordinal,
    ic.is_descending_key,
    ic.is_included_column,
    st.size_kb,
    st.row_count
FROM {db}.sys.indexes AS i
JOIN {db}.sys.tables AS t ON t.object_id = i.object_id
JOIN {db}.sys.schemas AS s ON s.schema_id = t.schema_id
JOIN {db}.sys.index_columns AS ic
    ON ic.object_id = i.object_id AND ic.index_id = i.index_id
JOIN {db}.sys.columns AS c
    ON c.object_id = ic.object_id AND c.column_id = ic.column_id
OUTER APPLY (
    SELECT
        SUM(ps.used_page_count) * 8 AS size_kb,
        SUM(ps.row_count) AS row_count
    FROM {db}.sys.dm_db_partition_stats AS ps
    WHERE ps.object_id = i.object_id AND ps.index_id = i.index_id
) AS st
WHERE t.is_ms_shipped = 0
  AND i.type IN (1, 2)
ORDER BY s.name, t.name, i.name, ic.is_included_column, ic.key_ordinal, c.name
"""


@dataclass
class IndexInfo:
    database: str
    schema: str
    table: str
    name: str
    type_desc: str
    is_unique: bool
    is_disabled: bool
    filter_definition: str | None
    key_columns: list[str] = field(default_factory=list)
    included_columns: list[str] = field(default_factory=list)
    size_kb: int = 0
    row_count: int = 0

    @property
    def table_key(self) -> tuple[str, str, str]:
        return (self.database.lower(), self.schema.lower(), self.table.lower())

    @property
    def key_signature(self) -> tuple[str, ...]:
        return tuple(k.lower() for k in self.key_columns)

    @property
    def exact_signature(self) -> tuple[Any, ...]:
        included = tuple(sorted(c.lower() for c in self.included_columns))
        filter_def = " ".join((self.filter_definition or "").lower().split())
        return (self.key_signature, included, filter_def)


@dataclass(frozen=True)
class IndexMatch:
    group: int
    match: str
    index: IndexInfo


def assemble_indexes(database: str, rows: Iterable[tuple[Any, ...]]) -> list[IndexInfo]:
    """Fold one-row-per-column results into IndexInfo objects, in row order."""
    indexes: dict[tuple[str, str, str], IndexInfo] = {}
    for (
        schema,
        table,
        index_name,
        type_desc,
        is_unique,
        is_disabled,
        filter_definition,
        column_name,
        key_ordinal,
        is_descending,
        is_included,
        size_kb,
        row_count,
    ) in rows:
        key = (schema, table, index_name)
        info = indexes.get(key)
        if info is None:
            info = IndexInfo(
                database=database,
                schema=schema,
                table=table,
                name=index_name,
                type_desc=type_desc,
                is_unique=bool(is_unique),
                is_disabled=bool(is_disabled),
                filter_definition=filter_definition,
                size_kb=int(size_kb or 0),
                row_count=int(row_count or 0),
            )
            indexes[key] = info
        if is_included:
            info.included_columns.append(column_name)
        elif key_ordinal:
            info.key_columns.append(
                f"{column_name} DESC" if is_descending else column_name
            )
    return list(indexes.values())


def _is_prefix(shorter: tuple[str, ...], longer: tuple[str, ...]) -> bool:
    return len(shorter) <= len(longer) and longer[: len(shorter)] == shorter


def _overlap_components(indexes: list[IndexInfo]) -> list[list[IndexInfo]]:
    parent = list(range(len(indexes)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i, a in enumerate(indexes):
        for j in range(i + 1, len(indexes)):
            b = indexes[j]
            if _is_prefix(a.key_signature, b.key_signature) or _is_prefix(
                b.key_signature, a.key_signature
            ):
                parent[find(i)] = find(j)

    components: dict[int, list[IndexInfo]] = {}
    for i, idx in enumerate(indexes):
        components.setdefault(find(i), []).append(idx)
    return [c for c in components.values() if len(c) > 1]


def find_duplicate_indexes(
    indexes: Iterable[IndexInfo], *, include_overlapping: bool = False
) -> list[IndexMatch]:
    """Group indexes into duplicate (and optionally overlapping) sets.

    Group numbers are assigned in first-seen order and are unique across
    both match kinds. An index can belong to a duplicate group and to an
    overlapping group at the same time.
    """
    by_table: dict[tuple[str, str, str], list[IndexInfo]] = {}
    for idx in indexes:
        if idx.key_columns:
            by_table.setdefault(idx.table_key, []).append(idx)

    matches: list[IndexMatch] = []
    group = 0
    for table_indexes in by_table.values():
        exact: dict[tuple[Any, ...], list[IndexInfo]] = {}
        for idx in table_indexes:
            exact.setdefault(idx.exact_signature, []).append(idx)
        for members in exact.values():
            if len(members) < 2:
                continue
            group += 1
            matches.extend(IndexMatch(group, DUPLICATE, m) for m in members)

        if not include_overlapping:
            continue
        for component in _overlap_components(table_indexes):
            if len({m.exact_signature for m in component}) == 1:
                continue
            group += 1
            matches.extend(IndexMatch(group, OVERLAPPING, m) for m in component)
    return matches


def get_database_indexes(client: MssqlClient, database: str) -> list[IndexInfo]:
    result = client.execute_query(_INDEX_COLUMNS_SQL.format(db=quote_name(database)))
    return assemble_indexes(database, result.rows)


INDEX_COLUMNS = [
    "instance",
    "database",
    "schema",
    "table",
    "index",
    "match",
    "group",
    "key_columns",
    "included_columns",
    "filter",
    "type",
    "unique",
    "disabled",
    "size_kb",
    "rows",
]


def index_match_rows(
    instance: str, matches: Iterable[IndexMatch]
) -> list[tuple[Any, ...]]:
    return [
        (
            instance,
            m.index.database,
            m.index.schema,
            m.index.table,
            m.index.name,
            m.match,
            m.group,
            ", ".join(m.index.key_columns),
            ", ".join(m.index.included_columns),
            m.index.filter_definition or "",
            m.index.type_desc,
            m.index.is_unique,
            m.index.is_disabled,
            m.index.size_kb,
            m.index.row_count,
        )
        for m in matches
    ]
