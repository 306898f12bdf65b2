"""Tests for duplicate and overlapping index detection."""

from unittest.mock import MagicMock

import pytest

from mssql_tool.core.indexes import (
    DUPLICATE,
    INDEX_COLUMNS,
    OVERLAPPING,
    IndexInfo,
    assemble_indexes,
    find_duplicate_indexes,
    get_database_indexes,
    index_match_rows,
)
from mssql_tool.core.models import QueryResult


def _index(name, keys, included=(), table="Orders", filter_definition=None):
    return IndexInfo(
        database="Sales",
        schema="dbo",
        table=table,
        name=name,
        type_desc="NONCLUSTERED",
        is_unique=False,
        is_disabled=False,
        filter_definition=filter_definition,
        key_columns=list(keys),
        included_columns=list(included),
    )


def _groups(matches):
    groups = {}
    for m in matches:
        groups.setdefault((m.group, m.match), []).append(m.index.name)
    return groups


# -- Row assembly --


@pytest.mark.unit
def test_assemble_indexes_folds_columns():
    rows = [
        ("dbo", "Orders", "IX_a", "NONCLUSTERED", 0, 0, None, "CustomerId", 1, 0, 0, 64, 1000),
        ("dbo", "Orders", "IX_a", "NONCLUSTERED", 0, 0, None, "OrderDate", 2, 1, 0, 64, 1000),
        ("dbo", "Orders", "IX_a", "NONCLUSTERED", 0, 0, None, "Total", 0, 0, 1, 64, 1000),
        ("dbo", "Orders", "PK_Orders", "CLUSTERED", 1, 0, None, "OrderId", 1, 0, 0, None, None),
    ]
    indexes = assemble_indexes("Sales", rows)
    assert [i.name for i in indexes] == ["IX_a", "PK_Orders"]
    ix = indexes[0]
    assert ix.key_columns == ["CustomerId", "OrderDate DESC"]
    assert ix.included_columns == ["Total"]
    assert ix.size_kb == 64
    assert ix.row_count == 1000
    assert indexes[1].is_unique is True
    assert indexes[1].size_kb == 0


# -- Duplicates --


@pytest.mark.unit
def test_exact_duplicates_grouped():
    matches = find_duplicate_indexes(
        [_index("IX_a", ["A", "B"]), _index("IX_b", ["a", "b"]), _index("IX_c", ["A"])]
    )
    assert _groups(matches) == {(1, DUPLICATE): ["IX_a", "IX_b"]}


@pytest.mark.unit
def test_included_column_order_ignored():
    matches = find_duplicate_indexes(
        [_index("IX_a", ["A"], ["X", "Y"]), _index("IX_b", ["A"], ["Y", "X"])]
    )
    assert len(matches) == 2


@pytest.mark.unit
def test_key_direction_matters():
    matches = find_duplicate_indexes([_index("IX_a", ["A"]), _index("IX_b", ["A DESC"])])
    assert matches == []


@pytest.mark.unit
def test_different_filters_are_not_duplicates():
    matches = find_duplicate_indexes(
        [
            _index("IX_a", ["A"], filter_definition="([A]>(0))"),
            _index("IX_b", ["A"], filter_definition="([A]>(1))"),
        ]
    )
    assert matches == []


@pytest.mark.unit
def test_different_tables_are_not_duplicates():
    matches = find_duplicate_indexes(
        [_index("IX_a", ["A"]), _index("IX_b", ["A"], table="Customers")]
    )
    assert matches == []


@pytest.mark.unit
def test_indexes_without_keys_ignored():
    matches = find_duplicate_indexes([_index("IX_a", []), _index("IX_b", [])])
    assert matches == []


# -- Overlapping --


@pytest.mark.unit
def test_overlapping_only_when_requested():
    indexes = [_index("IX_a", ["A"]), _index("IX_b", ["A", "B"])]
    assert find_duplicate_indexes(indexes) == []
    matches = find_duplicate_indexes(indexes, include_overlapping=True)
    assert _groups(matches) == {(1, OVERLAPPING): ["IX_a", "IX_b"]}


@pytest.mark.unit
def test_overlapping_chain_forms_one_group():
    indexes = [
        _index("IX_a", ["A"]),
        _index("IX_b", ["A", "B"]),
        _index("IX_c", ["A", "B", "C"]),
        _index("IX_d", ["B"]),
    ]
    matches = find_duplicate_indexes(indexes, include_overlapping=True)
    assert _groups(matches) == {(1, OVERLAPPING): ["IX_a", "IX_b", "IX_c"]}


@pytest.mark.unit
def test_pure_duplicates_not_repeated_as_overlapping():
    indexes = [_index("IX_a", ["A"]), _index("IX_b", ["A"])]
    matches = find_duplicate_indexes(indexes, include_overlapping=True)
    assert _groups(matches) == {(1, DUPLICATE): ["IX_a", "IX_b"]}


@pytest.mark.unit
def test_index_can_be_in_both_kinds_of_group():
    indexes = [_index("IX_a", ["A"]), _index("IX_b", ["A"]), _index("IX_c", ["A", "B"])]
    matches = find_duplicate_indexes(indexes, include_overlapping=True)
    assert _groups(matches) == {
        (1, DUPLICATE): ["IX_a", "IX_b"],
        (2, OVERLAPPING): ["IX_a", "IX_b", "IX_c"],
    }


@pytest.mark.unit
def test_group_numbers_continue_across_tables():
    indexes = [
        _index("IX_a", ["A"]),
        _index("IX_b", ["A"]),
        _index("IX_c", ["A"], table="Customers"),
        _index("IX_d", ["A"], table="Customers"),
    ]
    assert {m.group for m in find_duplicate_indexes(indexes)} == {1, 2}


# -- Client and rows --


@pytest.mark.unit
def test_get_database_indexes_quotes_database():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(["x"], [])
    assert get_database_indexes(client, "My]Db") == []
    assert "[My]]Db].sys.indexes" in client.execute_query.call_args[0][0]


@pytest.mark.unit
def test_index_match_rows():
    matches = find_duplicate_indexes(
        [_index("IX_a", ["A"], ["X"]), _index("IX_b", ["A"], ["X"])]
    )
    rows = index_match_rows("sql1", matches)
    assert len(rows[0]) == len(INDEX_COLUMNS)
    assert rows[0][:8] == ("sql1", "Sales", "dbo", "Orders", "IX_a", DUPLICATE, 1, "A")
    assert rows[0][8] == "X"
