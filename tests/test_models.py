"""Tests for QueryResult and ColumnMeta."""

from decimal import Decimal

import pytest

from mssql_tool.core.models import ColumnMeta, QueryResult


@pytest.mark.unit
class TestColumnMeta:
    def test_defaults_to_str(self):
        assert ColumnMeta(name="a").type_name == "str"

    def test_type_name(self):
        assert ColumnMeta(name="n", type_name="int").type_name == "int"


@pytest.mark.unit
class TestQueryResult:
    def test_from_rows_with_names(self):
        result = QueryResult.from_rows(["id", "name"], [[1, "a"], (2, "b")])
        assert result.column_names == ["id", "name"]
        assert result.rows == [(1, "a"), (2, "b")]
        assert result.row_count == 2
        assert result.status_message == "SELECT 2"

    def test_from_rows_with_column_meta(self):
        cols = [ColumnMeta(name="size", type_name="int")]
        result = QueryResult.from_rows(cols, [(10,)])
        assert result.columns[0].type_name == "int"

    def test_from_rows_custom_status(self):
        result = QueryResult.from_rows(["a"], [], status_message="OK")
        assert result.status_message == "OK"
        assert result.row_count == 0

    def test_from_rows_accepts_generator(self):
        result = QueryResult.from_rows(["n"], ((i,) for i in range(3)))
        assert result.rows == [(0,), (1,), (2,)]

    def test_as_dicts(self):
        result = QueryResult.from_rows(["id", "amount"], [(1, Decimal("2.50"))])
        assert list(result.as_dicts()) == [{"id": 1, "amount": Decimal("2.50")}]

    def test_as_dicts_rejects_ragged_rows(self):
        result = QueryResult.from_rows(["a", "b"], [(1,)])
        with pytest.raises(ValueError):
            list(result.as_dicts())
