"""Tests for TableFormatter."""

import pytest

from mssql_tool.core.models import ColumnMeta, QueryResult
from mssql_tool.formatters.base import Formatter
from mssql_tool.formatters.table import TableFormatter


def _make_result(rows=None, columns=None):
    if columns is None:
        columns = [
            ColumnMeta(name="group", type_name="int"),
            ColumnMeta(name="index", type_name="str"),
        ]
    if rows is None:
        rows = [(1, "IX_Orders_Customer"), (1, "IX_Orders_Customer2")]
    return QueryResult(columns=columns, rows=rows, row_count=len(rows))


@pytest.mark.unit
def test_table_formatter_implements_protocol():
    assert isinstance(TableFormatter(), Formatter)


@pytest.mark.unit
def test_table_formatter_outputs_headers_and_values():
    output = "\n".join(TableFormatter().format(_make_result()))
    assert "group" in output
    assert "index" in output
    assert "IX_Orders_Customer2" in output


@pytest.mark.unit
def test_table_formatter_empty_result_shows_no_results():
    assert list(TableFormatter().format(_make_result(rows=[]))) == ["No results"]


@pytest.mark.unit
def test_table_formatter_truncates_wide_values():
    result = _make_result(rows=[(1, "x" * 60)])
    output = "\n".join(TableFormatter(width=20).format(result))
    assert "x" * 19 + "…" in output
    assert "x" * 20 not in output


@pytest.mark.unit
def test_table_formatter_renders_null_as_blank():
    result = _make_result(rows=[(None, "IX_a")])
    output = "\n".join(TableFormatter().format(result))
    assert "None" not in output


@pytest.mark.unit
def test_table_formatter_keeps_bracketed_identifiers(monkeypatch):
    monkeypatch.setenv("COLUMNS", "200")
    statement = "USE [master]; REVOKE SELECT ON [dbo].[t] FROM [public];"
    result = QueryResult(
        columns=[ColumnMeta(name="statement", type_name="str")],
        rows=[(statement,)],
        row_count=1,
    )
    output = "\n".join(TableFormatter(width=200).format(result))
    assert statement in output
