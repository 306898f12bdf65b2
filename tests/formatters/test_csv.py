"""Tests for CSVFormatter."""

from datetime import datetime

import pytest

from mssql_tool.core.models import ColumnMeta, QueryResult
from mssql_tool.formatters.base import Formatter
from mssql_tool.formatters.csv import CSVFormatter


def _make_result(rows=None, columns=None):
    if columns is None:
        columns = [
            ColumnMeta(name="instance", type_name="str"),
            ColumnMeta(name="database", type_name="str"),
            ColumnMeta(name="size", type_name="int"),
        ]
    if rows is None:
        rows = [("sql1", "Sales", 1024), ("sql2", "HR", None)]
    return QueryResult(columns=columns, rows=rows, row_count=len(rows))


@pytest.mark.unit
def test_csv_formatter_implements_protocol():
    assert isinstance(CSVFormatter(), Formatter)


@pytest.mark.unit
def test_csv_formatter_header_and_rows():
    lines = list(CSVFormatter().format(_make_result()))
    assert lines == ["instance,database,size", "sql1,Sales,1024", "sql2,HR,"]


@pytest.mark.unit
def test_csv_formatter_no_header():
    lines = list(CSVFormatter(no_header=True).format(_make_result()))
    assert lines[0] == "sql1,Sales,1024"


@pytest.mark.unit
def test_csv_formatter_quotes_special_values():
    result = _make_result(rows=[("sql1\\PROD", 'a,"b"', 1)])
    lines = list(CSVFormatter().format(result))
    assert lines[1] == 'sql1\\PROD,"a,""b""",1'


@pytest.mark.unit
def test_csv_formatter_multiline_statement():
    result = _make_result(rows=[("sql1", "ALTER x;\nRESTORE y;", 1)])
    output = "\n".join(CSVFormatter(no_header=True).format(result))
    assert output == 'sql1,"ALTER x;\nRESTORE y;",1'


@pytest.mark.unit
def test_csv_formatter_datetime_and_bool():
    columns = [ColumnMeta(name="created"), ColumnMeta(name="ok")]
    result = _make_result(rows=[(datetime(2024, 5, 1, 8, 0), True)], columns=columns)
    lines = list(CSVFormatter(no_header=True).format(result))
    assert lines == ["2024-05-01T08:00:00,True"]


@pytest.mark.unit
def test_csv_formatter_empty_result_header_only():
    lines = list(CSVFormatter().format(_make_result(rows=[])))
    assert lines == ["instance,database,size"]
