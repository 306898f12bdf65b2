"""Tests for output format selection and warnings."""

import pytest

from mssql_tool.cli.output import (
    OutputFormat,
    get_formatter,
    resolve_format,
    write_failures,
    write_output,
)
from mssql_tool.core.instances import InstanceFailure
from mssql_tool.core.models import QueryResult
from mssql_tool.formatters.csv import CSVFormatter
from mssql_tool.formatters.json import JSONFormatter
from mssql_tool.formatters.table import TableFormatter


@pytest.mark.unit
def test_output_format_enum_values():
    assert [f.value for f in OutputFormat] == ["table", "json", "csv"]


@pytest.mark.unit
def test_resolve_format_explicit():
    assert resolve_format("json") == "json"


@pytest.mark.unit
def test_resolve_format_tty_defaults_to_table(monkeypatch):
    monkeypatch.setattr("mssql_tool.cli.output.detect_tty", lambda: True)
    assert resolve_format(None) == "table"


@pytest.mark.unit
def test_resolve_format_non_tty_defaults_to_csv(monkeypatch):
    monkeypatch.setattr("mssql_tool.cli.output.detect_tty", lambda: False)
    assert resolve_format(None) == "csv"


@pytest.mark.unit
def test_resolve_format_configured_beats_tty(monkeypatch):
    monkeypatch.setattr("mssql_tool.cli.output.detect_tty", lambda: True)
    assert resolve_format(None, "json") == "json"


@pytest.mark.unit
def test_resolve_format_flag_beats_configured():
    assert resolve_format("csv", "json") == "csv"


@pytest.mark.unit
def test_get_formatter_types():
    assert isinstance(get_formatter("table"), TableFormatter)
    assert isinstance(get_formatter("json"), JSONFormatter)
    assert isinstance(get_formatter("csv"), CSVFormatter)


@pytest.mark.unit
def test_get_formatter_passes_options():
    assert get_formatter("table", width=12).width == 12
    assert get_formatter("json", compact=True).compact is True
    assert get_formatter("csv", no_header=True).no_header is True


@pytest.mark.unit
def test_write_output(capsys):
    result = QueryResult.from_rows(["instance"], [("sql1",)])
    write_output(CSVFormatter(), result)
    assert capsys.readouterr().out == "instance\nsql1\n"


@pytest.mark.unit
def test_write_failures_to_stderr(capsys):
    write_failures([InstanceFailure("sql2", "Login failed", 8)])
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "Warning: [sql2] Login failed\n"
