"""Tests for query source resolution."""

import io
from unittest.mock import patch

import pytest

from mssql_tool.core.exceptions import InputError
from mssql_tool.core.query_source import resolve_query_source


@pytest.fixture
def script_file(tmp_path):
    path = tmp_path / "select_42.sql"
    path.write_text("SELECT 42 AS answer\n", encoding="utf-8")
    return str(path)


@pytest.mark.unit
def test_inline_query():
    assert resolve_query_source(inline="SELECT 1", file_path=None) == "SELECT 1"


@pytest.mark.unit
def test_inline_takes_precedence_over_file(script_file):
    assert resolve_query_source(inline="SELECT 1", file_path=script_file) == "SELECT 1"


@pytest.mark.unit
def test_file_query(script_file):
    assert resolve_query_source(inline=None, file_path=script_file) == "SELECT 42 AS answer\n"


@pytest.mark.unit
def test_file_with_byte_order_mark(tmp_path):
    path = tmp_path / "bom.sql"
    path.write_bytes("\ufeffSELECT 1".encode("utf-8"))
    assert resolve_query_source(inline=None, file_path=str(path)) == "SELECT 1"


@pytest.mark.unit
def test_file_not_found_raises_input_error():
    with pytest.raises(InputError, match="Script file not found"):
        resolve_query_source(inline=None, file_path="/nonexistent/file.sql")


@pytest.mark.unit
def test_directory_is_not_a_script(tmp_path):
    with pytest.raises(InputError, match="Script file not found"):
        resolve_query_source(inline=None, file_path=str(tmp_path))


@pytest.mark.unit
def test_stdin_query():
    with (
        patch("sys.stdin", new=io.StringIO("SELECT 99")),
        patch("sys.stdin.isatty", return_value=False),
    ):
        result = resolve_query_source(inline=None, file_path=None)
    assert result == "SELECT 99"


@pytest.mark.unit
def test_no_query_source_raises_input_error():
    with (
        patch("sys.stdin.isatty", return_value=True),
        pytest.raises(InputError, match="No batch provided"),
    ):
        resolve_query_source(inline=None, file_path=None)
