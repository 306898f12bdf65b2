"""Tests for T-SQL quoting helpers."""

import pytest

from mssql_tool.core.tsql import qualified, quote_name, quote_string


@pytest.mark.unit
class TestQuoteName:
    def test_plain(self):
        assert quote_name("Sales") == "[Sales]"

    def test_closing_bracket_doubled(self):
        assert quote_name("odd]name") == "[odd]]name]"

    def test_opening_bracket_kept(self):
        assert quote_name("a[b") == "[a[b]"


@pytest.mark.unit
class TestQuoteString:
    def test_unicode_literal(self):
        assert quote_string("abc") == "N'abc'"

    def test_single_quote_doubled(self):
        assert quote_string("O'Brien") == "N'O''Brien'"


@pytest.mark.unit
def test_qualified_joins_parts():
    assert qualified("db", "dbo", "t]x") == "[db].[dbo].[t]]x]"
