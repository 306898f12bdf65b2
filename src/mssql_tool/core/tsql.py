"""T-SQL identifier and literal quoting."""

from __future__ import annotations


def quote_name(name: str) -> str:
    """Bracket-quote an identifier the way QUOTENAME() does."""
    return "[" + name.replace("]", "]]") + "]"


def quote_string(value: str) -> str:
    """Render a Unicode string literal (N'...')."""
    return "N'" + value.replace("'", "''") + "'"


def qualified(*parts: str) -> str:
    """Join identifier parts into a quoted multi-part name."""
    return ".".join(quote_name(p) for p in parts)
