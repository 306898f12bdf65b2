"""Where the T-SQL batch for the ``query`` command comes from.

Precedence: inline (-Q) over a script file over stdin.
"""

from __future__ import annotations

import sys
from pathlib import Path

from mssql_tool.core.exceptions import InputError


def resolve_query_source(
    inline: str | None,
    file_path: str | None,
) -> str:
    """Return the batch text, raising InputError when no source is available."""
    if inline is not None:
        return inline

    if file_path is not None:
        p = Path(file_path)
        if not p.is_file():
            msg = (
                f"Script file not found: {file_path}\n"
                "Use -Q for an inline batch or pipe the batch via stdin."
            )
            raise InputError(msg)
        return p.read_text(encoding="utf-8-sig")

    if not sys.stdin.isatty():
        return sys.stdin.read()

    msg = "No batch provided. Use -Q, a script file, or pipe to stdin."
    raise InputError(msg)
