"""Database engine startup parameters.

The engine exposes its startup arguments as SQLArg0..SQLArgN registry
values through sys.dm_server_registry. They are parsed into a
StartupParameters model.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mssql_tool.core.client import MssqlClient

_STARTUP_ARGS_SQL = """
SELECT value_name, CAST(value_data AS nvarchar(4000)) AS value_data
FROM sys.dm_server_registry
WHERE registry_key LIKE N'%\\Parameters'
  AND value_name LIKE N'SQLArg%'
"""

_ARG_NUMBER = re.compile(r"(\d+)$")


class StartupParameters(BaseModel):
    master_data: str | None = None
    master_log: str | None = None
    error_log: str | None = None
    trace_flags: list[int] = []
    debug_flags: list[int] = []
    command_prompt_start: bool = False
    minimal_start: bool = False
    memory_to_reserve: int | None = None
    single_user: bool = False
    single_user_name: str | None = None
    no_logging_to_win_events: bool = False
    start_as_named_instance: str | None = None
    disable_monitoring: bool = False
    increased_extents: bool = False
    other: list[str] = []
    arguments: list[str] = []

    @property
    def parameter_string(self) -> str:
        return ";".join(self.arguments)


def _int_list(values: Iterable[str]) -> list[int]:
    flags: list[int] = []
    for v in values:
        for part in v.split(","):
            part = part.strip()
            if part.isdigit():
                flags.append(int(part))
    return flags


def parse_startup_parameters(arguments: Iterable[str]) -> StartupParameters:
    """Parse engine startup arguments such as ``-dC:\\data\\master.mdf``.

    Switch letters are case-sensitive: ``-T`` is a trace flag, ``-E``
    increased extents, ``-e`` the error log.
    """
    args = [a.strip() for a in arguments if a and a.strip()]
    params = StartupParameters(arguments=args)
    trace: list[str] = []
    debug: list[str] = []
    other: list[str] = []

    for arg in args:
        if len(arg) < 2 or arg[0] not in "-/":
            other.append(arg)
            continue
        switch, value = arg[1], arg[2:]
        if switch == "d":
            params.master_data = value
        elif switch == "l":
            params.master_log = value
        elif switch == "e":
            params.error_log = value
        elif switch == "T":
            trace.append(value)
        elif switch == "y":
            debug.append(value)
        elif switch == "c" and not value:
            params.command_prompt_start = True
        elif switch == "f" and not value:
            params.minimal_start = True
        elif switch == "g" and value.isdigit():
            params.memory_to_reserve = int(value)
        elif switch == "m":
            params.single_user = True
            params.single_user_name = value.strip('"') or None
        elif switch == "n" and not value:
            params.no_logging_to_win_events = True
        elif switch == "s" and value:
            params.start_as_named_instance = value
        elif switch == "x" and not value:
            params.disable_monitoring = True
        elif switch == "E" and not value:
            params.increased_extents = True
        else:
            other.append(arg)

    params.trace_flags = _int_list(trace)
    params.debug_flags = _int_list(debug)
    params.other = other
    return params


def _arg_order(value_name: str) -> int:
    match = _ARG_NUMBER.search(value_name)
    return int(match.group(1)) if match else 0


def get_startup_parameters(client: MssqlClient) -> StartupParameters:
    result = client.execute_query(_STARTUP_ARGS_SQL)
    ordered = sorted(result.rows, key=lambda r: _arg_order(r[0]))
    return parse_startup_parameters(value for _, value in ordered)


STARTUP_COLUMNS_SIMPLE = [
    "instance",
    "master_data",
    "master_log",
    "error_log",
    "trace_flags",
    "single_user",
    "minimal_start",
]

STARTUP_COLUMNS = [
    *STARTUP_COLUMNS_SIMPLE,
    "debug_flags",
    "command_prompt_start",
    "memory_to_reserve_mb",
    "single_user_name",
    "no_logging_to_win_events",
    "start_as_named_instance",
    "disable_monitoring",
    "increased_extents",
    "other",
    "parameter_string",
]


def _flags(values: list[int]) -> str:
    return ",".join(str(v) for v in values)


def startup_row(
    instance: str, params: StartupParameters, *, simple: bool = False
) -> tuple[Any, ...]:
    base = (
        instance,
        params.master_data,
        params.master_log,
        params.error_log,
        _flags(params.trace_flags),
        params.single_user,
        params.minimal_start,
    )
    if simple:
        return base
    return (
        *base,
        _flags(params.debug_flags),
        params.command_prompt_start,
        params.memory_to_reserve,
        params.single_user_name,
        params.no_logging_to_win_events,
        params.start_as_named_instance,
        params.disable_monitoring,
        params.increased_extents,
        ";".join(params.other),
        params.parameter_string,
    )
