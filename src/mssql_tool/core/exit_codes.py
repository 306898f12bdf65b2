"""Standard exit codes for MSSQL Tool.

Exit codes follow Unix conventions: 0 success, 2 usage, small positive
integers for the error classes raised by core modules.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for MSSQL Tool commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    AUTH_ERROR = 8
