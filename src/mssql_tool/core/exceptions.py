"""Exception hierarchy for MSSQL Tool.

All exceptions carry an exit_code for CLI return value mapping.
"""

from mssql_tool.core.exit_codes import ExitCode


class MssqlToolError(Exception):
    """Base exception for all MSSQL Tool errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(MssqlToolError):
    """Connection failures, unreachable instance, dropped session."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Query timeout, login timeout."""

    exit_code: int = ExitCode.TIMEOUT


class AuthenticationError(MssqlToolError):
    """Login failed for the supplied or integrated credentials."""

    exit_code: int = ExitCode.AUTH_ERROR


class InputError(MssqlToolError):
    """File not found, invalid parameters, unknown database or snapshot."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(MssqlToolError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
