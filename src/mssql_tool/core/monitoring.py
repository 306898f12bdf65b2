"""Sentry integration for error tracking and performance monitoring.

Sentry is initialized early in main() after logging setup. Reporting is
opt-in: without MSSQL_TOOL_SENTRY_DSN the SDK is initialised disabled.
"""

import os

import sentry_sdk

from mssql_tool.__about__ import __version__

SENTRY_DSN_ENV = "MSSQL_TOOL_SENTRY_DSN"


def setup_sentry(environment: str = "local") -> None:
    """Initialize Sentry from the environment for error tracking."""
    sentry_sdk.init(
        dsn=os.environ.get(SENTRY_DSN_ENV),
        traces_sample_rate=0.03,
        environment=os.environ.get("MSSQL_TOOL_ENVIRONMENT", environment),
        release=__version__,
        attach_stacktrace=True,
        send_default_pii=False,
    )
