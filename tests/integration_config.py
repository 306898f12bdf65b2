"""Configuration for integration tests.

Override these values via environment variables to match your local SQL
Server setup. Integration tests are deselected unless run with
``-m integration``.

Example:
    export MSSQL_TOOL_TEST_PROFILE=local_sql
    export MSSQL_TOOL_TEST_DATABASE=AdventureWorks
"""

import os

# Profile name configured in ~/.config/mssql-tool/config.toml
TEST_PROFILE = os.environ.get("MSSQL_TOOL_TEST_PROFILE", "test_db")

# A user database on the test instance
TEST_DATABASE = os.environ.get("MSSQL_TOOL_TEST_DATABASE", "mssql_tool_test")

# CLI profile arguments
PROFILE_ARGS = ["--profile", TEST_PROFILE]
