"""Shared test fixtures for MSSQL Tool."""

from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from mssql_tool.cli.main import app


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_client():
    """Replace the client the CLI opens per instance with a MagicMock."""
    client = MagicMock()
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    client.instance = "sql1"
    with patch(
        "mssql_tool.cli.commands._shared.MssqlClient", return_value=client
    ) as factory:
        client.factory = factory
        yield client


@pytest.fixture(autouse=True)
def _isolated_environment(request, monkeypatch, tmp_path):
    """Keep the developer's environment and config file out of unit tests."""
    if request.node.get_closest_marker("integration"):
        return
    for var in (
        "SQLCMDSERVER",
        "SQLCMDPORT",
        "SQLCMDDBNAME",
        "SQLCMDUSER",
        "SQLCMDPASSWORD",
        "MSSQL_PROFILE",
        "MSSQL_TOOL_SENTRY_DSN",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "mssql_tool.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.toml"
    )
