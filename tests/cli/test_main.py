"""Tests for the CLI entry point and global options."""

import pytest

from mssql_tool import __version__
from mssql_tool.cli.main import app

SUBCOMMANDS = [
    "config",
    "index",
    "service",
    "startup",
    "permission",
    "diskspace",
    "snapshot",
    "instance-name",
    "file",
    "sqlwatch",
    "query",
]


@pytest.mark.unit
class TestCliHelp:
    def test_help_flag(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "MSSQL Tool" in result.stdout
        assert "SQL Server" in result.stdout

    def test_help_lists_commands(self, runner):
        result = runner.invoke(app, ["--help"])
        for name in SUBCOMMANDS:
            assert name in result.stdout

    def test_no_args_shows_help(self, runner):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "Usage" in result.stdout

    @pytest.mark.parametrize("group", SUBCOMMANDS[:-1])
    def test_group_without_command_shows_help(self, runner, group):
        result = runner.invoke(app, [group])
        assert result.exit_code == 0
        assert "Usage" in result.stdout


@pytest.mark.unit
class TestCliVersion:
    def test_version_flag(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"mssql-tool {__version__}" in result.stdout

    def test_version_short_flag(self, runner):
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert f"mssql-tool {__version__}" in result.stdout


@pytest.mark.unit
class TestGlobalOptions:
    def test_verbose_flag_accepted(self, runner):
        result = runner.invoke(app, ["--verbose", "config", "show"])
        assert result.exit_code == 0

    def test_json_log_format_accepted(self, runner):
        result = runner.invoke(app, ["--log-format", "json", "config", "show"])
        assert result.exit_code == 0

    def test_unknown_log_format_rejected(self, runner):
        result = runner.invoke(app, ["--log-format", "xml", "config", "show"])
        assert result.exit_code == 2

    def test_unknown_format_rejected(self, runner):
        result = runner.invoke(app, ["--format", "xml", "config", "show"])
        assert result.exit_code == 2

    def test_unknown_command_fails(self, runner):
        result = runner.invoke(app, ["nonexistent-command"])
        assert result.exit_code != 0
