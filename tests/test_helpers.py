"""Tests for CLI formatting helpers."""

from datetime import datetime, timedelta

import pytest

from mssql_tool.cli.helpers import fmt_size, format_duration_human, format_relative_time

# -- fmt_size --


@pytest.mark.unit
def test_fmt_size_none_returns_dash():
    assert fmt_size(None) == "-"


@pytest.mark.unit
def test_fmt_size_zero_returns_dash():
    assert fmt_size(0) == "-"


@pytest.mark.unit
def test_fmt_size_bytes_below_kb():
    assert fmt_size(512) == "512B"


@pytest.mark.unit
def test_fmt_size_kb_range():
    assert fmt_size(2048) == "2.0 KB"


@pytest.mark.unit
def test_fmt_size_mb_range():
    assert fmt_size(5 * 1024 * 1024) == "5.0 MB"


@pytest.mark.unit
def test_fmt_size_gb_range():
    assert fmt_size(15 * (1 << 30)) == "15 GB"


@pytest.mark.unit
def test_fmt_size_negative_keeps_sign():
    assert fmt_size(-3 * (1 << 30)) == "-3.0 GB"


# -- durations --


@pytest.mark.unit
@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(None, ""), (5, "5s"), (125, "2m"), (7200, "2h"), (3 * 86400, "3d")],
)
def test_format_duration_human(seconds, expected):
    assert format_duration_human(seconds) == expected


@pytest.mark.unit
def test_format_relative_time():
    now = datetime(2024, 5, 1, 12, 0, 0)
    assert format_relative_time(now - timedelta(hours=3), now=now) == "3h ago"


@pytest.mark.unit
def test_format_relative_time_none():
    assert format_relative_time(None) == ""


@pytest.mark.unit
def test_format_relative_time_future_clamps_to_zero():
    now = datetime(2024, 5, 1, 12, 0, 0)
    assert format_relative_time(now + timedelta(minutes=5), now=now) == "0s ago"
