"""Shared CLI formatting helpers."""

from __future__ import annotations

from datetime import datetime


def format_duration_human(seconds: float | None) -> str:
    if seconds is None:
        return ""

    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        return f"{minutes}m"
    elif seconds < 86400:
        hours = int(seconds / 3600)
        return f"{hours}h"
    else:
        days = int(seconds / 86400)
        return f"{days}d"


def format_relative_time(since: datetime | None, now: datetime | None = None) -> str:
    """``3h ago`` style rendering of a past timestamp."""
    if since is None:
        return ""
    if now is None:
        now = datetime.now(since.tzinfo)
    seconds = max((now - since).total_seconds(), 0)
    return f"{format_duration_human(seconds)} ago"


def fmt_size(b: int | None) -> str:
    """Format bytes as human-readable size for table output."""
    if not b:
        return "-"
    negative = b < 0
    b = abs(b)
    units = [("TB", 1 << 40), ("GB", 1 << 30), ("MB", 1 << 20), ("KB", 1 << 10)]
    text = f"{b}B"
    for suffix, threshold in units:
        if b >= threshold:
            value = b / threshold
            text = f"{value:.0f} {suffix}" if value >= 10 else f"{value:.1f} {suffix}"
            break
    return f"-{text}" if negative else text
