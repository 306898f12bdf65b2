"""Logging configuration using structlog.

Logs go to stderr to keep stdout clean for data output (piping).
"""

import logging
import sys
from typing import Any

import structlog

_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

LOG_FORMATS = ("console", "json")


class _LazyStderrFactory:
    """Resolve sys.stderr at logger creation time, not at configure() time.

    PrintLoggerFactory(file=sys.stderr) captures the file handle once.
    Under CliRunner tests the captured handle becomes stale when stderr
    is closed between invocations.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(verbose: bool = False, log_format: str = "console") -> None:
    """Configure structlog for MSSQL Tool.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
        log_format: "console" for human output, "json" for one JSON
            object per line.
    """
    if log_format not in LOG_FORMATS:
        msg = f"Unknown log format {log_format!r}. Available: {', '.join(LOG_FORMATS)}"
        raise ValueError(msg)
    log_level = "debug" if verbose else "info"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _renderer(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LOG_LEVELS[log_level]),
        context_class=dict,
        logger_factory=_LazyStderrFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger, optionally bound with a name.

    Never call this at module level. Always call inside functions or
    __init__() after setup_logging() has been called.
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger
