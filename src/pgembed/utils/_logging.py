"""Logging utilities for pgembed.

Loggers are standalone structlog loggers that render JSON or plain text to a
file, optionally rotated, or to stderr. Creating one never touches the global
structlog configuration, so library users keep control of their own logging.

Level precedence, highest first:
1. PGEMBED_DEBUG (any non-empty value forces DEBUG)
2. An explicit level, e.g. from the ``[logging]`` settings section
3. PGEMBED_LOG_LEVEL
4. INFO
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

    from pgembed.settings import LoggingSettings

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "PGEMBED_DEBUG"
LEVEL_ENV_VAR = "PGEMBED_LOG_LEVEL"


def _get_log_level(level: str | None = None) -> int:
    """Resolve the effective log level.

    Args:
        level: Explicit level name (debug, info, warning, error).

    Returns:
        The logging level as an integer.
    """
    if os.environ.get(DEBUG_ENV_VAR):
        return logging.DEBUG
    name = level if level is not None else os.environ.get(LEVEL_ENV_VAR, "info")
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _open_sink(
    log_path: Path, level: int, max_bytes: int | None, backup_count: int | None
) -> object:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if max_bytes is None or backup_count is None:
        return structlog.WriteLoggerFactory(file=log_path.open("a"))()

    stdlib_logger = logging.getLogger(f"pgembed.{log_path.stem}.{id(log_path)}")
    stdlib_logger.handlers.clear()
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(level)
    handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(level)
    # structlog renders the line; the handler only writes it
    handler.setFormatter(logging.Formatter("%(message)s"))
    stdlib_logger.addHandler(handler)
    return stdlib_logger


def _processors(log_format: LogFormatType) -> list["Processor"]:
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    return chain


def _create_logger(
    log_file_path: str | None = None,
    *,
    log_level: int | None = None,
    log_format: LogFormatType = "json",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Args:
        log_file_path: Log file, opened in append mode. None logs to stderr.
        log_level: Level threshold. Resolved from the environment when None.
        log_format: Output format, either "json" or "text".
        max_bytes: Rotate the file past this size. Requires `backup_count`.
        backup_count: Rotated files to keep. Requires `max_bytes`.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    level = log_level if log_level is not None else _get_log_level()
    sink = (
        structlog.PrintLoggerFactory(file=sys.stderr)()
        if log_file_path is None
        else _open_sink(Path(log_file_path), level, max_bytes, backup_count)
    )
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            sink,
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
        ),
    )


def create_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "text",
    log_file: str = "",
    component: str = "",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger for a pgembed component.

    Args:
        level: Level name. PGEMBED_DEBUG still forces DEBUG.
        log_format: Output format, either "json" or "text".
        log_file: Log file path. Empty logs to stderr.
        component: Bound to every entry as ``component`` when given.
        max_bytes: Rotate the file past this size.
        backup_count: Rotated files to keep.

    Returns:
        A FilteringBoundLogger instance.
    """
    logger = _create_logger(
        log_file or None,
        log_level=_get_log_level(level),
        log_format=log_format,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    return logger.bind(component=component) if component else logger


def logger_from_settings(
    settings: "LoggingSettings",
    *,
    component: str = "",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger configured by the ``[logging]`` settings section."""
    return create_logger(
        level=settings.level.value,
        log_format=cast("LogFormatType", settings.format.value),
        log_file=settings.file,
        component=component,
    )
