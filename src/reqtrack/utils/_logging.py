"""Standalone structlog loggers for the server, security events and the CLI.

Each factory builds its own logger with ``structlog.wrap_logger`` and binds a
``component`` key; global structlog configuration is never touched, so the
server and the CLI can log to different places from one process.
"""

import logging
import sys
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Final, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR: Final = "REQTRACK_DEBUG"


def resolve_level(level: str) -> int:
    """Map a level name to its ``logging`` number.

    ``REQTRACK_DEBUG`` set to anything non-empty forces DEBUG. Unknown names
    fall back to INFO.
    """
    if getenv(DEBUG_ENV_VAR):
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _processors(log_format: LogFormatType) -> "list[Processor]":  # noqa: UP037
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "text":
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return chain


def _component_logger(
    component: str, *, level: str, log_format: LogFormatType, log_file: str
) -> "FilteringBoundLogger":  # noqa: UP037
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = path.open("a")
    else:
        sink = sys.stderr
    logger = structlog.wrap_logger(
        structlog.WriteLogger(sink),
        processors=_processors(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level)),
        context_class=dict,
    )
    return cast("FilteringBoundLogger", logger).bind(component=component)


def create_server_logger(
    *, level: str = "info", log_format: LogFormatType = "json", log_file: str = ""
) -> "FilteringBoundLogger":  # noqa: UP037
    """Logger for request handling, the store and the planning services.

    Args:
        level: Minimum level (debug, info, warning, error).
        log_format: ``json`` for one object per line, ``text`` for key=value.
        log_file: File to append to; empty writes to stderr.
    """
    return _component_logger("server", level=level, log_format=log_format, log_file=log_file)


def create_security_logger(
    *, level: str = "info", log_format: LogFormatType = "json", log_file: str = ""
) -> "FilteringBoundLogger":  # noqa: UP037
    """Logger for authentication attempts and token lifecycle events."""
    return _component_logger(
        "security", level=level, log_format=log_format, log_file=log_file
    )


def create_cli_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "json",
    log_file: str = "",
    command: str = "",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Logger for one CLI invocation; ``command`` is bound when given."""
    logger = _component_logger("cli", level=level, log_format=log_format, log_file=log_file)
    return logger.bind(command=command) if command else logger
