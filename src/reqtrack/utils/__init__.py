"""Shared utilities for reqtrack."""

from ._logging import (
    LogFormatType,
    create_cli_logger,
    create_security_logger,
    create_server_logger,
)
from ._time import Timestamp, format_timestamp, utc_now
from ._version import package_version

__all__ = [
    "LogFormatType",
    "Timestamp",
    "create_cli_logger",
    "create_security_logger",
    "create_server_logger",
    "format_timestamp",
    "package_version",
    "utc_now",
]
