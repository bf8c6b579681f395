"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be merged with ``deep_merge``; the
merge functions create copies, so the original is never mutated.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "server": {
        "host": "127.0.0.1",
        "port": 8080,
    },
    "database": {
        "path": "reqtrack.db",
    },
    "auth": {
        "secret": "",
        "token_ttl_seconds": 3600,
        "refresh_ttl_days": 30,
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
}

DEFAULT_CONFIG_FILENAME = "reqtrack.toml"
