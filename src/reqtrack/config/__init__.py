"""reqtrack configuration.

Example:
    >>> from reqtrack.config import Config
    >>> config = Config.load()
    >>> config.server.port
    8080
"""

from reqtrack.exceptions import ConfigError, ConfigLoadError

from ._defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_FILENAME
from ._loader import deep_merge, parse_env_vars, parse_string_value, read_toml_file
from ._models import (
    AuthConfig,
    Config,
    ConfigSource,
    ConfigSourceName,
    DatabaseConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ServerConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILENAME",
    "AuthConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "DatabaseConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ServerConfig",
    "deep_merge",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
]
