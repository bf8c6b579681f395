# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models.

Each section of the configuration file maps onto a frozen Pydantic model.
``Config`` is the immutable container handed to components at startup.
"""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic import ValidationError as PydanticValidationError

from reqtrack.config._defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_FILENAME
from reqtrack.config._loader import deep_merge, parse_env_vars, read_toml_file
from reqtrack.exceptions import ConfigLoadError


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Configuration source names in precedence order.

    Values are ordered from highest precedence (CLI) to lowest (DEFAULT).
    """

    CLI = "cli"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Represents a configuration source.

    Attributes:
        name: The source type identifier.
        path: Path to the config file, or None for non-file sources.
        values: Configuration values from this source.
    """

    name: ConfigSourceName
    path: Path | None
    values: dict[str, Any]


class ServerConfig(BaseModel):
    """HTTP bind settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", coerce_numbers_to_str=True
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=0, le=65535)


class DatabaseConfig(BaseModel):
    """Store settings.

    Attributes:
        path: SQLite database file.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", coerce_numbers_to_str=True
    )

    path: str = "reqtrack.db"


class AuthConfig(BaseModel):
    """Token signing and lifetime settings.

    Attributes:
        secret: HMAC key for bearer tokens. Must be set before serving.
        token_ttl_seconds: Bearer token lifetime.
        refresh_ttl_days: Refresh token lifetime.
        pat_default_ttl_days: Expiry applied to PATs created without one.
            None means PATs never expire unless asked to.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True, extra="ignore", coerce_numbers_to_str=True
    )

    secret: str = ""
    token_ttl_seconds: int = Field(default=3600, gt=0)
    refresh_ttl_days: int = Field(default=30, gt=0)
    pat_default_ttl_days: int | None = None


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class Config(BaseModel):
    """Configuration container with typed access.

    Use ``from_dict`` or ``load`` rather than the constructor so that defaults
    are merged in.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], *, sources: tuple[ConfigSource, ...] = ()
    ) -> Self:
        """Build a Config from a (partial) dictionary merged over the defaults.

        Raises:
            ConfigLoadError: If a value fails validation.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        try:
            config = cls.model_validate(merged)
        except PydanticValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first["loc"])
            msg = f"Invalid configuration value for {key}: {first['msg']}"
            raise ConfigLoadError(msg) from e
        config._sources = sources
        return config

    @property
    def sources(self) -> tuple[ConfigSource, ...]:
        """Sources that contributed to this configuration, highest precedence first."""
        return self._sources

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        cli_overrides: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ) -> Self:
        """Load configuration from all sources.

        Precedence (highest first): CLI overrides, ``REQTRACK_*`` environment
        variables, the TOML file, built-in defaults.

        Args:
            config_path: Explicit config file. When None, ``reqtrack.toml`` in
                the working directory is used if it exists.
            cli_overrides: Nested dictionary of values from command-line flags.
            environ: Environment mapping (defaults to ``os.environ``).

        Returns:
            The merged, validated configuration.

        Raises:
            ConfigLoadError: If the file cannot be parsed or a value is invalid.
            FileNotFoundError: If ``config_path`` was given but does not exist.
        """
        sources: list[ConfigSource] = [
            ConfigSource(ConfigSourceName.DEFAULT, None, DEFAULT_CONFIG)
        ]
        merged: dict[str, Any] = {}

        file_path = config_path
        if file_path is None:
            candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
            file_path = candidate if candidate.is_file() else None
        if file_path is not None:
            file_values = read_toml_file(file_path)
            sources.append(ConfigSource(ConfigSourceName.FILE, file_path, file_values))
            merged = deep_merge(merged, file_values)

        env_values = parse_env_vars(environ=environ)
        if env_values:
            sources.append(ConfigSource(ConfigSourceName.ENV, None, env_values))
            merged = deep_merge(merged, env_values)

        if cli_overrides:
            sources.append(ConfigSource(ConfigSourceName.CLI, None, cli_overrides))
            merged = deep_merge(merged, cli_overrides)

        return cls.from_dict(merged, sources=tuple(reversed(sources)))

    def to_dict(self) -> dict[str, Any]:
        """Return the effective configuration as a TOML-serializable dict."""
        return self.model_dump(mode="json", exclude_none=True)
