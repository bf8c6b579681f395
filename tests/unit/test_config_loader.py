# pyright: reportAny=false
"""Unit tests for configuration loading and precedence."""

import os
from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from reqtrack.config import (
    DEFAULT_CONFIG,
    Config,
    ConfigLoadError,
    ConfigSourceName,
    LogFormat,
    LogLevel,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
)

CONFIG_FILE = """
[server]
port = 9000

[database]
path = "/data/file.db"

[auth]
secret = "from-file"
"""


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("8080", 8080),
            ("1.5", 1.5),
            ('["a", "b"]', ["a", "b"]),
            ('{"k": 1}', {"k": 1}),
            ("0.0.0.0", "0.0.0.0"),
            ("[not json", "[not json"),
            ("plain", "plain"),
        ],
    )
    def test_infers_type(self, value: str, expected: object) -> None:
        assert parse_string_value(value) == expected


class TestDeepMerge:
    def test_merges_nested_without_mutating(self) -> None:
        base = {"a": {"x": 1, "y": 2}, "b": [1]}
        override = {"a": {"y": 3}, "c": True}

        merged = deep_merge(base, override)

        assert merged == {"a": {"x": 1, "y": 3}, "b": [1], "c": True}
        assert base == {"a": {"x": 1, "y": 2}, "b": [1]}

    def test_scalar_replaces_dict(self) -> None:
        assert deep_merge({"a": {"x": 1}}, {"a": 5}) == {"a": 5}


class TestParseEnvVars:
    def test_double_underscore_nests(self) -> None:
        result = parse_env_vars(
            environ={
                "REQTRACK_AUTH__SECRET": "s3cret",
                "REQTRACK_SERVER__PORT": "9100",
                "OTHER_SERVER__PORT": "1",
            }
        )

        assert result == {"auth": {"secret": "s3cret"}, "server": {"port": 9100}}

    def test_ignores_flat_variables(self) -> None:
        assert parse_env_vars(environ={"REQTRACK_DEBUG": "1"}) == {}


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        path = Path("/etc/reqtrack.toml")
        _ = fs.create_file(path, contents=CONFIG_FILE)

        assert read_toml_file(path)["server"] == {"port": 9000}

    def test_invalid_toml(self, fs: FakeFilesystem) -> None:
        path = Path("/etc/broken.toml")
        _ = fs.create_file(path, contents="[server\nport = 1\n")

        with pytest.raises(ConfigLoadError) as exc_info:
            _ = read_toml_file(path)

        assert exc_info.value.path == str(path)
        assert exc_info.value.line is not None

    def test_missing_file(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            _ = read_toml_file(Path("/etc/missing.toml"))


class TestConfigFromDict:
    def test_defaults(self) -> None:
        config = Config.from_dict({})

        assert config.server.port == 8080
        assert config.database.path == "reqtrack.db"
        assert config.auth.secret == ""
        assert config.logging.level is LogLevel.INFO
        assert config.logging.format is LogFormat.JSON

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigLoadError, match="server.port"):
            _ = Config.from_dict({"server": {"port": 70000}})

    def test_invalid_enum(self) -> None:
        with pytest.raises(ConfigLoadError, match="logging.level"):
            _ = Config.from_dict({"logging": {"level": "chatty"}})

    def test_to_dict_round_trips_defaults(self) -> None:
        assert Config.from_dict({}).to_dict() == DEFAULT_CONFIG


class TestConfigLoad:
    def test_precedence(self, fs: FakeFilesystem) -> None:
        path = Path("/etc/reqtrack.toml")
        _ = fs.create_file(path, contents=CONFIG_FILE)

        config = Config.load(
            config_path=path,
            environ={"REQTRACK_SERVER__PORT": "9100", "REQTRACK_AUTH__SECRET": "from-env"},
            cli_overrides={"auth": {"secret": "from-cli"}},
        )

        assert config.database.path == "/data/file.db"
        assert config.server.port == 9100
        assert config.auth.secret == "from-cli"
        assert [s.name for s in config.sources] == [
            ConfigSourceName.CLI,
            ConfigSourceName.ENV,
            ConfigSourceName.FILE,
            ConfigSourceName.DEFAULT,
        ]

    def test_without_file(self, fs: FakeFilesystem) -> None:
        os.chdir("/")

        config = Config.load(environ={})

        assert config.server.host == "127.0.0.1"
        assert [s.name for s in config.sources] == [ConfigSourceName.DEFAULT]

    def test_explicit_missing_file(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            _ = Config.load(config_path=Path("/nope.toml"), environ={})
