# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Raw configuration sources: the TOML file and ``REQTRACK_*`` variables.

Both sources produce plain nested dictionaries; ``Config.load`` layers them
over the defaults with ``deep_merge`` and validates the result once.
"""

from __future__ import annotations

import copy
import os
import re
import tomllib
from typing import TYPE_CHECKING, Any, Final

import orjson

from reqtrack.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

ENV_PREFIX: Final = "REQTRACK_"

# REQTRACK_AUTH__SECRET -> auth.secret
ENV_NESTING: Final = "__"

type RawConfig = dict[str, Any]  # pyright: ignore[reportExplicitAny]

# tomllib only gained lineno/colno attributes in 3.14
_POSITION_RE: Final = re.compile(r"at line (?P<line>\d+), column (?P<column>\d+)")


def _error_position(error: tomllib.TOMLDecodeError) -> tuple[int | None, int | None]:
    line = getattr(error, "lineno", None)
    column = getattr(error, "colno", None)
    if line is None and (match := _POSITION_RE.search(str(error))):
        return int(match.group("line")), int(match.group("column"))
    return line, column


def read_toml_file(path: Path) -> RawConfig:
    """Parse ``path`` as TOML.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigLoadError: With the line and column of a syntax error.
    """
    with path.open("rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            line, column = _error_position(e)
            msg = f"Failed to parse TOML file: {e}"
            raise ConfigLoadError(msg, path=str(path), line=line, column=column) from e


def deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    """Return ``base`` with ``override`` laid over it; neither input changes.

    Tables merge key by key. Any other value in ``override``, lists
    included, replaces the base value outright.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Infer the type of an environment variable value.

    Tried in order: boolean, integer, float (only with a dot), JSON array or
    object, then the string itself.

    Examples:
        >>> parse_string_value("FALSE")
        False
        >>> parse_string_value("9100")
        9100
        >>> parse_string_value("127.0.0.1")
        '127.0.0.1'
    """
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass
    if value[:1] + value[-1:] in {"[]", "{}"}:
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass
    return value


def parse_env_vars(
    prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None
) -> RawConfig:
    """Collect ``REQTRACK_SECTION__KEY`` variables into nested sections.

    Names without ``__``, such as ``REQTRACK_DEBUG``, are switches rather
    than configuration keys and are skipped.
    """
    source = os.environ if environ is None else environ
    result: RawConfig = {}
    for name, raw in source.items():
        if not name.startswith(prefix) or ENV_NESTING not in name[len(prefix) :]:
            continue
        *sections, key = name[len(prefix) :].lower().split(ENV_NESTING)
        table = result
        for section in sections:
            child = table.get(section)
            if not isinstance(child, dict):
                child = table[section] = {}
            table = child
        table[key] = parse_string_value(raw)
    return result
