# pyright: reportUnusedCallResult=false
# ruff: noqa: A002
"""Configuration commands."""

from enum import StrEnum
from typing import Annotated

from cyclopts import App, Parameter

from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import (
    ExitCode,
    exit_with_error,
    format_json,
    format_toml,
    get_console,
)

app = App(name="config", help="Inspect reqtrack configuration", help_on_error=True)

_REDACTED = "********"


class OutputFormat(StrEnum):
    TOML = "toml"
    JSON = "json"


@app.command(name="show")
def _show(
    *,
    format: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (toml, json)"),
    ] = OutputFormat.TOML,
    section: Annotated[
        str | None,
        Parameter(name=["--section"], help="Show one section only (e.g., server)"),
    ] = None,
    show_secrets: Annotated[
        bool,
        Parameter(name="--show-secrets", help="Print auth.secret instead of a mask"),
    ] = False,
) -> None:
    """Display the effective configuration

    Values are merged from defaults, the TOML file, REQTRACK_* environment
    variables and command-line flags.
    """
    data = CLIContext.get_current().config.to_dict()
    if not show_secrets and data.get("auth", {}).get("secret"):
        data["auth"]["secret"] = _REDACTED

    if section is not None:
        if section not in data:
            exit_with_error(f"Section '{section}' not found", ExitCode.NOT_FOUND)
        data = {section: data[section]}

    match format:
        case OutputFormat.JSON:
            output = format_json(data)
        case _:
            output = format_toml(data)
    get_console().print(output.rstrip(), markup=False, highlight=False)
