"""The command-line interface for reqtrack."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from reqtrack.config import Config
from reqtrack.exceptions import ConfigError
from reqtrack.utils import create_cli_logger, package_version

from ._commands import register_commands
from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

_HELP = "Product requirements management: epics, user stories and requirements."


def _load_config(config: Path | None, database: str | None) -> Config:
    cli_overrides: dict[str, object] | None = None
    if database is not None:
        cli_overrides = {"database": {"path": database}}
    if config is not None and not config.is_file():
        exit_with_error(f"Config file not found: {config}", ExitCode.LOAD_ERROR)
    try:
        return Config.load(config_path=config, cli_overrides=cli_overrides)
    except ConfigError as e:
        exit_with_error(e.message, ExitCode.LOAD_ERROR)


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="reqtrack",
        help=_HELP,
        version=package_version(),
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        database: Annotated[
            str | None,
            Parameter(name="--database", help="Override database.path"),
        ] = None,
    ) -> None:
        """Launch reqtrack CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit path to config file.
            database: SQLite database file to use instead of the configured one.
        """
        loaded_config = _load_config(config, database)
        cli_logger = create_cli_logger(
            level=loaded_config.logging.level.value,
            log_format=loaded_config.logging.format.value,
            log_file=loaded_config.logging.file,
        )
        CLIContext.set_current(
            CLIContext(config=loaded_config, config_path=config, logger=cli_logger)
        )
        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `reqtrack` CLI."""
    app = create_app()
    app.meta()
