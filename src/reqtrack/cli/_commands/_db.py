# pyright: reportUnusedCallResult=false
"""Database maintenance commands."""

from cyclopts import App

from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import ExitCode, exit_with_error, exit_with_success
from reqtrack.exceptions import StoreError
from reqtrack.store import Store

app = App(name="db", help="Manage the reqtrack database", help_on_error=True)


@app.command(name="init")
def _init() -> None:
    """Create the schema and seed default types and status models

    Safe to run against an existing database.
    """
    ctx = CLIContext.get_current()
    path = ctx.config.database.path
    try:
        Store(path, logger=ctx.logger).initialize()
    except StoreError as e:
        exit_with_error(f"Failed to initialize {path}: {e.message}", ExitCode.IO_ERROR)
    exit_with_success(f"[green]Initialized[/green] {path}")
