"""reqtrack CLI commands."""

from typing import TYPE_CHECKING

from ._config import app as config_app
from ._db import app as db_app
from ._health import app as health_app
from ._serve import app as serve_app
from ._tokens import app as tokens_app
from ._users import app as users_app

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "config_app",
    "db_app",
    "health_app",
    "register_commands",
    "serve_app",
    "tokens_app",
    "users_app",
]


def register_commands(app: "App") -> None:
    """Register all subcommands with the main app."""
    app.command(serve_app)
    app.command(db_app)
    app.command(users_app)
    app.command(tokens_app)
    app.command(config_app)
    app.command(health_app)
