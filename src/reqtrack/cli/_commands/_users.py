# pyright: reportUnusedCallResult=false
"""User management commands."""

from typing import Annotated

from cyclopts import App, Parameter
from pydantic import ValidationError as PydanticValidationError

from reqtrack.auth import PasswordHasher, UserCreate, UserService
from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import ExitCode, exit_with_error, exit_with_success
from reqtrack.enums import Role
from reqtrack.exceptions import ReqtrackError
from reqtrack.store import Store

app = App(name="users", help="Manage user accounts", help_on_error=True)


@app.command(name="create-admin")
def _create_admin(
    *,
    username: Annotated[str, Parameter(help="Login name for the administrator")],
    email: Annotated[str, Parameter(help="Email address")],
    password: Annotated[str, Parameter(help="Initial password (at least 8 characters)")],
) -> None:
    """Create an Administrator account

    Initializes the database first when needed, so this can bootstrap a fresh
    deployment.
    """
    ctx = CLIContext.get_current()
    store = Store(ctx.config.database.path, logger=ctx.logger)
    try:
        data = UserCreate(
            username=username, email=email, password=password, role=Role.ADMINISTRATOR
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        exit_with_error(f"Invalid {field}: {first['msg']}", ExitCode.VALIDATION_ERROR)

    try:
        store.initialize()
        user = UserService(store, hasher=PasswordHasher(), logger=ctx.logger).create(data)
    except ReqtrackError as e:
        exit_with_error(e.message, ExitCode.VALIDATION_ERROR)
    exit_with_success(f"[green]Created administrator[/green] {user.username} ({user.id})")
