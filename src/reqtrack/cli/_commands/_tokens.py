# pyright: reportUnusedCallResult=false
"""Token maintenance commands."""

from cyclopts import App

from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import ExitCode, exit_with_error, exit_with_success
from reqtrack.exceptions import ConfigError
from reqtrack.services import Services
from reqtrack.utils import create_security_logger

app = App(name="tokens", help="Manage refresh tokens and PATs", help_on_error=True)


@app.command(name="cleanup")
def _cleanup() -> None:
    """Delete expired refresh tokens and personal access tokens

    Safe to run repeatedly, for example from cron.
    """
    ctx = CLIContext.get_current()
    logging_config = ctx.config.logging
    security_logger = create_security_logger(
        level=logging_config.level.value,
        log_format=logging_config.format.value,
        log_file=logging_config.file,
    )
    try:
        services = Services.build(
            ctx.config, logger=ctx.logger, security_logger=security_logger
        )
    except ConfigError as e:
        exit_with_error(e.message, ExitCode.LOAD_ERROR)

    result = services.auth.cleanup_expired_tokens()
    exit_with_success(
        f"Removed {result.refresh_tokens} refresh tokens and "
        f"{result.personal_access_tokens} personal access tokens"
    )
