# pyright: reportUnusedCallResult=false
"""reqtrack API server command."""

from typing import Annotated, Literal

from cyclopts import App, Parameter

from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import ExitCode, exit_with_error, get_console
from reqtrack.exceptions import ConfigError

app = App(name="serve", help="Run the reqtrack API server", help_on_error=True)

UvicornLogLevel = Literal["critical", "error", "warning", "info", "debug", "trace"]


@app.default
def serve(
    *,
    host: Annotated[
        str | None,
        Parameter(help="Bind socket to this host. Defaults to server.host."),
    ] = None,
    port: Annotated[
        int | None,
        Parameter(help="Bind socket to this port. Defaults to server.port."),
    ] = None,
    log_level: Annotated[
        UvicornLogLevel,
        Parameter(help="uvicorn log level."),
    ] = "info",
    access_log: Annotated[
        bool,
        Parameter(help="Enable access log."),
    ] = True,
    timeout_keep_alive: Annotated[
        int,
        Parameter(
            help="Close Keep-Alive connections if no new data received in timeout."
        ),
    ] = 5,
) -> None:
    """Run the reqtrack API server using uvicorn."""
    import uvicorn  # noqa: PLC0415

    from reqtrack.server import create_app  # noqa: PLC0415

    ctx = CLIContext.get_current()
    config = ctx.config
    server = config.server.model_copy(
        update={
            key: value
            for key, value in (("host", host), ("port", port))
            if value is not None
        }
    )
    config = config.model_copy(update={"server": server})

    try:
        application = create_app(config)
    except ConfigError as e:
        exit_with_error(e.message, ExitCode.LOAD_ERROR)

    if ctx.logger is not None:
        ctx.logger.info("serve_started", host=server.host, port=server.port)
    get_console().print(f"Starting reqtrack API server on {server.host}:{server.port}")
    uvicorn.run(
        application,
        host=server.host,
        port=server.port,
        log_level=log_level,
        access_log=access_log,
        timeout_keep_alive=timeout_keep_alive,
    )
