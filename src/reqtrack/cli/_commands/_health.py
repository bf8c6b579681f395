# pyright: reportUnusedCallResult=false
"""Probe a running server."""

from typing import Annotated

import httpx
from cyclopts import App, Parameter
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from reqtrack.cli._context import CLIContext
from reqtrack.cli._shared import ExitCode, exit_with_error, exit_with_success

app = App(name="health", help="Check that a reqtrack server is up", help_on_error=True)


@retry(
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)
def fetch_health(client: httpx.Client) -> httpx.Response:
    """Request ``/health`` with retry logic.

    Raises:
        httpx.ConnectError: If connection fails after retries.
        httpx.TimeoutException: If request times out after retries.
    """
    return client.get("/health")


@app.default
def health(
    *,
    url: Annotated[
        str | None,
        Parameter(help="Server base URL. Defaults to server.host and server.port."),
    ] = None,
    timeout: Annotated[float, Parameter(help="Per-attempt timeout in seconds.")] = 5.0,
) -> None:
    """Call GET /health and report the server version."""
    server = CLIContext.get_current().config.server
    base_url = url or f"http://{server.host}:{server.port}"
    try:
        with httpx.Client(base_url=base_url, timeout=timeout) as client:
            response = fetch_health(client)
    except (httpx.ConnectError, httpx.TimeoutException) as e:
        exit_with_error(f"Server at {base_url} is unreachable: {e}", ExitCode.IO_ERROR)

    if response.status_code != httpx.codes.OK:
        exit_with_error(
            f"Server at {base_url} returned HTTP {response.status_code}",
            ExitCode.INTERNAL_ERROR,
        )
    body = response.json()
    exit_with_success(
        f"[green]{body.get('status', 'unknown')}[/green] "
        f"reqtrack {body.get('version', '?')} at {base_url}"
    )
