# pyright: reportAny=false
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from reqtrack.config import Config
from reqtrack.mcp import McpHandler
from reqtrack.server._errors import install_error_handlers
from reqtrack.server._routes import api_router, auth_router, health_router
from reqtrack.services import Services
from reqtrack.store import Store
from reqtrack.utils import create_security_logger, create_server_logger, package_version

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


def create_app(config: Config | None = None) -> FastAPI:
    """Build the HTTP application.

    The service container is wired immediately so configuration errors surface
    before the server binds. The database schema is created on startup.

    Args:
        config: Effective configuration. Loaded from the usual sources when None.

    Returns:
        The FastAPI application.

    Raises:
        ConfigError: If ``auth.secret`` is unset or too short.
    """
    config = config or Config.load()
    logging_config = config.logging
    logger = create_server_logger(
        level=logging_config.level.value,
        log_format=logging_config.format.value,
        log_file=logging_config.file,
    )
    security_logger = create_security_logger(
        level=logging_config.level.value,
        log_format=logging_config.format.value,
        log_file=logging_config.file,
    )
    store = Store(config.database.path, logger=logger)
    services = Services.build(
        config, logger=logger, security_logger=security_logger, store=store
    )
    version = package_version()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Initialize the store and expose the services on app state.

        Args:
            app: The FastAPI application.

        Yields:
            None
        """
        store.initialize()
        app.state.services = services
        app.state.mcp = McpHandler(services, version=version, logger=logger)
        logger.info(
            "server_started",
            version=version,
            database=config.database.path,
        )
        yield
        logger.info("server_stopped")

    app = FastAPI(
        title="reqtrack",
        version=version,
        docs_url=None,
        redoc_url="/api-docs",
        lifespan=lifespan,
    )
    install_error_handlers(app, logger)
    app.include_router(router=health_router)
    app.include_router(router=auth_router)
    app.include_router(router=api_router)
    return app
