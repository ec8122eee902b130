"""Main Litestar application for codeshare-py.

This module provides the main application factory and configured app instance
for running codeshare-py as a standalone application.
"""

from __future__ import annotations

import mimetypes
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from advanced_alchemy.extensions.litestar import AlembicAsyncConfig, SQLAlchemyPlugin
from advanced_alchemy.extensions.litestar.plugins.init.config.asyncio import SQLAlchemyAsyncConfig
from litestar import Litestar
from litestar.datastructures import State

from codeshare_py.cli import CodeshareCLIPlugin
from codeshare_py.core.error_handling import get_exception_handlers
from codeshare_py.core.logging import CorrelationIdMiddleware, RequestLoggingMiddleware, configure_logging
from codeshare_py.core.openapi import get_openapi_config
from codeshare_py.core.rate_limit import get_rate_limit_middleware
from codeshare_py.plugin import CodeshareConfig, CodesharePlugin
from codeshare_py.services.projects import get_project_ttl
from codeshare_py.storage.db.setup import DatabaseManager, get_database_url
from codeshare_py.storage.db.storage import DatabaseAssetStore, DatabaseProjectStore
from codeshare_py.web.health import HealthController

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

logger = structlog.get_logger(__name__)

# Slim container images ship an incomplete mimetypes table
mimetypes.add_type("model/gltf-binary", ".glb")
mimetypes.add_type("model/gltf+json", ".gltf")
mimetypes.add_type("image/webp", ".webp")


@asynccontextmanager
async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
    """Application lifespan handler for database setup/teardown.

    Initializes the database on startup and closes connections on shutdown.
    A database that cannot be initialized aborts startup, since the project
    and asset stores are bound to it.
    """
    db_manager: DatabaseManager | None = app.state.get("db_manager")

    if db_manager is not None:
        try:
            await db_manager.init()
        except Exception:
            logger.exception("Failed to initialize database")
            raise
        logger.info("Database initialized", url=db_manager.display_url)

    try:
        yield
    finally:
        if db_manager is not None:
            await db_manager.close()


# SQLAlchemy configuration for the `litestar database` migration commands
sqlalchemy_config = SQLAlchemyAsyncConfig(
    connection_string=get_database_url(),
    alembic_config=AlembicAsyncConfig(
        script_location="src/codeshare_py/storage/db/migrations",
        version_table_name="alembic_version",
    ),
)

sqlalchemy_plugin = SQLAlchemyPlugin(config=sqlalchemy_config)


def create_app(
    *,
    enable_api: bool = True,
    enable_websocket: bool = True,
    use_database: bool = True,
    database_url: str | None = None,
    upload_dir: Path | str | None = None,
    debug: bool = False,
    json_logs: bool = False,
) -> Litestar:
    """Create and configure the Litestar application.

    Args:
        enable_api: Whether to enable the project and upload HTTP routes.
        enable_websocket: Whether to enable the collaboration WebSocket.
        use_database: Persist projects and assets in the database. When False,
            in-memory stores are used and nothing survives a restart.
        database_url: Database URL. Defaults to ``DATABASE_URL`` or a local SQLite file.
        upload_dir: Directory uploads are stored in. Defaults to ``CODESHARE_UPLOAD_DIR``.
        debug: Whether to enable debug mode.
        json_logs: Whether to output logs as JSON (for production).

    Returns:
        Configured Litestar application instance.
    """
    configure_logging(debug=debug, json_logs=json_logs)

    db_manager: DatabaseManager | None = None
    config = CodeshareConfig(
        enable_api=enable_api,
        enable_websocket=enable_websocket,
        upload_dir=upload_dir,
        project_ttl=get_project_ttl(),
    )

    plugins: list = [CodeshareCLIPlugin()]

    if use_database:
        # Stores open a session per call, so they can be bound before init() runs in the lifespan
        db_manager = DatabaseManager(database_url)
        config.project_store = DatabaseProjectStore(db_manager.session)
        config.asset_store = DatabaseAssetStore(db_manager.session)
        plugins.append(sqlalchemy_plugin)

    plugins.append(CodesharePlugin(config))

    middleware: list = [CorrelationIdMiddleware, RequestLoggingMiddleware]

    rate_limit_config = get_rate_limit_middleware()
    if rate_limit_config:
        middleware.append(rate_limit_config.middleware)

    return Litestar(
        route_handlers=[HealthController],
        plugins=plugins,
        debug=debug,
        lifespan=[lifespan],
        state=State({"db_manager": db_manager}),
        middleware=middleware,
        exception_handlers=get_exception_handlers(),
        openapi_config=get_openapi_config(),
    )


def _env_flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


# Default application instance for uvicorn
# Use CODESHARE_DEBUG=true for dev mode, defaults to False (production)
app = create_app(
    use_database=_env_flag("CODESHARE_USE_DATABASE", "true"),
    debug=_env_flag("CODESHARE_DEBUG"),
    json_logs=_env_flag("CODESHARE_JSON_LOGS"),
)
