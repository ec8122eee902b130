"""Litestar plugin for codeshare-py integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from codeshare_py.core.models import DEFAULT_PROJECT_TTL
from codeshare_py.realtime.handler import ProjectWebSocketHandler, create_websocket_handler
from codeshare_py.realtime.registry import SessionRegistry
from codeshare_py.services.projects import ProjectService
from codeshare_py.storage.files import LocalFileStorage
from codeshare_py.storage.memory import InMemoryAssetStore, InMemoryProjectStore
from codeshare_py.web.router import create_router

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from codeshare_py.storage.base import AssetStoreProtocol, FileStorageProtocol, ProjectStoreProtocol


@dataclass
class CodeshareConfig:
    """Configuration for the Codeshare plugin.

    Attributes:
        project_store: Project persistence backend. If None, an in-memory
            store is used.
        asset_store: Asset metadata backend. If None, an in-memory store bound
            to the project store is used.
        file_storage: Upload storage. If None, a LocalFileStorage writing to
            ``upload_dir`` is used.
        registry: Optional pre-built SessionRegistry. If None, a new one is
            created.
        enable_api: Whether to mount the HTTP project/upload routes.
        enable_websocket: Whether to mount the collaboration WebSocket.
        serve_uploads: Whether to serve stored uploads as static files.
        api_path: Base path for the HTTP routes.
        ws_path: Path of the collaboration WebSocket.
        uploads_path: URL prefix stored uploads are served from.
        upload_dir: Directory uploads are written to. Defaults to
            ``CODESHARE_UPLOAD_DIR`` or ``public/uploads``.
        project_ttl: Lifetime of a saved project.

    Example:
        >>> config = CodeshareConfig(ws_path="/collab", project_ttl=timedelta(days=1))
    """

    project_store: ProjectStoreProtocol | None = None
    asset_store: AssetStoreProtocol | None = None
    file_storage: FileStorageProtocol | None = None
    registry: SessionRegistry | None = field(default=None)
    enable_api: bool = True
    enable_websocket: bool = True
    serve_uploads: bool = True
    api_path: str = "/"
    ws_path: str = "/ws"
    uploads_path: str = "/uploads"
    upload_dir: Path | str | None = None
    project_ttl: timedelta = DEFAULT_PROJECT_TTL


class CodesharePlugin(InitPluginProtocol):
    """Litestar plugin wiring the collaboration core into an application.

    Builds the stores, the session registry and the WebSocket handler once
    per application, registers them for dependency injection, and mounts the
    HTTP routes, the WebSocket endpoint and the upload file server.

    Example:
        >>> from litestar import Litestar
        >>> from codeshare_py import CodesharePlugin, CodeshareConfig
        >>>
        >>> app = Litestar(plugins=[CodesharePlugin(CodeshareConfig())])

    Attributes:
        _config: The plugin configuration.
        _registry: The session registry (None until on_app_init).
        _ws_handler: The WebSocket handler (None until on_app_init).
        _project_service: The project service (None until on_app_init).
        _file_storage: The upload storage (None until on_app_init).
    """

    def __init__(self, config: CodeshareConfig | None = None) -> None:
        """Initialize the plugin with optional configuration.

        Args:
            config: Plugin configuration. If None, CodeshareConfig with default
                values will be used.
        """
        self._config = config or CodeshareConfig()
        self._registry: SessionRegistry | None = None
        self._ws_handler: ProjectWebSocketHandler | None = None
        self._project_service: ProjectService | None = None
        self._file_storage: FileStorageProtocol | None = None

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Build services and register routes during application startup.

        Args:
            app_config: The Litestar application configuration object.

        Returns:
            The modified application configuration.
        """
        config = self._config

        project_store = config.project_store
        asset_store = config.asset_store
        if project_store is None:
            project_store = InMemoryProjectStore()
            if asset_store is None:
                asset_store = InMemoryAssetStore(project_store)
        if asset_store is None:
            asset_store = InMemoryAssetStore()

        self._file_storage = config.file_storage or LocalFileStorage(
            directory=config.upload_dir,
            url_prefix=config.uploads_path,
        )
        self._project_service = ProjectService(project_store, asset_store, ttl=config.project_ttl)
        self._registry = config.registry or SessionRegistry()

        if config.enable_websocket:
            ws_router, self._ws_handler = create_websocket_handler(
                path=config.ws_path,
                registry=self._registry,
                asset_store=asset_store,
            )
            app_config.route_handlers.append(ws_router)
        else:
            self._ws_handler = ProjectWebSocketHandler(self._registry, asset_store)

        app_config.dependencies["project_service"] = Provide(lambda: self.project_service, sync_to_thread=False)
        app_config.dependencies["registry"] = Provide(lambda: self.registry, sync_to_thread=False)
        app_config.dependencies["asset_sync"] = Provide(lambda: self.ws_handler.asset_sync, sync_to_thread=False)
        app_config.dependencies["file_storage"] = Provide(lambda: self.file_storage, sync_to_thread=False)

        if config.enable_api:
            app_config.route_handlers.append(create_router(path=config.api_path))

        if config.serve_uploads and isinstance(self._file_storage, LocalFileStorage):
            from litestar.static_files import create_static_files_router

            self._file_storage.directory.mkdir(parents=True, exist_ok=True)
            app_config.route_handlers.append(
                create_static_files_router(
                    path=config.uploads_path,
                    directories=[self._file_storage.directory],
                    name="uploads",
                )
            )

        return app_config

    @property
    def registry(self) -> SessionRegistry:
        """Get the session registry.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._registry is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._registry

    @property
    def ws_handler(self) -> ProjectWebSocketHandler:
        """Get the WebSocket handler, which owns the broadcaster and asset coordinator.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._ws_handler is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._ws_handler

    @property
    def project_service(self) -> ProjectService:
        """Get the project service.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._project_service is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._project_service

    @property
    def file_storage(self) -> FileStorageProtocol:
        """Get the upload storage.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._file_storage is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._file_storage
