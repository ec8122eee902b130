"""Codeshare-py: A Litestar backend for real-time collaborative code editing.

Multiple browser clients edit a shared document ("project") and see each
other's edits, cursor moves and attached media assets in near real time.
The package provides the collaboration core (session registry, per-project
broadcast rooms and the WebSocket message protocol), project and asset
storage backends, the HTTP routes for saving projects and uploading files,
and a Litestar plugin that wires everything together.

Key Components:
    - Core Models: Project, Asset, AssetDraft
    - Storage: in-memory and database project/asset stores, LocalFileStorage
    - Services: ProjectService (project persistence and expiry)
    - Realtime: SessionRegistry, Broadcaster, LifecycleManager,
      AssetSyncCoordinator, ProtocolDispatcher
    - Plugin: CodesharePlugin for Litestar integration

Quick Start:
    >>> from litestar import Litestar
    >>> from codeshare_py import CodesharePlugin, CodeshareConfig
    >>>
    >>> app = Litestar(
    ...     plugins=[CodesharePlugin(CodeshareConfig())],
    ... )

Advanced Usage:
    >>> from codeshare_py import (
    ...     CodesharePlugin,
    ...     CodeshareConfig,
    ...     InMemoryProjectStore,
    ...     SessionRegistry,
    ... )
    >>>
    >>> registry = SessionRegistry()
    >>> config = CodeshareConfig(
    ...     project_store=InMemoryProjectStore(),
    ...     registry=registry,
    ...     ws_path="/collab",
    ... )
    >>> app = Litestar(plugins=[CodesharePlugin(config)])
"""

from __future__ import annotations

__version__ = "0.1.0"

from codeshare_py.core import Asset, AssetDraft, Project
from codeshare_py.exceptions import (
    CodeshareError,
    InvalidMessageError,
    ProjectNotFoundError,
    StorageError,
    UploadRejectedError,
)
from codeshare_py.plugin import CodeshareConfig, CodesharePlugin
from codeshare_py.realtime import (
    AssetSyncCoordinator,
    Broadcaster,
    LifecycleManager,
    MessageType,
    ProjectWebSocketHandler,
    ProtocolDispatcher,
    Session,
    SessionRegistry,
    create_websocket_handler,
)
from codeshare_py.services import ProjectService
from codeshare_py.storage import (
    AssetStoreProtocol,
    FileStorageProtocol,
    InMemoryAssetStore,
    InMemoryProjectStore,
    LocalFileStorage,
    ProjectStoreProtocol,
)
from codeshare_py.web import ProjectController, UploadController, create_router

__all__ = [
    "Asset",
    "AssetDraft",
    "AssetStoreProtocol",
    "AssetSyncCoordinator",
    "Broadcaster",
    "CodeshareConfig",
    "CodeshareError",
    "CodesharePlugin",
    "FileStorageProtocol",
    "InMemoryAssetStore",
    "InMemoryProjectStore",
    "InvalidMessageError",
    "LifecycleManager",
    "LocalFileStorage",
    "MessageType",
    "Project",
    "ProjectController",
    "ProjectNotFoundError",
    "ProjectService",
    "ProjectStoreProtocol",
    "ProjectWebSocketHandler",
    "ProtocolDispatcher",
    "Session",
    "SessionRegistry",
    "StorageError",
    "UploadController",
    "UploadRejectedError",
    "create_router",
    "create_websocket_handler",
]
