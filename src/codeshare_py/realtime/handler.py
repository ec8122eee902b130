"""WebSocket handler for real-time project collaboration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from litestar import Router, WebSocket, websocket

from codeshare_py.realtime.assets import AssetSyncCoordinator
from codeshare_py.realtime.broadcast import Broadcaster
from codeshare_py.realtime.dispatcher import Connection, ProtocolDispatcher
from codeshare_py.realtime.lifecycle import LifecycleManager

if TYPE_CHECKING:
    from codeshare_py.realtime.registry import SessionRegistry
    from codeshare_py.storage.base import AssetStoreProtocol

logger = structlog.get_logger(__name__)


class ProjectWebSocketHandler:
    """Handler for project collaboration WebSocket connections.

    Owns the wiring between the session registry, the broadcaster, the
    lifecycle manager, the asset coordinator and the protocol dispatcher.
    Each connection's messages are handled one at a time, in arrival order.
    """

    def __init__(self, registry: SessionRegistry, asset_store: AssetStoreProtocol) -> None:
        """Initialize the WebSocket handler.

        Args:
            registry: The session registry shared by all connections.
            asset_store: The asset store used for replay and asset changes.
        """
        self.registry = registry
        self.broadcaster = Broadcaster(registry)
        self.lifecycle = LifecycleManager(registry, self.broadcaster, asset_store)
        self.asset_sync = AssetSyncCoordinator(asset_store, self.broadcaster)
        self.dispatcher = ProtocolDispatcher(self.lifecycle, self.broadcaster, self.asset_sync)

    async def handle_connection(self, socket: WebSocket) -> None:
        """Accept a connection and process its messages until it closes.

        Args:
            socket: The WebSocket connection.
        """
        await socket.accept()
        connection = Connection(websocket=socket)

        logger.debug("WebSocket connection accepted")

        try:
            async for message in socket.iter_data():
                await self.dispatcher.dispatch(connection, message)
        except Exception:
            logger.exception("WebSocket error")
        finally:
            await self.dispatcher.disconnect(connection)
            logger.debug("WebSocket connection closed")


def create_websocket_handler(
    path: str,
    registry: SessionRegistry,
    asset_store: AssetStoreProtocol,
) -> tuple[Router, ProjectWebSocketHandler]:
    """Create a WebSocket router for project collaboration.

    Args:
        path: Path the collaboration endpoint is served at.
        registry: The session registry.
        asset_store: The asset store.

    Returns:
        A Litestar Router with the WebSocket handler, and the handler itself
        so HTTP routes can share its asset coordinator.
    """
    handler = ProjectWebSocketHandler(registry, asset_store)

    @websocket(path="/")
    async def project_websocket(socket: WebSocket) -> None:
        """WebSocket endpoint for project collaboration.

        Args:
            socket: The WebSocket connection.
        """
        await handler.handle_connection(socket)

    return Router(path=path, route_handlers=[project_websocket], tags=["WebSocket"]), handler
