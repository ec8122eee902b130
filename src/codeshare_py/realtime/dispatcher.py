"""Routing of inbound WebSocket messages to their handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from codeshare_py.exceptions import InvalidMessageError
from codeshare_py.realtime.messages import (
    AssetAddRequest,
    AssetRemoveRequest,
    CursorMessage,
    CursorRequest,
    EditRequest,
    JoinRequest,
    UpdateMessage,
    parse_message,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from litestar import WebSocket

    from codeshare_py.realtime.assets import AssetSyncCoordinator
    from codeshare_py.realtime.broadcast import Broadcaster
    from codeshare_py.realtime.lifecycle import LifecycleManager
    from codeshare_py.realtime.messages import InboundMessage
    from codeshare_py.realtime.registry import Session

logger = structlog.get_logger(__name__)


@dataclass
class Connection:
    """Per-connection state: the socket and every session it has joined.

    A connection may join several times; each join adds an independent session.
    """

    websocket: WebSocket
    sessions: list[Session] = field(default_factory=list)

    def session_for(self, project_id: str) -> Session | None:
        """Most recent session this connection holds in ``project_id``'s room."""
        for session in reversed(self.sessions):
            if session.project_id == project_id:
                return session
        return None


class ProtocolDispatcher:
    """Parses inbound payloads and routes them by message kind.

    Malformed payloads, messages missing required fields and handler
    failures are logged and dropped. None of them closes the connection.
    """

    def __init__(
        self,
        lifecycle: LifecycleManager,
        broadcaster: Broadcaster,
        asset_sync: AssetSyncCoordinator,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            lifecycle: Handles joins and disconnects.
            broadcaster: Relays edits and cursor moves.
            asset_sync: Persists and announces asset changes.
        """
        self._lifecycle = lifecycle
        self._broadcaster = broadcaster
        self._asset_sync = asset_sync
        self._handlers: dict[type[Any], Callable[[Connection, Any], Awaitable[None]]] = {
            JoinRequest: self._handle_join,
            EditRequest: self._handle_edit,
            CursorRequest: self._handle_cursor,
            AssetAddRequest: self._handle_asset_added,
            AssetRemoveRequest: self._handle_asset_removed,
        }

    async def dispatch(self, connection: Connection, raw: str | bytes) -> None:
        """Parse one inbound payload and run its handler.

        Args:
            connection: The connection the payload arrived on.
            raw: The raw frame data.
        """
        try:
            message = parse_message(raw)
        except InvalidMessageError as e:
            logger.warning("Dropping invalid message", reason=e.reason, message_type=e.message_type)
            return

        if message is None:
            logger.debug("Ignoring unknown message type")
            return

        try:
            await self._route(connection, message)
        except Exception:
            logger.exception("Error processing message", message_type=type(message).__name__)

    async def disconnect(self, connection: Connection) -> None:
        """Evict every session held by a closed connection.

        Args:
            connection: The connection that closed.
        """
        sessions, connection.sessions = connection.sessions, []
        for session in sessions:
            try:
                await self._lifecycle.leave(session)
            except Exception:
                logger.exception(
                    "Error handling disconnect",
                    client_id=session.client_id,
                    project_id=session.project_id,
                )

    async def _route(self, connection: Connection, message: InboundMessage) -> None:
        handler = self._handlers[type(message)]
        await handler(connection, message)

    async def _handle_join(self, connection: Connection, message: JoinRequest) -> None:
        await self._lifecycle.join(connection.websocket, message.project_id, on_admitted=connection.sessions.append)

    async def _handle_edit(self, connection: Connection, message: EditRequest) -> None:
        await self._broadcaster.broadcast(
            message.project_id,
            UpdateMessage(changes=message.changes).to_dict(),
            exclude=self._sender(connection, message.project_id),
        )

    async def _handle_cursor(self, connection: Connection, message: CursorRequest) -> None:
        await self._broadcaster.broadcast(
            message.project_id,
            CursorMessage(client_id=message.client_id, cursor_pos=message.cursor_pos).to_dict(),
            exclude=self._sender(connection, message.project_id),
        )

    async def _handle_asset_added(self, connection: Connection, message: AssetAddRequest) -> None:
        await self._asset_sync.add_asset(
            message.project_id,
            message.asset,
            sender=self._sender(connection, message.project_id),
        )

    async def _handle_asset_removed(self, connection: Connection, message: AssetRemoveRequest) -> None:
        await self._asset_sync.remove_asset(
            message.project_id,
            message.asset_url,
            sender=self._sender(connection, message.project_id),
        )

    @staticmethod
    def _sender(connection: Connection, project_id: str) -> Session | None:
        session = connection.session_for(project_id)
        if session is None:
            logger.debug("Message for a project this connection has not joined", project_id=project_id)
        return session
