"""Join and disconnect handling for project rooms."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from codeshare_py.realtime.messages import AssetsMessage, InitMessage, UserLeftMessage

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import WebSocket

    from codeshare_py.realtime.broadcast import Broadcaster
    from codeshare_py.realtime.registry import Session, SessionRegistry
    from codeshare_py.storage.base import AssetStoreProtocol

logger = structlog.get_logger(__name__)


class LifecycleManager:
    """Admits sessions into rooms and evicts them on disconnect."""

    def __init__(
        self,
        registry: SessionRegistry,
        broadcaster: Broadcaster,
        asset_store: AssetStoreProtocol,
    ) -> None:
        """Initialize the lifecycle manager.

        Args:
            registry: The session registry.
            broadcaster: Used for the init/assets replies and departure notices.
            asset_store: Source of the asset list replayed on join.
        """
        self._registry = registry
        self._broadcaster = broadcaster
        self._assets = asset_store

    async def join(
        self,
        websocket: WebSocket,
        project_id: str,
        on_admitted: Callable[[Session], None] | None = None,
    ) -> Session:
        """Admit a connection into a project room.

        Sends ``init`` with the new client ID, then replays the project's
        assets to the new session only, and only when there are any. A failing
        asset store does not fail the join.

        Args:
            websocket: The client's connection.
            project_id: The project being joined.
            on_admitted: Called with the session as soon as it is registered,
                before anything is awaited, so the caller can track it even if
                the join is cancelled while replying.

        Returns:
            The admitted session.
        """
        session = await self._registry.admit(project_id, websocket)
        if on_admitted is not None:
            on_admitted(session)
        await self._broadcaster.send_to(session, InitMessage(client_id=session.client_id).to_dict())

        try:
            assets = await self._assets.list_assets(project_id)
        except Exception:
            logger.exception(
                "Error loading assets for join",
                client_id=session.client_id,
                project_id=project_id,
            )
            return session

        if assets:
            await self._broadcaster.send_to(session, AssetsMessage(assets=assets).to_dict())

        logger.info(
            "Client joined project",
            client_id=session.client_id,
            project_id=project_id,
            replayed_assets=len(assets),
        )
        return session

    async def leave(self, session: Session) -> None:
        """Evict a session and tell the rest of its room.

        Args:
            session: The departing session.
        """
        client_id = session.client_id
        project_id = session.project_id

        if not await self._registry.remove(session):
            return

        await self._broadcaster.broadcast(project_id, UserLeftMessage(client_id=client_id).to_dict())

        logger.info("Client left project", client_id=client_id, project_id=project_id)
