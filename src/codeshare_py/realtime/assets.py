"""Persist-then-broadcast coordination for project asset changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from codeshare_py.realtime.messages import AssetAddedMessage, AssetRemovedMessage

if TYPE_CHECKING:
    from codeshare_py.core.models import Asset, AssetDraft
    from codeshare_py.realtime.broadcast import Broadcaster
    from codeshare_py.realtime.registry import Session
    from codeshare_py.storage.base import AssetStoreProtocol

logger = structlog.get_logger(__name__)


class AssetSyncCoordinator:
    """Writes asset mutations to the asset store before announcing them.

    Other clients never see an asset the store has not recorded, or a
    removal the store has not applied. Store failures are logged and
    swallowed; the requesting client gets no error message.
    """

    def __init__(self, asset_store: AssetStoreProtocol, broadcaster: Broadcaster) -> None:
        """Initialize the coordinator.

        Args:
            asset_store: The asset store to persist into.
            broadcaster: Used to announce successful changes.
        """
        self._store = asset_store
        self._broadcaster = broadcaster

    async def add_asset(
        self,
        project_id: str,
        draft: AssetDraft,
        sender: Session | None = None,
    ) -> Asset | None:
        """Persist a new asset, then announce it to the room.

        Args:
            project_id: The owning project.
            draft: The client-supplied asset description.
            sender: The requesting session, excluded from the announcement.

        Returns:
            The persisted asset, or None if the store rejected it.
        """
        try:
            asset = await self._store.add_asset(project_id, draft)
        except Exception:
            logger.exception("Error handling asset addition", project_id=project_id, url=draft.url)
            return None

        await self._broadcaster.broadcast(project_id, AssetAddedMessage(asset=asset).to_dict(), exclude=sender)
        logger.info("Asset added", project_id=project_id, asset_id=str(asset.id), url=asset.url)
        return asset

    async def remove_asset(
        self,
        project_id: str,
        asset_url: str,
        sender: Session | None = None,
    ) -> bool:
        """Delete an asset, then announce the removal to the room.

        Args:
            project_id: The owning project.
            asset_url: URL of the asset to remove.
            sender: The requesting session, excluded from the announcement.

        Returns:
            True if the store applied the deletion and it was announced.
        """
        try:
            await self._store.remove_asset(project_id, asset_url)
        except Exception:
            logger.exception("Error handling asset removal", project_id=project_id, url=asset_url)
            return False

        await self._broadcaster.broadcast(
            project_id,
            AssetRemovedMessage(asset_url=asset_url).to_dict(),
            exclude=sender,
        )
        logger.info("Asset removed", project_id=project_id, url=asset_url)
        return True
