"""In-memory storage implementations for codeshare-py."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING

from codeshare_py.core.models import Asset
from codeshare_py.exceptions import ProjectNotFoundError

if TYPE_CHECKING:
    from datetime import datetime

    from codeshare_py.core.models import AssetDraft, Project


class InMemoryProjectStore:
    """Thread-safe in-memory project store.

    Keeps projects in a dictionary guarded by an asyncio lock and hands out
    copies so callers cannot mutate stored state.

    Note:
        All data is lost when the application stops. This store is suitable for
        development, testing, or ephemeral sessions.
    """

    def __init__(self) -> None:
        """Initialize the store with no projects."""
        self._projects: dict[str, Project] = {}
        self._lock = asyncio.Lock()
        self._asset_stores: list[InMemoryAssetStore] = []

    def link_asset_store(self, asset_store: InMemoryAssetStore) -> None:
        """Register an asset store whose rows are dropped with their project."""
        self._asset_stores.append(asset_store)

    async def get_project(self, project_id: str) -> Project | None:
        """Retrieve a copy of a project, or None."""
        async with self._lock:
            project = self._projects.get(project_id)
            return replace(project) if project else None

    async def upsert_project(self, project: Project) -> Project:
        """Store a copy of the project, replacing any existing entry."""
        async with self._lock:
            self._projects[project.id] = replace(project)
            return replace(project)

    async def delete_expired(self, now: datetime) -> int:
        """Drop projects whose expiry is at or before ``now``.

        Assets of the dropped projects are removed from every linked asset
        store, like the cascading foreign key of the database backend.
        """
        async with self._lock:
            expired = [pid for pid, project in self._projects.items() if project.expires_at <= now]
            for project_id in expired:
                del self._projects[project_id]

        for asset_store in self._asset_stores:
            await asset_store.drop_projects(expired)
        return len(expired)


class InMemoryAssetStore:
    """Thread-safe in-memory asset store.

    When constructed with a project store, inserts are rejected for projects
    that do not exist and assets are dropped together with their expired
    project, mirroring the foreign key of the database backend.

    Attributes:
        _assets: Mapping of project ID to its assets in insertion order.
        _lock: Asyncio lock for thread-safe operations.
    """

    def __init__(self, projects: InMemoryProjectStore | None = None) -> None:
        """Initialize the asset store.

        Args:
            projects: Optional project store used to validate project IDs.
        """
        self._assets: dict[str, list[Asset]] = {}
        self._projects = projects
        self._lock = asyncio.Lock()
        if projects is not None:
            projects.link_asset_store(self)

    async def list_assets(self, project_id: str) -> list[Asset]:
        """List copies of a project's assets, oldest first."""
        async with self._lock:
            return [replace(asset) for asset in self._assets.get(project_id, [])]

    async def add_asset(self, project_id: str, draft: AssetDraft) -> Asset:
        """Persist a draft as a new asset.

        Raises:
            ProjectNotFoundError: If a project store is attached and has no such project.
        """
        if self._projects is not None and await self._projects.get_project(project_id) is None:
            raise ProjectNotFoundError(project_id)

        asset = Asset.from_draft(project_id, draft)
        async with self._lock:
            self._assets.setdefault(project_id, []).append(asset)
            return replace(asset)

    async def drop_projects(self, project_ids: list[str]) -> None:
        """Forget every asset of the given projects."""
        async with self._lock:
            for project_id in project_ids:
                self._assets.pop(project_id, None)

    async def remove_asset(self, project_id: str, asset_url: str) -> bool:
        """Delete the assets of a project matching ``asset_url``."""
        async with self._lock:
            assets = self._assets.get(project_id, [])
            remaining = [a for a in assets if a.url != asset_url]
            if len(remaining) == len(assets):
                return False
            self._assets[project_id] = remaining
            return True

