"""Project service providing business logic for project persistence."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from codeshare_py.core.ids import generate_project_id
from codeshare_py.core.models import DEFAULT_PROJECT_TTL, Project
from codeshare_py.exceptions import ProjectNotFoundError

if TYPE_CHECKING:
    from codeshare_py.core.models import Asset
    from codeshare_py.storage.base import AssetStoreProtocol, ProjectStoreProtocol

logger = structlog.get_logger(__name__)


def get_project_ttl() -> timedelta:
    """Project lifetime from ``PROJECT_TTL_DAYS``, defaulting to five days."""
    days = os.environ.get("PROJECT_TTL_DAYS")
    return timedelta(days=int(days)) if days else DEFAULT_PROJECT_TTL


class ProjectService:
    """Service for saving, loading and expiring projects.

    Attributes:
        ttl: How long a saved project lives before it may be cleaned up.
    """

    def __init__(
        self,
        projects: ProjectStoreProtocol,
        assets: AssetStoreProtocol,
        ttl: timedelta = DEFAULT_PROJECT_TTL,
    ) -> None:
        """Initialize the project service.

        Args:
            projects: Project store backend.
            assets: Asset store backend.
            ttl: Project lifetime, renewed on every save.
        """
        self._projects = projects
        self._assets = assets
        self.ttl = ttl

    async def save_project(self, code: str | None, project_id: str | None = None) -> Project:
        """Create or update a project and renew its expiry.

        Args:
            code: The document text.
            project_id: Existing project code. A new one is generated when omitted.

        Returns:
            The saved project.

        Raises:
            StorageError: If the project cannot be saved.
        """
        project = Project(
            id=project_id or generate_project_id(),
            code=code,
            expires_at=datetime.now(UTC) + self.ttl,
        )
        saved = await self._projects.upsert_project(project)
        logger.info("Project saved", project_id=saved.id, new=project_id is None)
        return saved

    async def find_project(self, project_id: str) -> Project | None:
        """Get a project, or None if it does not exist."""
        return await self._projects.get_project(project_id)

    async def get_project(self, project_id: str) -> Project:
        """Get a project that must exist.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        project = await self._projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_assets(self, project_id: str) -> list[Asset]:
        """List the assets attached to a project."""
        return await self._assets.list_assets(project_id)

    async def cleanup_expired(self, now: datetime | None = None) -> int:
        """Delete projects past their expiry.

        Args:
            now: Reference time. Defaults to the current UTC time.

        Returns:
            Number of projects deleted.
        """
        deleted = await self._projects.delete_expired(now or datetime.now(UTC))
        logger.info("Expired projects cleaned up", deleted=deleted)
        return deleted
