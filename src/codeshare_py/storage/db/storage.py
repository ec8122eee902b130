"""Database storage implementation for codeshare-py."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from codeshare_py.exceptions import ProjectNotFoundError, StorageError
from codeshare_py.storage.db.models import AssetModel, ProjectModel, asset_from_model, project_from_model

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from codeshare_py.core.models import Asset, AssetDraft, Project

    SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DatabaseProjectStore:
    """Async project store backed by SQLAlchemy.

    Each call opens its own session from ``session_factory`` (typically
    :meth:`DatabaseManager.session`), which commits on success and rolls back
    on error. The store can therefore be shared across WebSocket handlers.

    Attributes:
        _session_factory: Callable returning an async session context manager.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Initialize the store.

        Args:
            session_factory: Callable returning an async session context manager.
        """
        self._session_factory = session_factory

    async def get_project(self, project_id: str) -> Project | None:
        """Retrieve a project by its code.

        Raises:
            StorageError: If the query fails.
        """
        try:
            async with self._session_factory() as session:
                stmt = select(ProjectModel).where(ProjectModel.slug == project_id)
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
                return project_from_model(model) if model is not None else None
        except SQLAlchemyError as e:
            msg = f"Failed to load project {project_id}"
            raise StorageError(msg) from e

    async def upsert_project(self, project: Project) -> Project:
        """Insert a project or update its code and expiry.

        Raises:
            StorageError: If the write fails.
        """
        try:
            async with self._session_factory() as session:
                stmt = select(ProjectModel).where(ProjectModel.slug == project.id)
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
                if model is None:
                    model = ProjectModel(slug=project.id, code=project.code, expires_at=project.expires_at)
                    session.add(model)
                else:
                    model.code = project.code
                    model.expires_at = project.expires_at
                await session.flush()
                return project_from_model(model)
        except SQLAlchemyError as e:
            msg = "Failed to save project"
            raise StorageError(msg) from e

    async def delete_expired(self, now: datetime) -> int:
        """Delete projects past their expiry. Assets cascade at the database level.

        Raises:
            StorageError: If the delete fails.
        """
        try:
            async with self._session_factory() as session:
                stmt = delete(ProjectModel).where(ProjectModel.expires_at <= now)
                result = await session.execute(stmt)
                return result.rowcount or 0
        except SQLAlchemyError as e:
            msg = "Failed to delete expired projects"
            raise StorageError(msg) from e


class DatabaseAssetStore:
    """Async asset store backed by SQLAlchemy.

    Attributes:
        _session_factory: Callable returning an async session context manager.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Initialize the store.

        Args:
            session_factory: Callable returning an async session context manager.
        """
        self._session_factory = session_factory

    async def list_assets(self, project_id: str) -> list[Asset]:
        """List a project's assets ordered by creation time.

        Raises:
            StorageError: If the query fails.
        """
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(AssetModel)
                    .where(AssetModel.project_slug == project_id)
                    .order_by(AssetModel.created_at)
                )
                result = await session.execute(stmt)
                return [asset_from_model(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            msg = f"Failed to list assets for project {project_id}"
            raise StorageError(msg) from e

    async def add_asset(self, project_id: str, draft: AssetDraft) -> Asset:
        """Insert a new asset row.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            StorageError: If the insert fails.
        """
        try:
            async with self._session_factory() as session:
                exists = await session.execute(select(ProjectModel.id).where(ProjectModel.slug == project_id))
                if exists.scalar_one_or_none() is None:
                    raise ProjectNotFoundError(project_id)

                model = AssetModel(
                    project_slug=project_id,
                    url=draft.url,
                    filename=draft.filename,
                    media_type=draft.type,
                    size=draft.size,
                )
                session.add(model)
                await session.flush()
                await session.refresh(model)
                return asset_from_model(model)
        except SQLAlchemyError as e:
            msg = f"Failed to add asset to project {project_id}"
            raise StorageError(msg) from e

    async def remove_asset(self, project_id: str, asset_url: str) -> bool:
        """Delete assets of a project matching ``asset_url``.

        Raises:
            StorageError: If the delete fails.
        """
        try:
            async with self._session_factory() as session:
                stmt = delete(AssetModel).where(
                    AssetModel.project_slug == project_id,
                    AssetModel.url == asset_url,
                )
                result = await session.execute(stmt)
                return bool(result.rowcount)
        except SQLAlchemyError as e:
            msg = f"Failed to remove asset from project {project_id}"
            raise StorageError(msg) from e
