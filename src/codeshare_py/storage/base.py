"""Storage protocol definitions for codeshare-py."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from codeshare_py.core.models import Asset, AssetDraft, Project


@runtime_checkable
class ProjectStoreProtocol(Protocol):
    """Persistence contract for projects (document text and expiry)."""

    async def get_project(self, project_id: str) -> Project | None:
        """Retrieve a project by its ID.

        Args:
            project_id: The project code.

        Returns:
            The project if found, None otherwise.

        Raises:
            StorageError: If the retrieval operation fails.
        """
        ...

    async def upsert_project(self, project: Project) -> Project:
        """Insert a project or replace the code and expiry of an existing one.

        Args:
            project: The project to save.

        Returns:
            The stored project.

        Raises:
            StorageError: If the write fails.
        """
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete every project whose expiry is at or before ``now``.

        Args:
            now: The reference time.

        Returns:
            Number of projects deleted.
        """
        ...


@runtime_checkable
class AssetStoreProtocol(Protocol):
    """Persistence contract for asset metadata keyed by project."""

    async def list_assets(self, project_id: str) -> list[Asset]:
        """List the assets of a project, oldest first.

        Args:
            project_id: The project code.

        Returns:
            The project's assets, possibly empty.

        Raises:
            StorageError: If the list operation fails.
        """
        ...

    async def add_asset(self, project_id: str, draft: AssetDraft) -> Asset:
        """Persist a new asset for a project.

        Args:
            project_id: The project code.
            draft: The client-supplied asset description.

        Returns:
            The persisted asset with server-assigned ``id`` and ``created_at``.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            StorageError: If the insert fails.
        """
        ...

    async def remove_asset(self, project_id: str, asset_url: str) -> bool:
        """Delete an asset by its URL.

        Args:
            project_id: The project code.
            asset_url: The asset's retrieval URL.

        Returns:
            True if an asset was deleted, False if none matched.

        Raises:
            StorageError: If the delete fails.
        """
        ...


@runtime_checkable
class FileStorageProtocol(Protocol):
    """Contract for the binary file storage backing uploads."""

    def validate(self, media_type: str, size: int) -> None:
        """Check an upload before it is stored.

        Raises:
            UploadRejectedError: If the media type or size is not accepted.
        """
        ...

    async def save(self, content: bytes, filename: str, media_type: str) -> AssetDraft:
        """Store an upload and describe it.

        Args:
            content: The file bytes.
            filename: The original filename.
            media_type: The declared media type.

        Returns:
            A draft holding the retrievable URL, filename, media type and size.
        """
        ...

    async def delete(self, url: str) -> bool:
        """Delete a previously stored file by its URL.

        Returns:
            True if a file was removed.
        """
        ...
