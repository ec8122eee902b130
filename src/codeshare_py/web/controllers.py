"""Litestar controllers for codeshare-py API endpoints."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

import structlog
from litestar import Controller, delete, get, post
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.exceptions import ClientException
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK

from codeshare_py.exceptions import StorageError
from codeshare_py.realtime.assets import AssetSyncCoordinator
from codeshare_py.services.projects import ProjectService
from codeshare_py.storage.base import FileStorageProtocol
from codeshare_py.storage.files import MAX_UPLOAD_BYTES
from codeshare_py.web.dto import DeleteAssetDTO, ProjectSavedDTO, SaveProjectDTO, upload_to_response

logger = structlog.get_logger(__name__)

# Headroom for multipart framing around the largest accepted file
UPLOAD_BODY_LIMIT = MAX_UPLOAD_BYTES + 1024 * 1024


class ProjectController(Controller):
    """Controller for saving and loading projects and their asset lists."""

    tags: ClassVar[list[str]] = ["Projects"]

    @post("/project", status_code=HTTP_200_OK)
    async def save_project(self, data: SaveProjectDTO, project_service: ProjectService) -> ProjectSavedDTO:
        """Create a project or update an existing one.

        Saving renews the project's expiry.

        Args:
            data: The project code and optional existing ID.
            project_service: The project service instance (injected).

        Returns:
            The project ID.

        Raises:
            StorageError: If the project cannot be saved.
        """
        project = await project_service.save_project(data.code, data.id)
        return ProjectSavedDTO(id=project.id)

    @get("/api/project/{project_id:str}")
    async def get_project(self, project_id: str, project_service: ProjectService) -> dict[str, Any]:
        """Load a project.

        Args:
            project_id: The project code.
            project_service: The project service instance (injected).

        Returns:
            The project, or an empty object if it does not exist.
        """
        project = await project_service.find_project(project_id)
        return project.to_dict() if project else {}

    @get("/api/project/{project_id:str}/assets")
    async def list_assets(self, project_id: str, project_service: ProjectService) -> list[dict[str, Any]]:
        """List the assets attached to a project.

        Args:
            project_id: The project code.
            project_service: The project service instance (injected).

        Returns:
            The project's assets, oldest first.
        """
        assets = await project_service.list_assets(project_id)
        return [asset.to_dict() for asset in assets]

    @delete("/api/project/{project_id:str}/assets", status_code=HTTP_200_OK)
    async def delete_asset(
        self,
        project_id: str,
        data: DeleteAssetDTO,
        asset_sync: AssetSyncCoordinator,
        file_storage: FileStorageProtocol,
    ) -> dict[str, bool]:
        """Detach an asset from a project and delete its stored file.

        Connected clients of the project are told about the removal.

        Args:
            project_id: The project code.
            data: The URL of the asset to delete.
            asset_sync: The asset coordinator (injected).
            file_storage: The file storage backend (injected).

        Returns:
            ``{"success": true}`` once the asset is gone.

        Raises:
            StorageError: If the asset store rejects the deletion.
        """
        if not await asset_sync.remove_asset(project_id, data.url):
            msg = "Failed to delete asset"
            raise StorageError(msg)
        await file_storage.delete(data.url)
        return {"success": True}


class UploadController(Controller):
    """Controller accepting file uploads for project assets."""

    path = "/upload"
    tags: ClassVar[list[str]] = ["Uploads"]

    @post(
        "/{project_id:str}",
        status_code=HTTP_200_OK,
        request_max_body_size=UPLOAD_BODY_LIMIT,
        opt={"upload_rate_limited": True},
    )
    async def upload(
        self,
        project_id: str,
        data: Annotated[dict[str, UploadFile], Body(media_type=RequestEncodingType.MULTI_PART)],
        project_service: ProjectService,
        file_storage: FileStorageProtocol,
    ) -> dict[str, Any]:
        """Store an uploaded file for a project.

        The response describes the stored file. It is not attached to the
        project until a client announces it with an ``asset-added`` message.

        Args:
            project_id: The project code.
            data: Multipart form with a ``file`` part.
            project_service: The project service instance (injected).
            file_storage: The file storage backend (injected).

        Returns:
            The stored file's URL, filename, media type, size and project code.

        Raises:
            ClientException: If no file was sent or the project does not exist.
            UploadRejectedError: If the media type or size is not accepted.
        """
        upload = data.get("file")
        if upload is None:
            raise ClientException(detail="No file uploaded or invalid file type")

        media_type = upload.content_type or "application/octet-stream"
        content = await upload.read()
        file_storage.validate(media_type, len(content))

        if await project_service.find_project(project_id) is None:
            raise ClientException(detail="Invalid projectId")

        draft = await file_storage.save(content, upload.filename, media_type)
        logger.info("Asset uploaded", project_id=project_id, url=draft.url, size=draft.size)
        return upload_to_response(project_id, draft)
