"""Data Transfer Objects (DTOs) for the codeshare-py API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codeshare_py.core.models import AssetDraft


@dataclass
class SaveProjectDTO:
    """DTO for saving a project.

    Attributes:
        code: The document text.
        id: Existing project code. A new one is generated when omitted.
    """

    code: str | None = None
    id: str | None = None


@dataclass
class ProjectSavedDTO:
    """DTO returned after a project is saved.

    Attributes:
        id: The project code, new or existing.
    """

    id: str


@dataclass
class DeleteAssetDTO:
    """DTO for detaching an asset from a project.

    Attributes:
        url: Retrieval URL of the asset to delete.
    """

    url: str


def upload_to_response(project_id: str, draft: AssetDraft) -> dict[str, Any]:
    """Build the upload response: the stored file's draft plus its project code.

    Args:
        project_id: The project the file was uploaded for.
        draft: The stored file description.

    Returns:
        JSON-ready dictionary.
    """
    return {**draft.to_dict(), "projectId": project_id}
