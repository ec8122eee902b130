"""Core domain models for codeshare-py projects and assets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

DEFAULT_PROJECT_TTL = timedelta(days=5)


def _require_text(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value:
        msg = f"Field '{key}' must be a non-empty string"
        raise TypeError(msg)
    return value


@dataclass
class Project:
    """A shared document identified by a short code.

    Attributes:
        id: Short opaque identifier (client supplied or generated).
        code: The document text. May be None for a project created without content.
        expires_at: When the project becomes eligible for cleanup.
    """

    id: str
    code: str | None = None
    expires_at: datetime = field(default_factory=lambda: datetime.now(UTC) + DEFAULT_PROJECT_TTL)

    @property
    def is_expired(self) -> bool:
        """Whether the project is past its expiry timestamp."""
        return self.expires_at <= datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "code": self.code,
            "expiresAt": self.expires_at.isoformat(),
        }


@dataclass
class AssetDraft:
    """Client-supplied description of an uploaded file, before it is persisted.

    Attributes:
        url: Retrieval URL produced by the file storage layer.
        filename: Original filename as uploaded.
        type: Declared media type.
        size: Size in bytes.
    """

    url: str
    filename: str
    type: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetDraft:
        """Build a draft from a wire dictionary.

        Raises:
            KeyError: If a required key is missing.
            TypeError: If a text field is not a non-empty string, or ``size`` is
                not an integer.
        """
        url, filename, media_type = (_require_text(data, key) for key in ("url", "filename", "type"))
        size = data["size"]
        # bool is an int subclass
        if isinstance(size, bool) or not isinstance(size, int):
            msg = f"Field 'size' must be an integer, got {type(size).__name__}"
            raise TypeError(msg)
        return cls(url=url, filename=filename, type=media_type, size=size)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "filename": self.filename,
            "type": self.type,
            "size": self.size,
        }


@dataclass
class Asset:
    """A persisted asset attached to a project.

    Attributes:
        project_id: Owning project identifier.
        url: Retrieval URL.
        filename: Original filename.
        type: Media type.
        size: Size in bytes.
        id: Server-assigned identifier.
        created_at: Server-assigned creation time.
    """

    project_id: str
    url: str
    filename: str
    type: str
    size: int
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_draft(cls, project_id: str, draft: AssetDraft) -> Asset:
        """Create an asset record from a draft."""
        return cls(
            project_id=project_id,
            url=draft.url,
            filename=draft.filename,
            type=draft.type,
            size=draft.size,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire format shared by HTTP and WebSocket payloads."""
        return {
            "id": str(self.id),
            "projectId": self.project_id,
            "url": self.url,
            "filename": self.filename,
            "type": self.type,
            "size": self.size,
            "createdAt": self.created_at.isoformat(),
        }
