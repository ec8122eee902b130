"""Custom exceptions for codeshare-py."""

from __future__ import annotations


class CodeshareError(Exception):
    """Base exception class for all codeshare-py errors."""


class ProjectNotFoundError(CodeshareError):
    """Raised when a project with the specified ID cannot be found.

    Attributes:
        project_id: The identifier of the project that was not found.
    """

    def __init__(self, project_id: str) -> None:
        """Initialize the exception with the project ID.

        Args:
            project_id: The identifier of the project that was not found.
        """
        self.project_id = project_id
        super().__init__(f"Project with ID {project_id} not found")


class StorageError(CodeshareError):
    """Raised when a storage operation fails."""


class UploadRejectedError(CodeshareError):
    """Raised when an uploaded file is refused (bad media type or too large)."""


class InvalidMessageError(CodeshareError):
    """Raised when an inbound WebSocket payload cannot be parsed or validated.

    Attributes:
        message_type: The ``type`` tag of the payload, if one could be read.
    """

    def __init__(self, reason: str, message_type: str | None = None) -> None:
        """Initialize the exception.

        Args:
            reason: Why the message was rejected.
            message_type: The message kind, when known.
        """
        super().__init__(reason)
        self.reason = reason
        self.message_type = message_type
