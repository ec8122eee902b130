"""Local filesystem storage for uploaded project assets."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import structlog

from codeshare_py.core.ids import generate_upload_name
from codeshare_py.core.models import AssetDraft
from codeshare_py.exceptions import UploadRejectedError

logger = structlog.get_logger(__name__)

# Media type -> stored file extension
ALLOWED_MEDIA_TYPES: dict[str, str] = {
    "image/jpeg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "application/pdf": "pdf",
    "application/zip": "zip",
    "application/octet-stream": "glb",
    "model/gltf+json": "gltf",
    "text/plain": "txt",
    "text/csv": "csv",
    "text/javascript": "js",
}

MAX_UPLOAD_BYTES = 40 * 1024 * 1024


def get_upload_directory() -> Path:
    """Get the upload directory from ``CODESHARE_UPLOAD_DIR`` or default to ./public/uploads."""
    return Path(os.environ.get("CODESHARE_UPLOAD_DIR", "public/uploads"))


class LocalFileStorage:
    """Stores uploads on the local filesystem and serves them under a URL prefix.

    Attributes:
        directory: Directory that receives uploaded files.
        url_prefix: Public path prefix the files are served from.
        max_bytes: Maximum accepted upload size.
    """

    def __init__(
        self,
        directory: Path | str | None = None,
        url_prefix: str = "/uploads",
        max_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        """Initialize the file storage.

        Args:
            directory: Target directory. Defaults to :func:`get_upload_directory`.
            url_prefix: Public URL prefix for stored files.
            max_bytes: Maximum accepted upload size in bytes.
        """
        self.directory = Path(directory) if directory is not None else get_upload_directory()
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def validate(self, media_type: str, size: int) -> None:
        """Reject uploads with a disallowed media type or an oversized body.

        Raises:
            UploadRejectedError: If the upload is not accepted.
        """
        if media_type not in ALLOWED_MEDIA_TYPES:
            allowed = ", ".join(ALLOWED_MEDIA_TYPES)
            msg = f"Invalid file type. Allowed: {allowed}"
            raise UploadRejectedError(msg)
        if size > self.max_bytes:
            msg = f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB"
            raise UploadRejectedError(msg)

    async def save(self, content: bytes, filename: str, media_type: str) -> AssetDraft:
        """Validate and write an upload to disk.

        Args:
            content: The file bytes.
            filename: Original filename, kept only as metadata.
            media_type: Declared media type.

        Returns:
            Draft describing the stored file.

        Raises:
            UploadRejectedError: If the upload is not accepted.
        """
        self.validate(media_type, len(content))

        stored_name = generate_upload_name(ALLOWED_MEDIA_TYPES[media_type])
        target = self.directory / stored_name
        await asyncio.to_thread(self._write, target, content)

        logger.info(
            "Upload stored",
            stored_name=stored_name,
            original_filename=filename,
            media_type=media_type,
            size=len(content),
        )
        return AssetDraft(
            url=f"{self.url_prefix}/{stored_name}",
            filename=filename,
            type=media_type,
            size=len(content),
        )

    async def delete(self, url: str) -> bool:
        """Delete the file behind a URL produced by :meth:`save`."""
        # basename only, so a crafted URL cannot escape the upload directory
        target = self.directory / Path(url).name
        removed = await asyncio.to_thread(self._unlink, target)
        if not removed:
            logger.warning("Stored file missing on delete", url=url)
        return removed

    def _write(self, target: Path, content: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    @staticmethod
    def _unlink(target: Path) -> bool:
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True
