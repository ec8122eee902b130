"""Storage backends for codeshare-py."""

from __future__ import annotations

from typing import TYPE_CHECKING

from codeshare_py.storage.base import AssetStoreProtocol, FileStorageProtocol, ProjectStoreProtocol
from codeshare_py.storage.files import LocalFileStorage
from codeshare_py.storage.memory import InMemoryAssetStore, InMemoryProjectStore

if TYPE_CHECKING:
    from codeshare_py.storage.db import DatabaseAssetStore, DatabaseProjectStore

__all__ = [
    "AssetStoreProtocol",
    "DatabaseAssetStore",
    "DatabaseProjectStore",
    "FileStorageProtocol",
    "InMemoryAssetStore",
    "InMemoryProjectStore",
    "LocalFileStorage",
    "ProjectStoreProtocol",
]


def __getattr__(name: str) -> object:
    """Lazy import the database stores."""
    if name in ("DatabaseAssetStore", "DatabaseProjectStore"):
        from codeshare_py.storage import db

        return getattr(db, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
