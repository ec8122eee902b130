"""Database storage backend for codeshare-py.

This module provides SQLAlchemy-based persistent storage for projects and
their asset metadata.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codeshare_py.storage.db.models import AssetModel, ProjectModel
    from codeshare_py.storage.db.setup import DatabaseManager
    from codeshare_py.storage.db.storage import DatabaseAssetStore, DatabaseProjectStore

__all__ = [
    "AssetModel",
    "DatabaseAssetStore",
    "DatabaseManager",
    "DatabaseProjectStore",
    "ProjectModel",
]


def __getattr__(name: str) -> object:
    """Lazy import database components so importing the package stays cheap."""
    if name in ("DatabaseAssetStore", "DatabaseProjectStore"):
        from codeshare_py.storage.db import storage

        return getattr(storage, name)
    if name in ("AssetModel", "ProjectModel"):
        from codeshare_py.storage.db import models

        return getattr(models, name)
    if name == "DatabaseManager":
        from codeshare_py.storage.db.setup import DatabaseManager

        return DatabaseManager
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
