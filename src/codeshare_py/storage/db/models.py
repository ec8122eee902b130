"""SQLAlchemy models for codeshare-py database storage."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


class ProjectModel(UUIDAuditBase):
    """SQLAlchemy model for Project entities.

    The public project code lives in ``slug``; the UUID primary key from
    ``UUIDAuditBase`` is internal.

    Attributes:
        slug: Short project code used in URLs and WebSocket messages.
        code: Document text.
        expires_at: Expiry timestamp used by the cleanup task.
        assets: Related asset records.
    """

    __tablename__ = "projects"

    slug: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    code: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTimeUTC(), index=True)

    assets: Mapped[list[AssetModel]] = relationship(
        "AssetModel",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )


class AssetModel(UUIDAuditBase):
    """SQLAlchemy model for project assets.

    Attributes:
        project_slug: Foreign key to the owning project's code.
        url: Retrieval URL of the stored file.
        filename: Original upload filename.
        media_type: Declared media type.
        size: Size in bytes.
    """

    __tablename__ = "project_assets"

    project_slug: Mapped[str] = mapped_column(
        ForeignKey("projects.slug", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(String(512), index=True)
    filename: Mapped[str] = mapped_column(String(255))
    media_type: Mapped[str] = mapped_column(String(100))
    size: Mapped[int] = mapped_column(BigInteger)

    project: Mapped[ProjectModel] = relationship("ProjectModel", back_populates="assets")


def project_from_model(model: ProjectModel) -> Any:
    """Convert a ProjectModel to a domain Project.

    Args:
        model: SQLAlchemy ProjectModel instance.

    Returns:
        Domain Project dataclass instance.
    """
    from codeshare_py.core.models import Project

    return Project(id=model.slug, code=model.code, expires_at=model.expires_at)


def asset_from_model(model: AssetModel) -> Any:
    """Convert an AssetModel to a domain Asset.

    Args:
        model: SQLAlchemy AssetModel instance.

    Returns:
        Domain Asset dataclass instance.
    """
    from codeshare_py.core.models import Asset

    return Asset(
        id=model.id,
        project_id=model.project_slug,
        url=model.url,
        filename=model.filename,
        type=model.media_type,
        size=model.size,
        created_at=model.created_at,
    )
