"""Initial schema for projects and project assets.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from advanced_alchemy.types import GUID, DateTimeUTC
from alembic import op

if TYPE_CHECKING:
    from collections.abc import Sequence

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create projects and project_assets tables."""
    op.create_table(
        "projects",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("slug", sa.String(10), nullable=False),
        sa.Column("code", sa.Text(), nullable=True),
        sa.Column("expires_at", DateTimeUTC(), nullable=False),
        sa.Column("sa_orm_sentinel", sa.Integer(), nullable=True),
        sa.Column("created_at", DateTimeUTC(), nullable=False),
        sa.Column("updated_at", DateTimeUTC(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_slug", "projects", ["slug"], unique=True)
    op.create_index("ix_projects_expires_at", "projects", ["expires_at"])

    op.create_table(
        "project_assets",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("project_slug", sa.String(10), nullable=False),
        sa.Column("url", sa.String(512), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("media_type", sa.String(100), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("sa_orm_sentinel", sa.Integer(), nullable=True),
        sa.Column("created_at", DateTimeUTC(), nullable=False),
        sa.Column("updated_at", DateTimeUTC(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_slug"], ["projects.slug"], ondelete="CASCADE"),
    )
    op.create_index("ix_project_assets_project_slug", "project_assets", ["project_slug"])
    op.create_index("ix_project_assets_url", "project_assets", ["url"])


def downgrade() -> None:
    """Drop project_assets and projects tables."""
    op.drop_index("ix_project_assets_url", "project_assets")
    op.drop_index("ix_project_assets_project_slug", "project_assets")
    op.drop_table("project_assets")
    op.drop_index("ix_projects_expires_at", "projects")
    op.drop_index("ix_projects_slug", "projects")
    op.drop_table("projects")
