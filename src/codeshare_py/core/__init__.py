"""Core domain models for codeshare-py."""

from codeshare_py.core.ids import generate_client_id, generate_project_id, generate_upload_name
from codeshare_py.core.models import DEFAULT_PROJECT_TTL, Asset, AssetDraft, Project

__all__ = [
    "DEFAULT_PROJECT_TTL",
    "Asset",
    "AssetDraft",
    "Project",
    "generate_client_id",
    "generate_project_id",
    "generate_upload_name",
]
