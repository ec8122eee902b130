"""Service layer for codeshare-py."""

from codeshare_py.services.projects import ProjectService, get_project_ttl

__all__ = ["ProjectService", "get_project_ttl"]
