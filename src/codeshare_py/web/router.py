"""Router configuration for the codeshare-py HTTP API."""

from __future__ import annotations

from litestar import Router

from codeshare_py.web.controllers import ProjectController, UploadController


def create_router(path: str = "/") -> Router:
    """Create the codeshare-py API router.

    Routes keep the paths the browser client already uses (``/project``,
    ``/api/project/...``, ``/upload/...``) relative to ``path``.

    Args:
        path: The base path for all API routes. Defaults to "/".

    Returns:
        A configured Litestar Router instance.
    """
    return Router(
        path=path,
        route_handlers=[ProjectController, UploadController],
    )
