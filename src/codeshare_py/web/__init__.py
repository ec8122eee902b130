"""Web layer for codeshare-py API."""

from codeshare_py.web.controllers import ProjectController, UploadController
from codeshare_py.web.router import create_router

__all__ = ["ProjectController", "UploadController", "create_router"]
