"""OpenAPI UI plugins for codeshare-py."""

from __future__ import annotations

from litestar.openapi import OpenAPIConfig
from litestar.openapi.plugins import ScalarRenderPlugin, SwaggerRenderPlugin

from codeshare_py import __version__


def get_openapi_plugins() -> list[ScalarRenderPlugin | SwaggerRenderPlugin]:
    """Get the configured OpenAPI UI plugins.

    Returns:
        List of OpenAPI UI plugins with Scalar as primary and Swagger as secondary.

    Endpoints (relative to OpenAPIConfig.path which is /schema):
        - /schema/ - Scalar UI (default)
        - /schema/swagger - Swagger UI
        - /schema/openapi.json - OpenAPI schema
    """
    return [
        ScalarRenderPlugin(path="/"),
        SwaggerRenderPlugin(path="/swagger"),
    ]


def get_openapi_config() -> OpenAPIConfig:
    """Build the OpenAPI configuration for the HTTP routes.

    The collaboration WebSocket protocol is not described by OpenAPI.
    """
    return OpenAPIConfig(
        title="codeshare-py API",
        version=__version__,
        description="Save, load and attach assets to collaboratively edited code projects",
        path="/schema",
        render_plugins=get_openapi_plugins(),
        use_handler_docstrings=True,
    )
