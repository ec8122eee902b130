"""Rate limiting configuration for codeshare-py.

Uses Litestar's built-in RateLimitMiddleware to cap uploads per client.
Only route handlers marked with ``opt={"upload_rate_limited": True}`` are
counted; the collaboration WebSocket and project routes are never limited.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from litestar.middleware.rate_limit import RateLimitConfig

if TYPE_CHECKING:
    from litestar.connection import ASGIConnection

TimeUnit = Literal["second", "minute", "hour", "day"]

UPLOAD_RATE_LIMIT_OPT = "upload_rate_limited"


@dataclass
class RateLimitSettings:
    """Rate limiting configuration settings.

    Attributes:
        enabled: Whether rate limiting is enabled.
        uploads_per_hour: Uploads a single client may make per hour.
    """

    enabled: bool = True
    uploads_per_hour: int = 100

    @classmethod
    def from_env(cls) -> RateLimitSettings:
        """Create settings from environment variables.

        Environment variables:
            RATE_LIMIT_ENABLED: Set to "false" to disable rate limiting.
            RATE_LIMIT_UPLOADS_PER_HOUR: Uploads per client per hour (default: 100).

        Returns:
            RateLimitSettings configured from environment.
        """
        return cls(
            enabled=os.environ.get("RATE_LIMIT_ENABLED", "true").lower() != "false",
            uploads_per_hour=int(os.environ.get("RATE_LIMIT_UPLOADS_PER_HOUR", "100")),
        )


def is_upload_route(connection: ASGIConnection) -> bool:
    """Return True when the matched route handler is an upload endpoint.

    Used as the middleware's throttle check, so every other route passes
    through unthrottled.
    """
    route_handler = connection.scope.get("route_handler")
    if route_handler is None:
        return False
    return bool(route_handler.opt.get(UPLOAD_RATE_LIMIT_OPT))


def create_rate_limit_config(
    settings: RateLimitSettings | None = None,
) -> RateLimitConfig:
    """Create rate limit configuration.

    Args:
        settings: Rate limit settings. If None, loads from environment.

    Returns:
        Configured RateLimitConfig middleware.
    """
    if settings is None:
        settings = RateLimitSettings.from_env()

    return RateLimitConfig(
        rate_limit=("hour", settings.uploads_per_hour),
        check_throttle_handler=is_upload_route,
        exclude_opt_key="exclude_from_rate_limit",
    )


def get_rate_limit_middleware(
    settings: RateLimitSettings | None = None,
) -> RateLimitConfig | None:
    """Get rate limit middleware if enabled.

    Args:
        settings: Rate limit settings. If None, loads from environment.

    Returns:
        RateLimitConfig if rate limiting is enabled, None otherwise.
    """
    if settings is None:
        settings = RateLimitSettings.from_env()

    if not settings.enabled:
        return None

    return create_rate_limit_config(settings)
