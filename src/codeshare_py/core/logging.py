"""structlog setup and the ASGI middleware that tags codeshare-py log lines.

Every log line written while serving a request carries a correlation ID and
the transport it arrived on. Collaboration sockets are long-lived, so they
are logged once when they end, with how long they stayed open and the close
code, rather than once per frame.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from litestar.types import ASGIApp, Message, Receive, Scope, Send

CORRELATION_HEADER = b"x-correlation-id"
REQUEST_ID_HEADER = b"x-request-id"

# Normal closure, used when a socket ends without an explicit code
WS_CLOSE_NORMAL = 1000


def configure_logging(*, debug: bool = False, json_logs: bool = False) -> None:
    """Install the structlog processor chain.

    Args:
        debug: Log at debug level. Dropped unknown message types, skipped
            deliveries and per-broadcast summaries only show up here.
        json_logs: Render one JSON object per line instead of colored console output.
    """
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.processors.ExceptionPrettyPrinter(), structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_env() -> None:
    """Configure logging from ``CODESHARE_DEBUG`` and ``CODESHARE_JSON_LOGS``.

    Used by the CLI commands and the task consumer, which run outside ``create_app``.
    """
    configure_logging(debug=_env_flag("CODESHARE_DEBUG"), json_logs=_env_flag("CODESHARE_JSON_LOGS"))


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


def _read_correlation_id(scope: Scope) -> str:
    headers = dict(scope.get("headers", []))
    for name in (CORRELATION_HEADER, REQUEST_ID_HEADER):
        value = headers.get(name, b"").decode()
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Binds a correlation ID to every HTTP request and collaboration socket.

    The ID comes from ``X-Correlation-ID``, then ``X-Request-ID``, and is
    generated otherwise. It is put in ``scope["state"]`` for the error
    handlers and bound to the structlog context together with the path and
    transport, so registry, broadcast and asset log lines emitted while a
    socket is served can be traced back to its upgrade request. HTTP
    responses echo it in ``X-Correlation-ID``.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = _read_correlation_id(scope)
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        context = {"correlation_id": correlation_id, "path": scope.get("path", ""), "transport": scope["type"]}
        if scope["type"] == "http":
            context["method"] = scope.get("method", "")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (CORRELATION_HEADER, correlation_id.encode())]
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            structlog.contextvars.clear_contextvars()


class RequestLoggingMiddleware:
    """Writes one access log line per HTTP request or collaboration socket.

    HTTP requests log their status, duration and client address; 5xx at
    error level, 4xx at warning. Health checks and static upload downloads
    are skipped. A socket logs when it ends, with its open duration and the
    close code sent by either side. Sockets that were never accepted are
    not logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        exclude_paths: set[str] | None = None,
        exclude_prefixes: tuple[str, ...] = ("/uploads/",),
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            exclude_paths: Exact paths not to log. Defaults to the health checks.
            exclude_prefixes: Path prefixes not to log. Defaults to served uploads.
        """
        self.app = app
        self.exclude_paths = exclude_paths or {"/health", "/ready", "/favicon.ico"}
        self.exclude_prefixes = exclude_prefixes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        skipped = path in self.exclude_paths or path.startswith(self.exclude_prefixes)

        if scope["type"] == "http" and not skipped:
            await self._serve_http(scope, receive, send)
        elif scope["type"] == "websocket" and not skipped:
            await self._serve_websocket(scope, receive, send)
        else:
            await self.app(scope, receive, send)

    async def _serve_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger = structlog.get_logger(__name__)
        start_time = time.perf_counter()
        status_code = 500
        client_ip = _client_ip(scope)

        async def capture_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, capture_status)
        except Exception:
            logger.exception("Request failed with exception", client_ip=client_ip)
            raise
        finally:
            if status_code >= 500:
                log_method = logger.error
            elif status_code >= 400:
                log_method = logger.warning
            else:
                log_method = logger.info

            log_method(
                "Request completed",
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                client_ip=client_ip,
            )

    async def _serve_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger = structlog.get_logger(__name__)
        accepted_at: float | None = None
        close_code: int | None = None
        closed_by = "client"

        async def watch_send(message: Message) -> None:
            nonlocal accepted_at, close_code, closed_by
            if message["type"] == "websocket.accept":
                accepted_at = time.perf_counter()
            elif message["type"] == "websocket.close" and close_code is None:
                close_code = message.get("code", WS_CLOSE_NORMAL)
                closed_by = "server"
            await send(message)

        async def watch_receive() -> Message:
            nonlocal close_code
            message = await receive()
            if message["type"] == "websocket.disconnect" and close_code is None:
                close_code = message.get("code", WS_CLOSE_NORMAL)
            return message

        try:
            await self.app(scope, watch_receive, watch_send)
        finally:
            if accepted_at is not None:
                logger.info(
                    "WebSocket closed",
                    close_code=close_code,
                    closed_by=closed_by,
                    duration_ms=round((time.perf_counter() - accepted_at) * 1000, 2),
                    client_ip=_client_ip(scope),
                )


def _client_ip(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


def get_middleware() -> list:
    """Get the logging middleware in application order."""
    return [CorrelationIdMiddleware, RequestLoggingMiddleware]
