"""Tests for rate limiting, error responses, logging middleware, cleanup and the CLI."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog
from click.testing import CliRunner
from litestar import Litestar
from litestar.testing import TestClient
from structlog.testing import capture_logs

from codeshare_py.core.error_handling import ErrorDetail, ErrorResponse
from codeshare_py.core.logging import CorrelationIdMiddleware, RequestLoggingMiddleware, get_middleware
from codeshare_py.core.models import Project
from codeshare_py.core.rate_limit import (
    RateLimitSettings,
    get_rate_limit_middleware,
    is_upload_route,
)
from codeshare_py.plugin import CodeshareConfig, CodesharePlugin
from codeshare_py.web.health import HealthController


def connection_for(opt: dict | None) -> MagicMock:
    """Build a connection whose scope matched a handler with the given opt."""
    connection = MagicMock()
    connection.scope = {} if opt is None else {"route_handler": MagicMock(opt=opt)}
    return connection


class TestRateLimit:
    """Tests for upload rate limiting."""

    def test_only_upload_routes_are_throttled(self) -> None:
        """Test the throttle check against route handler options."""
        assert is_upload_route(connection_for({"upload_rate_limited": True}))
        assert not is_upload_route(connection_for({}))
        assert not is_upload_route(connection_for(None))

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test reading rate limit settings from the environment."""
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
        monkeypatch.setenv("RATE_LIMIT_UPLOADS_PER_HOUR", "7")

        settings = RateLimitSettings.from_env()
        assert settings == RateLimitSettings(enabled=False, uploads_per_hour=7)

    def test_disabled_returns_no_middleware(self) -> None:
        """Test that disabling rate limiting removes the middleware."""
        assert get_rate_limit_middleware(RateLimitSettings(enabled=False)) is None

    def test_enabled_config(self) -> None:
        """Test the configured window and limit."""
        config = get_rate_limit_middleware(RateLimitSettings(uploads_per_hour=3))
        assert config is not None
        assert config.rate_limit == ("hour", 3)


class TestErrorResponse:
    """Tests for the JSON error body."""

    def test_minimal_body(self) -> None:
        """Test that the message is exposed under ``error``."""
        body = ErrorResponse(message="Invalid projectId", code="not_found").to_dict()
        assert body == {"status": "error", "error": "Invalid projectId", "code": "not_found"}

    def test_body_with_details(self) -> None:
        """Test that correlation ID and field details are included when present."""
        body = ErrorResponse(
            message="Validation failed",
            code="validation_error",
            correlation_id="req-1",
            details=[ErrorDetail(field="url", message="required", code="missing")],
        ).to_dict()

        assert body["correlation_id"] == "req-1"
        assert body["details"] == [{"field": "url", "message": "required", "code": "missing"}]

    def test_correlation_id_header_echoed(self, upload_dir: Path) -> None:
        """Test that the correlation middleware echoes the request ID."""
        app = Litestar(
            route_handlers=[HealthController],
            plugins=[CodesharePlugin(CodeshareConfig(upload_dir=upload_dir))],
            middleware=get_middleware(),
        )

        with TestClient(app=app) as client:
            response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


@pytest.mark.db
class TestCleanupTask:
    """Tests for the expired project cleanup job."""

    def test_cleanup_deletes_expired_projects(self, tmp_path: Path) -> None:
        """Test that the job removes expired projects and reports the count."""
        pytest.importorskip("aiosqlite")
        from codeshare_py.core.tasks import _run_cleanup_expired_projects
        from codeshare_py.storage.db.setup import DatabaseManager
        from codeshare_py.storage.db.storage import DatabaseProjectStore

        url = f"sqlite+aiosqlite:///{tmp_path / 'cleanup.db'}"
        now = datetime.now(UTC)

        async def seed() -> None:
            db = DatabaseManager(url)
            await db.init()
            try:
                store = DatabaseProjectStore(db.session)
                await store.upsert_project(Project(id="old000", expires_at=now - timedelta(days=1)))
                await store.upsert_project(Project(id="live00", expires_at=now + timedelta(days=1)))
            finally:
                await db.close()

        asyncio.run(seed())

        result = _run_cleanup_expired_projects(url)

        assert result["task"] == "cleanup_expired_projects"
        assert result["deleted"] == 1


class TestCLI:
    """Tests for the command groups."""

    def test_tasks_list(self) -> None:
        """Test that the scheduled cleanup job is listed."""
        from codeshare_py.cli.database import tasks_group

        result = CliRunner().invoke(tasks_group, ["list"])

        assert result.exit_code == 0
        assert "Scheduled Tasks" in result.output

    def test_plugin_registers_groups(self) -> None:
        """Test that the CLI plugin adds both command groups."""
        import click

        from codeshare_py.cli import CodeshareCLIPlugin

        cli = click.Group()
        CodeshareCLIPlugin().on_cli_init(cli)

        assert set(cli.commands) == {"codeshare", "tasks"}


class TestCleanupQueue:
    """Tests for handing cleanups to the task consumer."""

    @pytest.fixture
    def huey(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """Install a fresh, non-immediate Huey instance."""
        huey_module = pytest.importorskip("huey")
        from codeshare_py.core import tasks

        instance = huey_module.SqliteHuey(name="codeshare-test", filename=str(tmp_path / "huey.db"))
        monkeypatch.setattr(tasks, "_huey_instance", instance)
        monkeypatch.setattr(tasks, "_cleanup_now", None)
        return instance

    def test_enqueue_adds_pending_task(self, huey) -> None:
        """Test that an enqueued cleanup waits for the consumer."""
        from codeshare_py.core.tasks import enqueue_project_cleanup

        task_id = enqueue_project_cleanup()
        enqueue_project_cleanup()

        assert task_id
        assert huey.pending_count() == 2

    def test_register_tasks_includes_on_demand_cleanup(self, huey) -> None:
        """Test that consumers can run enqueued cleanups."""
        from codeshare_py.core import tasks

        tasks.register_tasks()

        assert tasks._cleanup_now is not None

    def test_cli_queue_option(self, huey) -> None:
        """Test that ``codeshare cleanup --queue`` enqueues instead of running."""
        from codeshare_py.cli.database import codeshare_group

        result = CliRunner().invoke(codeshare_group, ["cleanup", "--queue"])

        assert result.exit_code == 0
        assert "Cleanup queued" in result.output
        assert huey.pending_count() == 1


class TestRequestLogging:
    """Tests for the access log middleware."""

    @staticmethod
    async def _run(middleware, scope: dict, incoming: list[dict]) -> list[dict]:
        sent: list[dict] = []
        queue = list(incoming)

        async def receive() -> dict:
            return queue.pop(0)

        async def send(message: dict) -> None:
            sent.append(message)

        await middleware(scope, receive, send)
        return sent

    async def test_http_request_logged(self) -> None:
        """Test that a completed HTTP request logs its status."""

        async def app(scope, receive, send) -> None:
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        scope = {"type": "http", "path": "/api/projects/abc123", "method": "GET", "client": ("10.0.0.1", 1)}
        with capture_logs() as logs:
            await self._run(RequestLoggingMiddleware(app), scope, [])

        assert [(log["event"], log["log_level"], log["status_code"]) for log in logs] == [
            ("Request completed", "warning", 404)
        ]
        assert logs[0]["client_ip"] == "10.0.0.1"

    @pytest.mark.parametrize("path", ["/health", "/uploads/1700000000000-abc.png"])
    async def test_health_checks_and_uploads_not_logged(self, path: str) -> None:
        """Test that health checks and served uploads stay out of the access log."""

        async def app(scope, receive, send) -> None:
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        with capture_logs() as logs:
            await self._run(RequestLoggingMiddleware(app), {"type": "http", "path": path}, [])

        assert logs == []

    async def test_websocket_logged_once_on_close(self) -> None:
        """Test that a socket logs a single line with the client's close code."""

        async def app(scope, receive, send) -> None:
            await receive()
            await send({"type": "websocket.accept"})
            await send({"type": "websocket.send", "text": "{}"})
            await receive()

        incoming = [{"type": "websocket.connect"}, {"type": "websocket.disconnect", "code": 1001}]
        with capture_logs() as logs:
            await self._run(RequestLoggingMiddleware(app), {"type": "websocket", "path": "/ws"}, incoming)

        assert len(logs) == 1
        assert logs[0]["event"] == "WebSocket closed"
        assert logs[0]["close_code"] == 1001
        assert logs[0]["closed_by"] == "client"

    async def test_websocket_closed_by_server(self) -> None:
        """Test that a server-side close is attributed to the server."""

        async def app(scope, receive, send) -> None:
            await receive()
            await send({"type": "websocket.accept"})
            await send({"type": "websocket.close", "code": 1011})

        with capture_logs() as logs:
            await self._run(
                RequestLoggingMiddleware(app), {"type": "websocket", "path": "/ws"}, [{"type": "websocket.connect"}]
            )

        assert logs[0]["close_code"] == 1011
        assert logs[0]["closed_by"] == "server"

    async def test_rejected_websocket_not_logged(self) -> None:
        """Test that a socket closed before being accepted is not logged."""

        async def app(scope, receive, send) -> None:
            await receive()
            await send({"type": "websocket.close", "code": 1008})

        with capture_logs() as logs:
            await self._run(
                RequestLoggingMiddleware(app), {"type": "websocket", "path": "/ws"}, [{"type": "websocket.connect"}]
            )

        assert logs == []


class TestCorrelationId:
    """Tests for correlation ID binding."""

    async def test_websocket_binds_transport_and_request_id(self) -> None:
        """Test that socket log lines carry the upgrade request's ID."""
        bound: dict = {}

        async def app(scope, receive, send) -> None:
            bound.update(structlog.contextvars.get_contextvars())

        scope = {"type": "websocket", "path": "/ws", "headers": [(b"x-request-id", b"req-9")]}

        async def receive() -> dict:
            return {"type": "websocket.connect"}

        async def send(message: dict) -> None:
            pass

        await CorrelationIdMiddleware(app)(scope, receive, send)

        assert bound == {"correlation_id": "req-9", "path": "/ws", "transport": "websocket"}
        assert scope["state"]["correlation_id"] == "req-9"
        assert structlog.contextvars.get_contextvars() == {}
