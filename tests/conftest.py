"""Pytest configuration and fixtures for codeshare-py tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from codeshare_py.core.error_handling import get_exception_handlers
from codeshare_py.core.models import AssetDraft, Project
from codeshare_py.plugin import CodeshareConfig, CodesharePlugin
from codeshare_py.realtime.broadcast import Broadcaster
from codeshare_py.realtime.registry import SessionRegistry
from codeshare_py.storage.memory import InMemoryAssetStore, InMemoryProjectStore
from codeshare_py.web.health import HealthController


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


# Storage fixtures


@pytest.fixture
def project_store() -> InMemoryProjectStore:
    """Create a fresh InMemoryProjectStore for each test."""
    return InMemoryProjectStore()


@pytest.fixture
def asset_store(project_store: InMemoryProjectStore) -> InMemoryAssetStore:
    """Create an InMemoryAssetStore bound to the project store."""
    return InMemoryAssetStore(project_store)


@pytest.fixture
async def project(project_store: InMemoryProjectStore) -> Project:
    """Persist and return a sample project."""
    return await project_store.upsert_project(Project(id="abc123", code="print('hi')"))


@pytest.fixture
def sample_draft() -> AssetDraft:
    """Create a sample asset draft for testing."""
    return AssetDraft(url="/uploads/1700000000000-abc.png", filename="logo.png", type="image/png", size=2048)


# Realtime fixtures


@pytest.fixture
def registry() -> SessionRegistry:
    """Create a fresh SessionRegistry for each test."""
    return SessionRegistry()


@pytest.fixture
def broadcaster(registry: SessionRegistry) -> Broadcaster:
    """Create a Broadcaster over the test registry."""
    return Broadcaster(registry)


@pytest.fixture
def make_websocket() -> Callable[[], MagicMock]:
    """Factory for mock WebSockets that record what was sent to them."""

    def _make() -> MagicMock:
        ws = MagicMock()
        ws.connection_state = "connect"
        ws.send_text = AsyncMock()
        return ws

    return _make


@pytest.fixture
def sent() -> Callable[[MagicMock], list[dict[str, Any]]]:
    """Decode every JSON message a mock WebSocket was sent, in order."""

    def _sent(ws: MagicMock) -> list[dict[str, Any]]:
        return [json.loads(call.args[0]) for call in ws.send_text.await_args_list]

    return _sent


# App and client fixtures


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory the test app stores uploads in."""
    return tmp_path / "uploads"


@pytest.fixture
def app(upload_dir: Path) -> Litestar:
    """Create a Litestar app with CodesharePlugin on in-memory stores."""
    return Litestar(
        route_handlers=[HealthController],
        plugins=[CodesharePlugin(CodeshareConfig(upload_dir=upload_dir))],
        exception_handlers=get_exception_handlers(),
    )


@pytest.fixture
def client(app: Litestar) -> TestClient[Litestar]:
    """Create a test client for the app."""
    return TestClient(app=app)
