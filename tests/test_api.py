"""Tests for API endpoints."""

from __future__ import annotations

from pathlib import Path

from litestar import Litestar
from litestar.testing import TestClient

from codeshare_py.storage.files import MAX_UPLOAD_BYTES


def upload(client: TestClient[Litestar], project_id: str, content: bytes, media_type: str, name: str = "file.bin"):
    """POST a single file as multipart form data."""
    return client.post(f"/upload/{project_id}", files={"file": (name, content, media_type)})


class TestProjectAPI:
    """Tests for project save/load endpoints."""

    def test_save_new_project(self, client: TestClient[Litestar]) -> None:
        """Test that saving without an ID creates a project with a generated code."""
        response = client.post("/project", json={"code": "print('hello')"})
        assert response.status_code == 200
        project_id = response.json()["id"]
        assert len(project_id) == 6

        loaded = client.get(f"/api/project/{project_id}").json()
        assert loaded["id"] == project_id
        assert loaded["code"] == "print('hello')"
        assert "expiresAt" in loaded

    def test_save_existing_project(self, client: TestClient[Litestar]) -> None:
        """Test that saving with an ID updates that project."""
        project_id = client.post("/project", json={"code": "v1"}).json()["id"]

        response = client.post("/project", json={"code": "v2", "id": project_id})
        assert response.status_code == 200
        assert response.json() == {"id": project_id}
        assert client.get(f"/api/project/{project_id}").json()["code"] == "v2"

    def test_get_unknown_project_returns_empty_object(self, client: TestClient[Litestar]) -> None:
        """Test that a missing project loads as an empty object."""
        response = client.get("/api/project/zzzzzz")
        assert response.status_code == 200
        assert response.json() == {}

    def test_list_assets_empty(self, client: TestClient[Litestar]) -> None:
        """Test listing assets of a project that has none."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        response = client.get(f"/api/project/{project_id}/assets")
        assert response.status_code == 200
        assert response.json() == []


class TestUploadAPI:
    """Tests for the upload endpoint."""

    def test_upload_stores_file(self, client: TestClient[Litestar], upload_dir: Path) -> None:
        """Test that an accepted upload is written and described."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        response = upload(client, project_id, b"\x89PNG\r\n", "image/png", "logo.png")
        assert response.status_code == 200
        data = response.json()
        assert data["projectId"] == project_id
        assert data["filename"] == "logo.png"
        assert data["type"] == "image/png"
        assert data["size"] == 6
        assert data["url"].startswith("/uploads/")
        assert (upload_dir / data["url"].rsplit("/", 1)[1]).read_bytes() == b"\x89PNG\r\n"

    def test_upload_does_not_attach_asset(self, client: TestClient[Litestar]) -> None:
        """Test that uploading alone leaves the project's asset list unchanged."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        upload(client, project_id, b"hello", "text/plain", "notes.txt")

        assert client.get(f"/api/project/{project_id}/assets").json() == []

    def test_uploaded_file_is_served(self, client: TestClient[Litestar]) -> None:
        """Test that stored files are reachable under /uploads."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]
        url = upload(client, project_id, b"a,b\n1,2\n", "text/csv", "data.csv").json()["url"]

        response = client.get(url)
        assert response.status_code == 200
        assert response.content == b"a,b\n1,2\n"

    def test_upload_to_unknown_project(self, client: TestClient[Litestar]) -> None:
        """Test that uploads need an existing project."""
        response = upload(client, "zzzzzz", b"hello", "text/plain")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid projectId"

    def test_upload_rejects_media_type(self, client: TestClient[Litestar]) -> None:
        """Test that media types outside the allow-list are refused."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        response = upload(client, project_id, b"MZ", "application/x-msdownload", "tool.exe")
        assert response.status_code == 400
        assert response.json()["code"] == "upload_rejected"

    def test_upload_rejects_oversized_file(self, client: TestClient[Litestar]) -> None:
        """Test that files over the size limit are refused."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        response = upload(client, project_id, b"\0" * (MAX_UPLOAD_BYTES + 1), "application/zip", "big.zip")
        assert response.status_code == 400

    def test_upload_without_file(self, client: TestClient[Litestar]) -> None:
        """Test that a form without a file part is refused."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]

        response = client.post(f"/upload/{project_id}", files={"other": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 400


class TestAssetDeleteAPI:
    """Tests for deleting assets over HTTP."""

    def test_delete_asset_removes_file(self, client: TestClient[Litestar], upload_dir: Path) -> None:
        """Test that deleting an asset removes the stored file."""
        project_id = client.post("/project", json={"code": ""}).json()["id"]
        url = upload(client, project_id, b"x", "text/plain", "a.txt").json()["url"]

        response = client.request("DELETE", f"/api/project/{project_id}/assets", json={"url": url})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert list(upload_dir.iterdir()) == []

    def test_delete_requires_url(self, client: TestClient[Litestar]) -> None:
        """Test that the request body must name the asset."""
        response = client.request("DELETE", "/api/project/abc123/assets", json={})
        assert response.status_code in (400, 422)


class TestHealthAPI:
    """Tests for health endpoints."""

    def test_health(self, client: TestClient[Litestar]) -> None:
        """Test that the liveness endpoint reports the realtime component."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        realtime = next(c for c in data["components"] if c["name"] == "realtime")
        assert realtime["details"] == {"active_rooms": 0, "total_sessions": 0}

    def test_ready(self, client: TestClient[Litestar]) -> None:
        """Test that the readiness endpoint passes without a database."""
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True
