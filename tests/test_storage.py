"""Tests for the in-memory stores and local file storage."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from codeshare_py.core.models import AssetDraft, Project
from codeshare_py.exceptions import ProjectNotFoundError, UploadRejectedError
from codeshare_py.services.projects import ProjectService
from codeshare_py.storage.base import AssetStoreProtocol, FileStorageProtocol, ProjectStoreProtocol
from codeshare_py.storage.files import MAX_UPLOAD_BYTES, LocalFileStorage
from codeshare_py.storage.memory import InMemoryAssetStore, InMemoryProjectStore


class TestProtocols:
    """Tests that the bundled backends satisfy the storage protocols."""

    def test_memory_stores_match_protocols(
        self, project_store: InMemoryProjectStore, asset_store: InMemoryAssetStore
    ) -> None:
        """Test the in-memory stores against their protocols."""
        assert isinstance(project_store, ProjectStoreProtocol)
        assert isinstance(asset_store, AssetStoreProtocol)

    def test_file_storage_matches_protocol(self, tmp_path: Path) -> None:
        """Test LocalFileStorage against FileStorageProtocol."""
        assert isinstance(LocalFileStorage(tmp_path), FileStorageProtocol)


class TestInMemoryProjectStore:
    """Tests for InMemoryProjectStore."""

    async def test_upsert_and_get(self, project_store: InMemoryProjectStore) -> None:
        """Test storing and loading a project."""
        await project_store.upsert_project(Project(id="abc123", code="x = 1"))

        loaded = await project_store.get_project("abc123")
        assert loaded is not None
        assert loaded.code == "x = 1"

    async def test_get_missing_project(self, project_store: InMemoryProjectStore) -> None:
        """Test that an unknown project loads as None."""
        assert await project_store.get_project("nope") is None

    async def test_upsert_replaces_code(self, project_store: InMemoryProjectStore) -> None:
        """Test that saving again overwrites the code."""
        await project_store.upsert_project(Project(id="abc123", code="old"))
        await project_store.upsert_project(Project(id="abc123", code="new"))

        loaded = await project_store.get_project("abc123")
        assert loaded is not None
        assert loaded.code == "new"

    async def test_returns_copies(self, project_store: InMemoryProjectStore) -> None:
        """Test that mutating a loaded project does not change the store."""
        await project_store.upsert_project(Project(id="abc123", code="x"))

        loaded = await project_store.get_project("abc123")
        assert loaded is not None
        loaded.code = "mutated"

        reloaded = await project_store.get_project("abc123")
        assert reloaded is not None
        assert reloaded.code == "x"

    async def test_delete_expired(self, project_store: InMemoryProjectStore) -> None:
        """Test that only projects past their expiry are deleted."""
        now = datetime.now(UTC)
        await project_store.upsert_project(Project(id="old", expires_at=now - timedelta(minutes=1)))
        await project_store.upsert_project(Project(id="live", expires_at=now + timedelta(days=1)))

        assert await project_store.delete_expired(now) == 1
        assert await project_store.get_project("old") is None
        assert await project_store.get_project("live") is not None


class TestInMemoryAssetStore:
    """Tests for InMemoryAssetStore."""

    async def test_add_and_list(self, asset_store: InMemoryAssetStore, project: Project, sample_draft: AssetDraft) -> None:
        """Test that added assets are listed in insertion order with server fields."""
        first = await asset_store.add_asset(project.id, sample_draft)
        second = await asset_store.add_asset(
            project.id, AssetDraft(url="/uploads/b.pdf", filename="b.pdf", type="application/pdf", size=1)
        )

        assets = await asset_store.list_assets(project.id)
        assert [a.url for a in assets] == [sample_draft.url, "/uploads/b.pdf"]
        assert first.id != second.id
        assert first.project_id == project.id

    async def test_add_to_unknown_project_raises(
        self, asset_store: InMemoryAssetStore, sample_draft: AssetDraft
    ) -> None:
        """Test that assets cannot be attached to a missing project."""
        with pytest.raises(ProjectNotFoundError):
            await asset_store.add_asset("missing", sample_draft)

    async def test_unbound_store_accepts_any_project(self, sample_draft: AssetDraft) -> None:
        """Test that a store without a project store does not validate IDs."""
        store = InMemoryAssetStore()
        await store.add_asset("anything", sample_draft)
        assert len(await store.list_assets("anything")) == 1

    async def test_remove(self, asset_store: InMemoryAssetStore, project: Project, sample_draft: AssetDraft) -> None:
        """Test removing an asset by URL."""
        await asset_store.add_asset(project.id, sample_draft)

        assert await asset_store.remove_asset(project.id, sample_draft.url)
        assert await asset_store.list_assets(project.id) == []
        assert not await asset_store.remove_asset(project.id, sample_draft.url)

    async def test_remove_is_scoped_to_project(self, sample_draft: AssetDraft) -> None:
        """Test that removal only touches the named project."""
        store = InMemoryAssetStore()
        await store.add_asset("p1", sample_draft)
        await store.add_asset("p2", sample_draft)

        await store.remove_asset("p1", sample_draft.url)

        assert len(await store.list_assets("p2")) == 1


class TestProjectService:
    """Tests for ProjectService."""

    @pytest.fixture
    def service(self, project_store: InMemoryProjectStore, asset_store: InMemoryAssetStore) -> ProjectService:
        """Create a ProjectService over the in-memory stores."""
        return ProjectService(project_store, asset_store)

    async def test_save_generates_id(self, service: ProjectService) -> None:
        """Test that a new project gets a 6 character base36 code."""
        project = await service.save_project("print(1)")

        assert len(project.id) == 6
        assert project.id.isalnum()
        assert project.id == project.id.lower()

    async def test_save_renews_expiry(self, service: ProjectService) -> None:
        """Test that saving sets the expiry five days out."""
        before = datetime.now(UTC)
        project = await service.save_project("x", "abc123")

        assert project.id == "abc123"
        assert before + timedelta(days=5) <= project.expires_at <= datetime.now(UTC) + timedelta(days=5)

    async def test_get_project_raises_when_missing(self, service: ProjectService) -> None:
        """Test that get_project requires an existing project."""
        assert await service.find_project("missing") is None
        with pytest.raises(ProjectNotFoundError):
            await service.get_project("missing")

    async def test_cleanup_expired(
        self, service: ProjectService, asset_store: InMemoryAssetStore, sample_draft: AssetDraft
    ) -> None:
        """Test that cleanup removes expired projects together with their assets."""
        await service.save_project("x", "abc123")
        await asset_store.add_asset("abc123", sample_draft)

        assert await service.cleanup_expired(datetime.now(UTC) + timedelta(days=6)) == 1
        assert await service.find_project("abc123") is None

        await service.save_project("y", "abc123")
        assert await service.list_assets("abc123") == []

    async def test_cleanup_keeps_assets_of_live_projects(
        self, service: ProjectService, asset_store: InMemoryAssetStore, sample_draft: AssetDraft
    ) -> None:
        """Test that assets of projects that have not expired are kept."""
        await service.save_project("x", "abc123")
        await asset_store.add_asset("abc123", sample_draft)

        assert await service.cleanup_expired() == 0
        assert len(await service.list_assets("abc123")) == 1


class TestLocalFileStorage:
    """Tests for LocalFileStorage."""

    async def test_save_writes_file(self, tmp_path: Path) -> None:
        """Test that saving writes the bytes and returns a served URL."""
        storage = LocalFileStorage(tmp_path)

        draft = await storage.save(b"\x89PNG data", "logo.png", "image/png")

        name = draft.url.removeprefix("/uploads/")
        assert draft.url.startswith("/uploads/")
        assert name.endswith(".png")
        assert (tmp_path / name).read_bytes() == b"\x89PNG data"
        assert draft.filename == "logo.png"
        assert draft.type == "image/png"
        assert draft.size == 9

    async def test_stored_name_format(self, tmp_path: Path) -> None:
        """Test that stored names are a millisecond timestamp and a random token."""
        draft = await LocalFileStorage(tmp_path).save(b"a,b", "data.csv", "text/csv")

        stamp, rest = draft.url.rsplit("/", 1)[1].split("-", 1)
        assert stamp.isdigit()
        assert len(stamp) >= 13
        assert rest.endswith(".csv")

    def test_rejects_unknown_media_type(self, tmp_path: Path) -> None:
        """Test that media types outside the allow-list are refused."""
        with pytest.raises(UploadRejectedError):
            LocalFileStorage(tmp_path).validate("application/x-msdownload", 10)

    def test_rejects_oversized_upload(self, tmp_path: Path) -> None:
        """Test that uploads over the limit are refused."""
        storage = LocalFileStorage(tmp_path)
        storage.validate("image/png", MAX_UPLOAD_BYTES)
        with pytest.raises(UploadRejectedError):
            storage.validate("image/png", MAX_UPLOAD_BYTES + 1)

    async def test_delete(self, tmp_path: Path) -> None:
        """Test deleting a stored file by its URL."""
        storage = LocalFileStorage(tmp_path)
        draft = await storage.save(b"x", "a.txt", "text/plain")

        assert await storage.delete(draft.url)
        assert list(tmp_path.iterdir()) == []
        assert not await storage.delete(draft.url)

    async def test_delete_cannot_escape_directory(self, tmp_path: Path) -> None:
        """Test that a crafted URL only resolves inside the upload directory."""
        upload_dir = tmp_path / "uploads"
        outside = tmp_path / "secret.txt"
        outside.write_text("keep")

        assert not await LocalFileStorage(upload_dir).delete("/uploads/../secret.txt")
        assert outside.exists()
