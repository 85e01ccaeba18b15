"""Tests for ManifestStore."""
import asyncio
import json

import pytest

from publisher.errors import ManifestCorrupt, PackageIOError
from publisher.models import MANIFEST_FILENAME, Reviewer, TrackedFile
from publisher.services.manifest_store import ManifestStore

from conftest import write_manifest


class TestManifestStore:

    @pytest.mark.asyncio
    async def test_read_missing_file_yields_empty_manifest(self, tmp_path):
        store = ManifestStore(tmp_path)
        manifest = await store.read()
        assert manifest.files == {}
        assert manifest.proposal_id is None
        assert not (tmp_path / MANIFEST_FILENAME).exists()

    @pytest.mark.asyncio
    async def test_commit_persists_and_round_trips(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        record = TrackedFile("index.md", "Intro", "d1", "R1")

        await store.commit("index.md", record)

        reloaded = ManifestStore(tmp_path)
        manifest = await reloaded.read()
        assert manifest.get("index.md") == record
        raw = json.loads((tmp_path / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert raw["content"]["index.md"]["storageRef"] == "R1"

    @pytest.mark.asyncio
    async def test_set_without_write_is_not_durable(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        store.set("index.md", TrackedFile("index.md", "Intro", "d1"))

        assert store.get("index.md") is not None
        assert not (tmp_path / MANIFEST_FILENAME).exists()

    @pytest.mark.asyncio
    async def test_concurrent_commits_on_disjoint_paths_all_survive(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        records = [TrackedFile(f"page-{i}.md", f"Page {i}", f"d{i}", f"R{i}") for i in range(12)]

        await asyncio.gather(*(store.commit(r.path, r) for r in records))

        manifest = await ManifestStore(tmp_path).read()
        assert set(manifest.files) == {r.path for r in records}
        assert [p.name for p in tmp_path.iterdir()] == [MANIFEST_FILENAME]

    @pytest.mark.asyncio
    async def test_invalid_json_is_corrupt(self, tmp_path):
        (tmp_path / MANIFEST_FILENAME).write_text("{not json", encoding="utf-8")
        with pytest.raises(ManifestCorrupt):
            await ManifestStore(tmp_path).read()

    @pytest.mark.asyncio
    async def test_invalid_shape_is_corrupt(self, tmp_path):
        write_manifest(tmp_path, {"content": {"index.md": "not-an-object"}})
        with pytest.raises(ManifestCorrupt):
            await ManifestStore(tmp_path).read()

    @pytest.mark.asyncio
    async def test_update_package_fields(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        reviewers = {"reviewer1": Reviewer("rev-pk", "octocat")}

        await store.update_package(proposal_id=9, creator="creator-pk", reviewers=reviewers)

        manifest = await ManifestStore(tmp_path).read()
        assert manifest.proposal_id == 9
        assert manifest.creator == "creator-pk"
        assert manifest.reviewers == reviewers

    @pytest.mark.asyncio
    async def test_update_package_rejects_files_field(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        with pytest.raises(AttributeError):
            await store.update_package(files={})

    @pytest.mark.asyncio
    async def test_write_failure_raises_io_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        store = ManifestStore(blocker)
        with pytest.raises(PackageIOError):
            await store.write()

    @pytest.mark.asyncio
    async def test_unencodable_record_is_rolled_back(self, tmp_path):
        store = ManifestStore(tmp_path)
        await store.read()
        await store.commit("index.md", TrackedFile("index.md", "Intro", "d1", "R1"))

        with pytest.raises(PackageIOError):
            await store.commit("caf\udce9.md", TrackedFile("caf\udce9.md", "Cafe", "d2", "R2"))

        assert store.get("caf\udce9.md") is None
        await store.commit("image.png", TrackedFile("image.png", "image.png", "d3", "R3"))
        manifest = await ManifestStore(tmp_path).read()
        assert set(manifest.files) == {"index.md", "image.png"}

    @pytest.mark.asyncio
    async def test_failed_flush_restores_previous_record(self, tmp_path, monkeypatch):
        store = ManifestStore(tmp_path)
        await store.read()
        original = TrackedFile("index.md", "Intro", "d1", "R1")
        await store.commit("index.md", original)

        def disk_full(payload):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(store, "_atomic_write", disk_full)
        with pytest.raises(PackageIOError, match="No space left"):
            await store.commit("index.md", original.with_upload("d2", "R2"))

        assert store.get("index.md") == original

    @pytest.mark.asyncio
    async def test_failed_package_update_is_rolled_back(self, tmp_path, monkeypatch):
        store = ManifestStore(tmp_path)
        await store.read()
        await store.update_package(proposal_id=7)

        def disk_full(payload):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(store, "_atomic_write", disk_full)
        with pytest.raises(PackageIOError):
            await store.update_package(proposal_id=9, creator="creator-pk")

        assert store.manifest.proposal_id == 7
        assert store.manifest.creator is None
