"""Tests for metadata reconciliation."""
import asyncio
import copy

import pytest

from publisher.errors import ReconcileError
from publisher.models import TrackedFile
from publisher.use_cases.reconcile import MetadataReconciler, merge_record, remote_entry

from conftest import FakeMetadataStore


INDEX = TrackedFile("index.md", "Intro", "d1", "R1")
IMAGE = TrackedFile("image.png", "image.png", "d2", "R2")


def test_merge_record_keeps_other_entries():
    document = {"title": "NEAR 101", "content": {"image.png": IMAGE.to_dict()}}
    merged = merge_record(document, INDEX)

    assert merged["title"] == "NEAR 101"
    assert merged["content"]["image.png"] == IMAGE.to_dict()
    assert merged["content"]["index.md"] == INDEX.to_dict()
    assert "index.md" not in document["content"]


def test_merge_record_into_empty_document():
    assert remote_entry(merge_record({}, INDEX), "index.md") == INDEX.to_dict()


@pytest.mark.asyncio
async def test_synced_entry_issues_no_write():
    snapshot = {"content": {"index.md": INDEX.to_dict()}}
    store = FakeMetadataStore(snapshot)
    reconciler = MetadataReconciler(store, "stream-1", snapshot)

    wrote = await reconciler.reconcile(INDEX)

    assert wrote is False
    assert store.writes == []
    assert reconciler.writes == 0


@pytest.mark.asyncio
async def test_divergent_entry_writes_whole_document():
    snapshot = {"title": "NEAR 101", "content": {"index.md": {"name": "Intro", "path": "index.md", "digest": "old"}}}
    store = FakeMetadataStore(snapshot)
    reconciler = MetadataReconciler(store, "stream-1", snapshot)

    wrote = await reconciler.reconcile(INDEX)

    assert wrote is True
    assert len(store.writes) == 1
    assert store.writes[0]["title"] == "NEAR 101"
    assert store.writes[0]["content"]["index.md"] == INDEX.to_dict()


@pytest.mark.asyncio
async def test_concurrent_writes_do_not_revert_each_other():
    snapshot = {"title": "NEAR 101", "content": {}}
    original = copy.deepcopy(snapshot)
    store = FakeMetadataStore(snapshot)
    reconciler = MetadataReconciler(store, "stream-1", snapshot)

    await asyncio.gather(reconciler.reconcile(INDEX), reconciler.reconcile(IMAGE))

    final = store.document["content"]
    assert final == {"index.md": INDEX.to_dict(), "image.png": IMAGE.to_dict()}
    assert snapshot == original


@pytest.mark.asyncio
async def test_failed_write_raises_and_keeps_previous_document():
    store = FakeMetadataStore({}, fail_paths={"image.png"})
    reconciler = MetadataReconciler(store, "stream-1", {})

    await reconciler.reconcile(INDEX)
    with pytest.raises(ReconcileError):
        await reconciler.reconcile(IMAGE)

    assert reconciler.is_synced(INDEX)
    assert not reconciler.is_synced(IMAGE)
    assert len(store.writes) == 1


@pytest.mark.asyncio
async def test_unexpected_store_error_is_wrapped():
    class BrokenStore(FakeMetadataStore):
        async def set_document(self, stream_id, document):
            raise RuntimeError("connection reset")

    reconciler = MetadataReconciler(BrokenStore(), "stream-1", {})
    with pytest.raises(ReconcileError, match="connection reset"):
        await reconciler.reconcile(INDEX)
