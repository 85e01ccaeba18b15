"""Tests for publisher models."""
import pytest
from publisher.models import (
    FileOutcome,
    FileResult,
    Manifest,
    PublishConfig,
    Reviewer,
    RunResult,
    RunState,
    TrackedFile,
)


class TestTrackedFile:
    def test_to_dict_omits_missing_storage_ref(self):
        record = TrackedFile(path="index.md", name="Intro", digest="d1")
        assert record.to_dict() == {"name": "Intro", "path": "index.md", "digest": "d1"}

    def test_with_upload_sets_digest_and_ref(self):
        record = TrackedFile(path="index.md", name="Intro").with_upload("d1", "R1")
        assert record.digest == "d1"
        assert record.storage_ref == "R1"
        assert record.is_uploaded is True

    def test_changed_digest_drops_storage_ref(self):
        record = TrackedFile(path="index.md", name="Intro", digest="d1", storage_ref="R1")
        updated = record.with_digest("d2")
        assert updated.digest == "d2"
        assert updated.storage_ref is None

    def test_same_digest_keeps_storage_ref(self):
        record = TrackedFile(path="index.md", name="Intro", digest="d1", storage_ref="R1")
        assert record.with_digest("d1") is record

    def test_from_dict_defaults_name_to_basename(self):
        record = TrackedFile.from_dict("docs/page.md", {"digest": "d1", "storageRef": "R1"})
        assert record.name == "page.md"
        assert record.storage_ref == "R1"

    def test_from_dict_rejects_non_string_fields(self):
        with pytest.raises(ValueError):
            TrackedFile.from_dict("index.md", {"digest": 42})

    def test_immutable(self):
        record = TrackedFile(path="index.md", name="Intro")
        with pytest.raises(Exception):
            record.digest = "x"


class TestManifest:
    def test_round_trip(self):
        manifest = Manifest(
            files={
                "index.md": TrackedFile("index.md", "Intro", "d1", "R1"),
                "image.png": TrackedFile("image.png", "image.png", "d2"),
            },
            slug="near-101",
            proposal_id=7,
            creator="creator-pk",
            reviewers={"reviewer1": Reviewer("rev-pk", "octocat", "pda")},
        )
        assert Manifest.from_dict(manifest.to_dict()) == manifest

    def test_set_rejects_mismatched_key(self):
        manifest = Manifest()
        with pytest.raises(ValueError):
            manifest.set("a.md", TrackedFile("b.md", "b"))

    def test_from_dict_rejects_non_object_content(self):
        with pytest.raises(ValueError):
            Manifest.from_dict({"content": ["index.md"]})

    def test_proposal_id_string_is_parsed(self):
        assert Manifest.from_dict({"proposalId": "12"}).proposal_id == 12


class TestRunResult:
    def test_completed_when_all_succeed(self):
        results = [
            FileResult.ok("a.md", uploaded=True, reconciled=True, storage_ref="R1"),
            FileResult.ok("b.md", uploaded=False, reconciled=False),
        ]
        run = RunResult.from_results(results, Manifest())
        assert run.state == RunState.COMPLETED
        assert run.uploaded == 1
        assert run.skipped == 1
        assert run.metadata_writes == 1

    def test_partially_failed_on_any_failure(self):
        results = [
            FileResult.ok("a.md", uploaded=True, reconciled=True),
            FileResult.fail("b.md", FileOutcome.UPLOAD_FAILED, "boom"),
        ]
        run = RunResult.from_results(results, Manifest())
        assert run.state == RunState.PARTIALLY_FAILED
        assert run.failed == 1

    def test_rejected(self):
        run = RunResult.rejected("state funded")
        assert run.state == RunState.REJECTED
        assert run.results == []


class TestPublishConfig:
    def test_defaults(self):
        config = PublishConfig()
        assert config.concurrency == 2
        assert config.skip_images is False
        assert config.is_publishable("readyToPublish")
        assert config.is_publishable("published")
        assert not config.is_publishable("funded")

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            PublishConfig(concurrency=0)
