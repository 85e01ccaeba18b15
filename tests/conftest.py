"""Shared fakes and fixtures for publisher tests."""
import copy
import json
from pathlib import Path

import pytest

from publisher.errors import ReconcileError, UploadError
from publisher.models import MANIFEST_FILENAME, PackageState, PublishConfig, Reviewer
from publisher.orchestrator import PublishOrchestrator


class FakeImmutableStore:
    """In-memory append-only store; keys listed in fail_keys raise UploadError."""

    def __init__(self, fail_keys=()):
        self.fail_keys = set(fail_keys)
        self.uploads = []
        self.refs = {}

    async def upload(self, data, key, credentials=None):
        if key in self.fail_keys:
            raise UploadError(f"rate limited: {key}")
        self.uploads.append((key, data))
        ref = f"tx{len(self.uploads)}"
        self.refs[key] = ref
        return ref


class FakeMetadataStore:
    """Whole-document store; writes that change an entry in fail_paths raise ReconcileError."""

    def __init__(self, document=None, fail_paths=()):
        self.document = copy.deepcopy(document) if document else {}
        self.fail_paths = set(fail_paths)
        self.writes = []

    async def get_document(self, stream_id):
        return copy.deepcopy(self.document)

    async def set_document(self, stream_id, document):
        current = self.document.get("content", {})
        incoming = document.get("content", {})
        for path in self.fail_paths:
            if current.get(path) != incoming.get(path):
                raise ReconcileError(f"write rejected for {path}")
        self.writes.append(copy.deepcopy(document))
        self.document = copy.deepcopy(document)


class FakePackageAuthority:
    def __init__(self, state="readyToPublish", stream_id="stream-1", slug="near-101", proposal_id=7,
                 creator="creator-pk", reviewers=None):
        self.package = PackageState(
            proposal_id=proposal_id,
            state=state,
            slug=slug,
            stream_id=stream_id,
            creator=creator,
            reviewers=reviewers or {},
        )
        self.calls = []

    async def get_package_state(self, proposal_id):
        self.calls.append(("id", proposal_id))
        return self.package

    async def get_package_by_slug(self, slug):
        self.calls.append(("slug", slug))
        return self.package


def write_manifest(root: Path, data: dict) -> Path:
    path = root / MANIFEST_FILENAME
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def read_manifest(root: Path) -> dict:
    return json.loads((root / MANIFEST_FILENAME).read_text(encoding="utf-8"))


@pytest.fixture
def package_root(tmp_path):
    """Package with index.md and image.png and a manifest that only holds package fields."""
    root = tmp_path / "near-101"
    root.mkdir()
    (root / "index.md").write_text("# Intro\n\nHello.\n", encoding="utf-8")
    (root / "image.png").write_bytes(b"\x89PNG fake image bytes")
    write_manifest(root, {"slug": "near-101", "proposalId": 7, "content": {}})
    return root


@pytest.fixture
def reviewer():
    return Reviewer(pubkey="rev-pk-1", github_name="octocat", pda="pda-1")


@pytest.fixture
def make_orchestrator():
    def _make(store=None, metadata=None, authority=None, **config):
        return PublishOrchestrator(
            config=PublishConfig(**config),
            immutable_store=store or FakeImmutableStore(),
            metadata_store=metadata or FakeMetadataStore(),
            package_authority=authority or FakePackageAuthority(),
        )
    return _make
