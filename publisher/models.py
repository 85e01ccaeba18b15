"""
Models for publisher module.

Dataclasses for manifest records, per-file outcomes and run results.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif")
MANIFEST_FILENAME = "tutorial.lock.json"
CONFIG_FILENAME = "tutorial.config.json"


@dataclass(frozen=True)
class TrackedFile:
    """
    Publish state of one content file.

    storage_ref is only meaningful for the recorded digest: whenever the
    digest changes without an upload, the reference must be dropped.
    """
    path: str
    name: str
    digest: Optional[str] = None
    storage_ref: Optional[str] = None

    @property
    def is_uploaded(self) -> bool:
        return self.storage_ref is not None

    def with_upload(self, digest: str, storage_ref: str) -> "TrackedFile":
        return replace(self, digest=digest, storage_ref=storage_ref)

    def with_digest(self, digest: str) -> "TrackedFile":
        """Record a new digest; a changed digest invalidates the storage ref."""
        if digest == self.digest:
            return self
        return replace(self, digest=digest, storage_ref=None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "path": self.path}
        if self.digest is not None:
            data["digest"] = self.digest
        if self.storage_ref is not None:
            data["storageRef"] = self.storage_ref
        return data

    @classmethod
    def from_dict(cls, path: str, data: Dict[str, Any]) -> "TrackedFile":
        if not isinstance(data, dict):
            raise ValueError(f"record for {path!r} is not an object")
        for key in ("name", "digest", "storageRef"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"field {key!r} of {path!r} must be a string")
        return cls(
            path=path,
            name=data.get("name") or Path(path).name,
            digest=data.get("digest"),
            storage_ref=data.get("storageRef"),
        )


@dataclass(frozen=True)
class Reviewer:
    """Reviewer assigned to a package."""
    pubkey: str
    github_name: Optional[str] = None
    pda: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"pubkey": self.pubkey, "githubName": self.github_name, "pda": self.pda}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reviewer":
        if not isinstance(data, dict) or not data.get("pubkey"):
            raise ValueError("reviewer entry requires a pubkey")
        return cls(pubkey=data["pubkey"], github_name=data.get("githubName"), pda=data.get("pda"))


@dataclass
class Manifest:
    """Local record of per-file publish state plus package-level fields."""
    files: Dict[str, TrackedFile] = field(default_factory=dict)
    slug: Optional[str] = None
    proposal_id: Optional[int] = None
    creator: Optional[str] = None
    reviewers: Dict[str, Reviewer] = field(default_factory=dict)

    def get(self, path: str) -> Optional[TrackedFile]:
        return self.files.get(path)

    def set(self, path: str, record: TrackedFile) -> None:
        if record.path != path:
            raise ValueError(f"record path {record.path!r} does not match key {path!r}")
        self.files[path] = record

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "proposalId": self.proposal_id,
            "creator": self.creator,
            "reviewers": {key: r.to_dict() for key, r in self.reviewers.items()},
            "content": {path: f.to_dict() for path, f in sorted(self.files.items())},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        if not isinstance(data, dict):
            raise ValueError("manifest root must be an object")
        content = data.get("content") or {}
        reviewers = data.get("reviewers") or {}
        if not isinstance(content, dict) or not isinstance(reviewers, dict):
            raise ValueError("'content' and 'reviewers' must be objects")

        proposal_id = data.get("proposalId")
        if proposal_id is not None:
            proposal_id = int(proposal_id)

        return cls(
            files={path: TrackedFile.from_dict(path, entry) for path, entry in content.items()},
            slug=data.get("slug"),
            proposal_id=proposal_id,
            creator=data.get("creator"),
            reviewers={key: Reviewer.from_dict(entry) for key, entry in reviewers.items()},
        )


@dataclass(frozen=True)
class PackageState:
    """Package record held by the package state authority."""
    proposal_id: int
    state: str
    slug: Optional[str] = None
    stream_id: Optional[str] = None
    creator: Optional[str] = None
    reviewers: Dict[str, Reviewer] = field(default_factory=dict)


@dataclass(frozen=True)
class PackageFile:
    """Content file discovered under a package root."""
    path: str  # POSIX path relative to the package root
    source: Path
    name: str


@dataclass(frozen=True)
class ChangeSetEntry:
    """One file selected for processing in the current run."""
    file: TrackedFile
    source: Path
    skip_upload: bool = False

    @property
    def path(self) -> str:
        return self.file.path


class FileOutcome(Enum):
    """Per-file outcome of a publish run."""
    SUCCESS = "success"
    UPLOAD_FAILED = "upload_failed"
    RECONCILE_FAILED = "reconcile_failed"
    IO_FAILED = "io_failed"


@dataclass(frozen=True)
class FileResult:
    """Immutable result of processing one file."""
    path: str
    outcome: FileOutcome = FileOutcome.SUCCESS
    uploaded: bool = False
    reconciled: bool = False
    storage_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == FileOutcome.SUCCESS

    @classmethod
    def ok(cls, path: str, uploaded: bool, reconciled: bool, storage_ref: Optional[str] = None):
        return cls(
            path=path,
            outcome=FileOutcome.SUCCESS,
            uploaded=uploaded,
            reconciled=reconciled,
            storage_ref=storage_ref,
        )

    @classmethod
    def fail(cls, path: str, outcome: FileOutcome, error: str, uploaded: bool = False,
             storage_ref: Optional[str] = None):
        return cls(path=path, outcome=outcome, uploaded=uploaded, storage_ref=storage_ref, error=error)


class RunState(Enum):
    """Terminal state of a publish run."""
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    REJECTED = "rejected"


@dataclass
class RunResult:
    """Result of a publish run."""
    state: RunState
    results: List[FileResult]
    manifest: Optional[Manifest] = None
    error: Optional[str] = None

    @property
    def uploaded(self) -> int:
        return sum(1 for r in self.results if r.uploaded)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.success and not r.uploaded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def metadata_writes(self) -> int:
        return sum(1 for r in self.results if r.reconciled)

    @classmethod
    def from_results(cls, results: List[FileResult], manifest: Manifest) -> "RunResult":
        state = RunState.COMPLETED
        if any(not r.success for r in results):
            state = RunState.PARTIALLY_FAILED
        return cls(state=state, results=results, manifest=manifest)

    @classmethod
    def rejected(cls, error: str, manifest: Optional[Manifest] = None) -> "RunResult":
        return cls(state=RunState.REJECTED, results=[], manifest=manifest, error=error)


@dataclass(frozen=True)
class PublishConfig:
    """Immutable configuration for publish runs."""
    concurrency: int = 2
    skip_images: bool = False
    image_extensions: Tuple[str, ...] = IMAGE_EXTENSIONS
    manifest_filename: str = MANIFEST_FILENAME
    ignored_names: Tuple[str, ...] = (MANIFEST_FILENAME, CONFIG_FILENAME)
    publishable_states: Tuple[str, ...] = ("readyToPublish", "published")

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    def is_publishable(self, state: str) -> bool:
        return state in self.publishable_states


@dataclass(frozen=True)
class RemoteConfig:
    """Endpoints and credentials of the remote collaborators."""
    package_api_url: str
    metadata_node_url: str
    store_url: str
    store_app_name: str
    store_wallet: Optional[str] = None
    timeout: int = 60
