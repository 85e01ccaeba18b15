"""
Publisher - Publish tutorial packages to immutable storage and a metadata store.

A local manifest (tutorial.lock.json) records each file's digest and the
storage reference returned on upload, so repeated runs only upload changed
files and resume cleanly after partial failure.

Usage:
    from publisher import PublishOrchestrator, RemoteConfig

    async with PublishOrchestrator(remote_config) as publisher:
        # Sync proposal id / reviewers and refresh digests
        await publisher.prepublish(package_root)

        # Upload changed files, reconcile metadata
        result = await publisher.publish(package_root)
        print(result.state, result.uploaded, result.failed)
"""
from .errors import (
    ManifestCorrupt,
    PackageIOError,
    PublishError,
    ReconcileError,
    RemoteUnavailable,
    StateRejected,
    UploadError,
)
from .models import (
    ChangeSetEntry,
    FileOutcome,
    FileResult,
    Manifest,
    PackageState,
    PublishConfig,
    RemoteConfig,
    Reviewer,
    RunResult,
    RunState,
    TrackedFile,
)
from .orchestrator import PublishOrchestrator, UploadWorkerPool
from .services import ManifestStore

__version__ = "0.1.0"
__all__ = [
    # Main
    "PublishOrchestrator",
    "UploadWorkerPool",
    "ManifestStore",
    # Models
    "ChangeSetEntry",
    "FileOutcome",
    "FileResult",
    "Manifest",
    "PackageState",
    "PublishConfig",
    "RemoteConfig",
    "Reviewer",
    "RunResult",
    "RunState",
    "TrackedFile",
    # Errors
    "ManifestCorrupt",
    "PackageIOError",
    "PublishError",
    "ReconcileError",
    "RemoteUnavailable",
    "StateRejected",
    "UploadError",
]
