"""
Error taxonomy for the publish pipeline.

Per-file errors (PackageIOError, UploadError, ReconcileError) are captured
into FileResult entries by the worker pool. Run-level errors (StateRejected,
ManifestCorrupt, RemoteUnavailable) abort before any file is touched.
"""


class PublishError(RuntimeError):
    """Base class for publish pipeline errors."""


class PackageIOError(PublishError):
    """A package file could not be read or the manifest could not be flushed."""


class UploadError(PublishError):
    """Immutable store rejected or failed an upload (transport, auth, rate limit)."""


class ReconcileError(PublishError):
    """Metadata store write failed for one file's reconciliation."""


class StateRejected(PublishError):
    """Package is not in a state that permits publishing."""

    def __init__(self, state: str, message: str = ""):
        self.state = state
        super().__init__(message or f"package state '{state}' does not permit publishing")


class ManifestCorrupt(PublishError):
    """Manifest file exists but cannot be parsed into a Manifest."""


class RemoteUnavailable(PublishError):
    """Package state or metadata snapshot could not be read."""
