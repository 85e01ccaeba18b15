"""Per-file publish task: upload (or skip), manifest commit, reconcile."""
import asyncio
import logging
from typing import Optional

from ..errors import PackageIOError
from ..models import ChangeSetEntry, FileOutcome, FileResult
from ..protocols import IImmutableStore
from ..services.digest import blake3_bytes
from ..services.manifest_store import ManifestStore
from ..use_cases.reconcile import MetadataReconciler

logger = logging.getLogger(__name__)


class FilePublisher:
    """Runs the ordered steps of publishing one file. Never raises for per-file failures."""

    def __init__(
        self,
        store: IImmutableStore,
        manifest: ManifestStore,
        reconciler: MetadataReconciler,
        package_id: str,
        credentials: Optional[str] = None,
    ):
        self._store = store
        self._manifest = manifest
        self._reconciler = reconciler
        self._package_id = package_id
        self._credentials = credentials

    def storage_key(self, path: str) -> str:
        return f"{self._package_id}/{path}"

    async def process(self, entry: ChangeSetEntry) -> FileResult:
        path = entry.path
        failure: Optional[FileResult] = None
        uploaded_ref: Optional[str] = None

        if entry.skip_upload:
            logger.info("Skipping upload of %s (unchanged, ref %s)", path, entry.file.storage_ref)
        else:
            failure, uploaded_ref = await self._upload(entry)

        # Reconcile against whatever the manifest now holds for this path.
        record = self._manifest.get(path)
        if record is None:
            return failure or FileResult.fail(path, FileOutcome.IO_FAILED, "no manifest record to reconcile")

        try:
            wrote = await self._reconciler.reconcile(record)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.error("Metadata reconcile failed for %s: %s", path, error)
            if failure:
                return FileResult.fail(path, failure.outcome, f"{failure.error}; reconcile: {error}")
            return FileResult.fail(
                path, FileOutcome.RECONCILE_FAILED, error,
                uploaded=uploaded_ref is not None, storage_ref=record.storage_ref,
            )

        if failure:
            return failure
        return FileResult.ok(path, uploaded=uploaded_ref is not None, reconciled=wrote,
                             storage_ref=record.storage_ref)

    async def _upload(self, entry: ChangeSetEntry):
        path = entry.path
        try:
            data = await asyncio.to_thread(entry.source.read_bytes)
        except OSError as exc:
            logger.error("Cannot read %s: %s", entry.source, exc)
            return FileResult.fail(path, FileOutcome.IO_FAILED, f"cannot read {path}: {exc}"), None

        key = self.storage_key(path)
        try:
            storage_ref = await self._store.upload(data, key, self._credentials)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.error("Upload failed for %s: %s", path, error)
            return FileResult.fail(path, FileOutcome.UPLOAD_FAILED, error), None

        record = entry.file.with_upload(blake3_bytes(data), storage_ref)
        try:
            await self._manifest.commit(path, record)
        except PackageIOError as exc:
            logger.error("Manifest flush failed after uploading %s: %s", path, exc)
            return FileResult.fail(path, FileOutcome.IO_FAILED, str(exc), uploaded=True,
                                   storage_ref=storage_ref), storage_ref

        logger.info("Uploaded %s -> %s", path, storage_ref)
        return None, storage_ref
