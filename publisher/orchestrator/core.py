"""Core orchestrator - coordinates publish and prepublish workflows."""
import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import PackageIOError, RemoteUnavailable, StateRejected
from ..models import (
    FileOutcome,
    FileResult,
    Manifest,
    PackageFile,
    PackageState,
    PublishConfig,
    RemoteConfig,
    RunResult,
    TrackedFile,
)
from ..protocols import IImmutableStore, IMetadataStore, IPackageStateAuthority
from ..services.api_client import HTTPAPIClient
from ..services.digest import blake3_file
from ..services.immutable_store import HTTPImmutableStore
from ..services.manifest_store import ManifestStore
from ..services.metadata_store import HTTPMetadataStore
from ..services.package_state import HTTPPackageStateAuthority
from ..use_cases.package_state import ResolvePackageFieldsUseCase, ValidatePackageStateUseCase
from ..use_cases.planning import PlanChangeSetUseCase, apply_filter, image_filter
from ..use_cases.reconcile import CONTENT_KEY, MetadataReconciler
from ..utils.events import FILE_COMPLETE, FILE_FAIL, FILE_START, EventEmitter
from .file_collector import FileCollector
from .file_publisher import FilePublisher
from .worker_pool import UploadWorkerPool

logger = logging.getLogger(__name__)


class PublishOrchestrator:
    """
    Publishes a tutorial package using injected or HTTP-backed collaborators.

    Usage:
        # HTTP collaborators built from endpoints
        async with PublishOrchestrator(remote_config) as publisher:
            result = await publisher.publish(package_root)

        # Injected collaborators (tests, alternative backends)
        publisher = PublishOrchestrator(
            immutable_store=store,
            metadata_store=metadata,
            package_authority=authority,
        )
        result = await publisher.publish(package_root)
    """

    def __init__(
        self,
        remote: Optional[RemoteConfig] = None,
        config: Optional[PublishConfig] = None,
        immutable_store: Optional[IImmutableStore] = None,
        metadata_store: Optional[IMetadataStore] = None,
        package_authority: Optional[IPackageStateAuthority] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            remote: Endpoints used to build HTTP collaborators in __aenter__
            config: Pipeline configuration
            immutable_store: Pre-built immutable store client
            metadata_store: Pre-built metadata store client
            package_authority: Pre-built package state client
        """
        self._remote = remote
        self._config = config or PublishConfig()
        self._immutable_store = immutable_store
        self._metadata_store = metadata_store
        self._package_authority = package_authority
        self._api_clients: List[HTTPAPIClient] = []
        self._events = EventEmitter()
        self._collector = FileCollector(self._config.ignored_names + (self._config.manifest_filename,))
        self._planner = PlanChangeSetUseCase()

    async def __aenter__(self):
        """Build HTTP collaborators for anything not injected."""
        if self._remote is None:
            return self
        remote = self._remote

        if self._immutable_store is None:
            client = await self._open_client(remote.store_url, remote.timeout)
            self._immutable_store = HTTPImmutableStore(client, remote.store_app_name, remote.store_wallet)
        if self._metadata_store is None:
            client = await self._open_client(remote.metadata_node_url, remote.timeout)
            self._metadata_store = HTTPMetadataStore(client)
        if self._package_authority is None:
            client = await self._open_client(remote.package_api_url, remote.timeout)
            self._package_authority = HTTPPackageStateAuthority(client)
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        for client in reversed(self._api_clients):
            await client.__aexit__(*args)
        self._api_clients = []

    async def _open_client(self, base_url: str, timeout: int) -> HTTPAPIClient:
        client = HTTPAPIClient(base_url, timeout=timeout)
        await client.__aenter__()
        self._api_clients.append(client)
        return client

    # Event subscription methods
    def on_file_start(self, callback: Callable):
        """Called when a file task starts. Receives ChangeSetEntry."""
        self._events.on(FILE_START, callback)

    def on_file_complete(self, callback: Callable[[FileResult], None]):
        """Called when a file finishes successfully. Receives FileResult."""
        self._events.on(FILE_COMPLETE, callback)

    def on_file_fail(self, callback: Callable[[FileResult], None]):
        """Called when a file fails. Receives FileResult."""
        self._events.on(FILE_FAIL, callback)

    async def publish(
        self,
        package_root: Path,
        manifest_store: Optional[ManifestStore] = None,
        credentials: Optional[str] = None,
    ) -> RunResult:
        """
        Upload changed files and reconcile metadata for every file.

        Raises:
            ManifestCorrupt: manifest cannot be parsed (nothing processed)
            RemoteUnavailable: package state or metadata snapshot cannot be read
        """
        assert self._immutable_store is not None, "immutable store not configured"
        assert self._metadata_store is not None, "metadata store not configured"
        assert self._package_authority is not None, "package authority not configured"

        package_root = Path(package_root)
        store = manifest_store or ManifestStore(package_root, self._config.manifest_filename)
        manifest = await store.read()

        if manifest.proposal_id is None:
            error = "manifest has no proposalId; run prepublish first"
            logger.error("Publish rejected: %s", error)
            return RunResult.rejected(error, manifest)

        package = await self._package_authority.get_package_state(manifest.proposal_id)
        try:
            ValidatePackageStateUseCase.execute(package, self._config.publishable_states)
        except StateRejected as exc:
            logger.error("Publish rejected: %s", exc)
            return RunResult.rejected(str(exc), manifest)

        snapshot = await self._metadata_store.get_document(package.stream_id)
        logger.info("Package %s in state %s, stream %s", package.proposal_id, package.state, package.stream_id)

        file_filter = image_filter(self._config.image_extensions) if self._config.skip_images else None
        files = apply_filter(await self._collect(package_root), file_filter)
        files, invalid = self._collector.partition_encodable(files)
        self._warn_missing(manifest, files, package_root, file_filter)

        digests, io_failures = await self._compute_digests(files)
        io_failures = [self._invalid_path_result(f) for f in invalid] + io_failures
        change_set = self._planner.execute(manifest, files, digests)

        reconciler = MetadataReconciler(self._metadata_store, package.stream_id, snapshot)
        processor = FilePublisher(
            self._immutable_store,
            store,
            reconciler,
            package_id=manifest.slug or package.slug or package_root.name,
            credentials=credentials,
        )
        pool = UploadWorkerPool(processor, self._config.concurrency, self._events)
        pool.submit_all(change_set)
        results = io_failures + await pool.drain()

        result = RunResult.from_results(results, store.manifest)
        logger.info(
            "Publish %s: %d uploaded, %d unchanged, %d failed, %d metadata write(s)",
            result.state.value, result.uploaded, result.skipped, result.failed, result.metadata_writes,
        )
        await self._log_final_state(package)
        return result

    async def prepublish(
        self,
        package_root: Path,
        skip_reviewers: bool = False,
        force: bool = False,
        manifest_store: Optional[ManifestStore] = None,
    ) -> Manifest:
        """
        Sync package-level fields and refresh per-file digests in the manifest.

        A digest that changed without an upload drops the file's storage ref,
        so the next publish uploads it again.
        """
        package_root = Path(package_root)
        store = manifest_store or ManifestStore(package_root, self._config.manifest_filename)
        manifest = await store.read()

        if not skip_reviewers or force:
            assert self._package_authority is not None, "package authority not configured"
            slug = manifest.slug or package_root.name
            package = await self._package_authority.get_package_by_slug(slug)
            fields = ResolvePackageFieldsUseCase.execute(manifest, package, not skip_reviewers, force)
            if fields:
                await store.update_package(**fields)

        files, invalid = self._collector.partition_encodable(await self._collect(package_root))
        for file in invalid:
            logger.warning("Prepublish: skipping %s, path is not valid UTF-8",
                           self._collector.printable_path(file.path))
        semaphore = asyncio.Semaphore(self._config.concurrency)

        async def _refresh(file: PackageFile) -> None:
            async with semaphore:
                try:
                    digest = await blake3_file(file.source)
                except OSError as exc:
                    raise PackageIOError(f"cannot read {file.path}: {exc}") from exc
                current = store.get(file.path) or TrackedFile(path=file.path, name=file.name)
                if current.name != file.name:
                    current = replace(current, name=file.name)
                await store.commit(file.path, current.with_digest(digest))

        outcomes = await asyncio.gather(*(_refresh(f) for f in files), return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise errors[0]

        logger.info("Prepublish: refreshed %d file(s) in %s", len(files), store.path)
        return store.manifest

    async def _collect(self, package_root: Path) -> List[PackageFile]:
        """Directory walk and title extraction run in a worker thread."""
        return await asyncio.to_thread(self._collector.collect_files, package_root)

    def _invalid_path_result(self, file: PackageFile) -> FileResult:
        path = self._collector.printable_path(file.path)
        logger.error("Cannot publish %s: path is not valid UTF-8", path)
        return FileResult.fail(path, FileOutcome.IO_FAILED, f"path {path} is not valid UTF-8")

    async def _log_final_state(self, package: PackageState) -> None:
        """Re-read the package state and the metadata document after the run."""
        try:
            final = await self._package_authority.get_package_state(package.proposal_id)
            document = await self._metadata_store.get_document(package.stream_id)
        except RemoteUnavailable as exc:
            logger.warning("Could not read final state of package %s: %s", package.proposal_id, exc)
            return
        content = document.get(CONTENT_KEY)
        listed = len(content) if isinstance(content, dict) else 0
        logger.info(
            "Package %s final state %s; metadata stream %s lists %d file(s)",
            final.proposal_id, final.state, package.stream_id, listed,
        )

    async def _compute_digests(self, files: List[PackageFile]) -> Tuple[Dict[str, str], List[FileResult]]:
        digests: Dict[str, str] = {}
        failures: List[FileResult] = []
        hashed = await asyncio.gather(*(blake3_file(f.source) for f in files), return_exceptions=True)
        for file, digest in zip(files, hashed):
            if isinstance(digest, OSError):
                logger.error("Cannot digest %s: %s", file.path, digest)
                failures.append(FileResult.fail(file.path, FileOutcome.IO_FAILED, f"cannot read {file.path}: {digest}"))
            elif isinstance(digest, BaseException):
                raise digest
            else:
                digests[file.path] = digest
        return digests, failures

    @staticmethod
    def _warn_missing(manifest: Manifest, files: List[PackageFile], root: Path, file_filter) -> None:
        present = {f.path for f in files}
        for path in manifest.files:
            if path in present:
                continue
            if file_filter and not file_filter(PackageFile(path=path, source=root / path, name=path)):
                continue
            logger.warning("Manifest entry %s has no file in %s; left untouched", path, root)
