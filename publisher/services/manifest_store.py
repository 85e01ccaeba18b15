"""
ManifestStore - Durable per-file publish state for a package.

The manifest lives as human-readable JSON inside the package root. Every
single-file mutation is flushed immediately so an interrupted run loses at
most the file that was in flight.
"""
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import ManifestCorrupt, PackageIOError
from ..models import MANIFEST_FILENAME, Manifest, TrackedFile

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Keyed store of TrackedFile records backed by a JSON file.

    Workers mutate disjoint paths concurrently. Each commit() serializes the
    whole in-memory manifest under a lock, so one worker's flush always
    includes every other worker's completed updates.
    """

    def __init__(self, root: Path, filename: str = MANIFEST_FILENAME):
        self._root = Path(root)
        self._file = self._root / filename
        self._manifest = Manifest()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._file

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    async def read(self) -> Manifest:
        """Load manifest from disk; a missing file yields an empty manifest."""
        if not self._file.exists():
            logger.info("Manifest: no file at %s, starting empty", self._file)
            self._manifest = Manifest()
            return self._manifest

        try:
            raw = await asyncio.to_thread(self._file.read_text, encoding="utf-8")
        except OSError as exc:
            raise ManifestCorrupt(f"cannot read manifest {self._file}: {exc}") from exc

        try:
            self._manifest = Manifest.from_dict(json.loads(raw))
        except json.JSONDecodeError as exc:
            raise ManifestCorrupt(f"manifest {self._file} is not valid JSON: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise ManifestCorrupt(f"manifest {self._file} has invalid shape: {exc}") from exc

        logger.info("Manifest: loaded %d entries from %s", len(self._manifest.files), self._file)
        return self._manifest

    def get(self, path: str) -> Optional[TrackedFile]:
        return self._manifest.get(path)

    def set(self, path: str, record: TrackedFile) -> None:
        """Upsert a record in memory. Call write() or use commit() to persist."""
        self._manifest.set(path, record)

    async def write(self) -> None:
        """Durably flush the manifest (temp file + fsync + atomic replace)."""
        try:
            payload = json.dumps(self._manifest.to_dict(), indent=2, ensure_ascii=False) + "\n"
            await asyncio.to_thread(self._atomic_write, payload)
        except (OSError, ValueError, TypeError) as exc:
            raise PackageIOError(f"cannot write manifest {self._file}: {exc}") from exc
        logger.debug("Manifest: flushed %d entries", len(self._manifest.files))

    async def commit(self, path: str, record: TrackedFile) -> None:
        """
        set() + write() as one step with respect to other paths.

        If the flush fails the previous record is restored, so a record that
        cannot be written never rides along with later commits.
        """
        async with self._lock:
            previous = self._manifest.get(path)
            self.set(path, record)
            try:
                await self.write()
            except PackageIOError:
                if previous is None:
                    self._manifest.files.pop(path, None)
                else:
                    self._manifest.files[path] = previous
                raise

    async def update_package(self, **fields) -> None:
        """Update package-level fields (slug, proposal_id, creator, reviewers) and flush."""
        async with self._lock:
            for name in fields:
                if name == "files" or not hasattr(self._manifest, name):
                    raise AttributeError(f"unknown manifest field: {name}")
            previous = {name: getattr(self._manifest, name) for name in fields}
            for name, value in fields.items():
                setattr(self._manifest, name, value)
            try:
                await self.write()
            except PackageIOError:
                for name, value in previous.items():
                    setattr(self._manifest, name, value)
                raise

    def _atomic_write(self, payload: str) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{self._file.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._file)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
