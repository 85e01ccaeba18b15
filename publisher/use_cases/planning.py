"""Change-set planning: decide which files need (re)upload."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict, Iterable, List, Literal, Optional

import logging

from publisher.models import ChangeSetEntry, Manifest, PackageFile, TrackedFile

logger = logging.getLogger(__name__)


FileFilter = Callable[[PackageFile], bool]
PlanReason = Literal["not_tracked", "never_uploaded", "digest_changed", "unchanged"]


@dataclass(frozen=True)
class PlanDecision:
    """Result of comparing one file's digest against its manifest record."""

    skip_upload: bool
    reason: PlanReason


def image_filter(extensions: Iterable[str]) -> FileFilter:
    """Filter that keeps everything except files with the given extensions."""
    excluded = {ext.lower() for ext in extensions}

    def _keep(file: PackageFile) -> bool:
        return PurePosixPath(file.path).suffix.lower() not in excluded

    return _keep


def apply_filter(files: Iterable[PackageFile], file_filter: Optional[FileFilter]) -> List[PackageFile]:
    """Drop excluded files before any digest is computed."""
    files = list(files)
    if file_filter is None:
        return files
    kept = [f for f in files if file_filter(f)]
    if len(kept) != len(files):
        logger.info("Planner: excluded %d file(s) by filter", len(files) - len(kept))
    return kept


class ResolvePlanDecisionUseCase:
    """Digest comparison is the only gate for skipping an upload."""

    @staticmethod
    def execute(record: Optional[TrackedFile], digest: str) -> PlanDecision:
        if record is None:
            return PlanDecision(skip_upload=False, reason="not_tracked")
        if not record.is_uploaded:
            return PlanDecision(skip_upload=False, reason="never_uploaded")
        if record.digest != digest:
            return PlanDecision(skip_upload=False, reason="digest_changed")
        return PlanDecision(skip_upload=True, reason="unchanged")


class PlanChangeSetUseCase:
    """Build the ChangeSet for a run from the manifest and current digests."""

    def __init__(self):
        self._decide = ResolvePlanDecisionUseCase()

    def execute(
        self,
        manifest: Manifest,
        files: Iterable[PackageFile],
        digests: Dict[str, str],
        file_filter: Optional[FileFilter] = None,
    ) -> List[ChangeSetEntry]:
        """
        Args:
            manifest: Current manifest
            files: Package files discovered this run
            digests: path -> current digest; files without a digest are not planned
            file_filter: Optional predicate; excluded files are absent from the result

        Returns:
            One entry per file, unique by path
        """
        change_set: List[ChangeSetEntry] = []
        seen = set()

        for file in apply_filter(files, file_filter):
            if file.path in seen or file.path not in digests:
                continue
            seen.add(file.path)

            record = manifest.get(file.path)
            decision = self._decide.execute(record, digests[file.path])
            if record is None:
                record = TrackedFile(path=file.path, name=file.name)

            logger.debug("Planner: %s -> %s", file.path, decision.reason)
            change_set.append(ChangeSetEntry(file=record, source=file.source, skip_upload=decision.skip_upload))

        to_upload = sum(1 for e in change_set if not e.skip_upload)
        logger.info(
            "Planner: %d file(s) planned, %d to upload, %d unchanged",
            len(change_set), to_upload, len(change_set) - to_upload,
        )
        return change_set
