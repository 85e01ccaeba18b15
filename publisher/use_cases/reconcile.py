"""Metadata reconciliation between the manifest and the remote document."""
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Optional

from publisher.errors import PublishError, ReconcileError
from publisher.models import TrackedFile
from publisher.protocols import IMetadataStore

logger = logging.getLogger(__name__)

CONTENT_KEY = "content"


def merge_record(document: Dict[str, Any], record: TrackedFile) -> Dict[str, Any]:
    """Return a copy of document with record placed under content[path]."""
    merged = copy.deepcopy(document)
    content = merged.get(CONTENT_KEY)
    if not isinstance(content, dict):
        content = {}
    content[record.path] = record.to_dict()
    merged[CONTENT_KEY] = content
    return merged


def remote_entry(document: Dict[str, Any], path: str) -> Optional[Dict[str, Any]]:
    content = document.get(CONTENT_KEY)
    if not isinstance(content, dict):
        return None
    return content.get(path)


class MetadataReconciler:
    """
    Diff local records against the remote document and write only on divergence.

    The snapshot passed in is read once per run and never mutated. All writes
    go through one accumulator document under a lock: each successful write
    becomes the base for the next one, so concurrent files never revert each
    other's entries.
    """

    def __init__(self, store: IMetadataStore, stream_id: str, snapshot: Dict[str, Any]):
        self._store = store
        self._stream_id = stream_id
        self._document = copy.deepcopy(snapshot)
        self._lock = asyncio.Lock()
        self._writes = 0

    @property
    def document(self) -> Dict[str, Any]:
        """Last document successfully written (or the snapshot if none)."""
        return self._document

    @property
    def writes(self) -> int:
        return self._writes

    def is_synced(self, record: TrackedFile) -> bool:
        return remote_entry(self._document, record.path) == record.to_dict()

    async def reconcile(self, record: TrackedFile) -> bool:
        """
        Bring the remote entry for record.path in line with the local record.

        Returns:
            True if a write was issued, False if the entry was already synced

        Raises:
            ReconcileError: metadata store write failed (not retried)
        """
        async with self._lock:
            if self.is_synced(record):
                logger.info("Metadata: %s already synced, skipping write", record.path)
                return False

            merged = merge_record(self._document, record)
            try:
                await self._store.set_document(self._stream_id, merged)
            except ReconcileError:
                raise
            except (PublishError, RuntimeError, OSError) as exc:
                raise ReconcileError(f"metadata write for {record.path} failed: {exc}") from exc

            self._document = merged
            self._writes += 1
            logger.info("Metadata: updated entry for %s", record.path)
            return True
