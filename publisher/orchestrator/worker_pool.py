from typing import List, Optional, Protocol, Sequence
import asyncio
import logging
from publisher.models import ChangeSetEntry, FileOutcome, FileResult
from publisher.utils.events import FILE_COMPLETE, FILE_FAIL, FILE_START, EventEmitter
logger = logging.getLogger(__name__)


class FileProcessor(Protocol):
    async def process(self, entry: ChangeSetEntry) -> FileResult:
        ...


class UploadWorkerPool:
    """
    Runs per-file publish tasks with bounded concurrency.

    Each task holds one slot for the whole upload -> manifest -> reconcile
    sequence of its file. The default of 2 slots respects the remote store's
    rate limits, not local CPU.

    Usage:
        pool = UploadWorkerPool(processor, concurrency=2)
        pool.submit_all(change_set)
        results = await pool.drain()
    """

    def __init__(self, processor: FileProcessor, concurrency: int = 2, events: Optional[EventEmitter] = None):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._processor = processor
        self._concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._events = events or EventEmitter()
        self._tasks: List[asyncio.Task] = []
        self._paths: set = set()

    @property
    def events(self) -> EventEmitter:
        return self._events

    def submit_all(self, entries: Sequence[ChangeSetEntry]) -> None:
        """Schedule one task per entry. Must be called from a running event loop."""
        entries = list(entries)
        paths = [e.path for e in entries]
        if len(set(paths)) != len(paths) or self._paths.intersection(paths):
            raise ValueError("change set entries must be unique by path")
        self._paths.update(paths)

        total = len(self._tasks) + len(entries)
        start = len(self._tasks) + 1
        logger.info(f"Starting publish: {len(entries)} files, max {self._concurrency} in parallel")
        self._tasks.extend(
            asyncio.create_task(self._run_single(entry, idx, total))
            for idx, entry in enumerate(entries, start)
        )

    async def drain(self) -> List[FileResult]:
        """Wait for every submitted task; results come back in submission order."""
        results = list(await asyncio.gather(*self._tasks))
        self._tasks = []
        self._paths = set()

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Publish tasks complete: {succeeded} successful, {len(results) - succeeded} failed")
        return results

    async def _run_single(self, entry: ChangeSetEntry, index: int, total: int) -> FileResult:
        async with self._semaphore:
            action = "Reconciling" if entry.skip_upload else "Publishing"
            logger.info(f"[{index}/{total}] {action}: {entry.path}")
            await self._events.emit(FILE_START, entry)

            try:
                result = await self._processor.process(entry)
            except Exception as e:
                error_msg = str(e) or f"{type(e).__name__}"
                logger.error(f"[{index}/{total}] Error publishing {entry.path}: {error_msg}")
                outcome = FileOutcome.RECONCILE_FAILED if entry.skip_upload else FileOutcome.UPLOAD_FAILED
                result = FileResult.fail(entry.path, outcome, error_msg)

            status = "✓ Success" if result.success else f"✗ {result.outcome.value}"
            logger.info(f"[{index}/{total}] {status}: {entry.path}")
            await self._events.emit(FILE_COMPLETE if result.success else FILE_FAIL, result)
            return result
