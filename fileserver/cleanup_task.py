"""Background task for cleaning up orphaned chunks."""

import asyncio

from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.bucket_backends import BucketSet
from fileserver.repositories.orphan_repository import OrphanRepository

logger = get_logger(__name__)

CLEANUP_INTERVAL_SECONDS = 6 * 3600


class OrphanedChunkCleaner:
    """
    Background task that periodically retries deletes for chunks in the orphan ledger.
    """

    def __init__(
        self,
        orphan_repository: OrphanRepository,
        buckets: BucketSet,
        interval_seconds: int = CLEANUP_INTERVAL_SECONDS,
        batch_size: int = 500,
    ):
        """
        Initialize cleaner task.

        Args:
            orphan_repository: Ledger of chunks awaiting deletion
            buckets: Buckets the orphaned chunks live in
            interval_seconds: Time between cleanup attempts (default 6 hours)
            batch_size: Maximum ledger entries handled per cycle
        """
        self.orphan_repository = orphan_repository
        self.buckets = buckets
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._running = False
        self._task = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Cleanup task already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started orphaned chunk cleanup task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background cleanup task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped orphaned chunk cleanup task")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.run_cycle()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup task: {e}", exc_info=True)

    async def run_cycle(self) -> int:
        """
        Execute one cleanup cycle.

        Returns:
            Number of ledger entries cleaned
        """
        orphans = self.orphan_repository.list_orphans(limit=self.batch_size)
        if not orphans:
            logger.debug("No orphaned chunks to clean")
            return 0

        logger.info(f"Starting cleanup cycle for {len(orphans)} orphaned chunks")
        cleaned_count = 0

        for orphan in orphans:
            chunk = ChunkRef(bucket_index=orphan.bucket_index, chunk_id=orphan.chunk_id, size=0)
            if chunk.bucket_index >= len(self.buckets):
                logger.warning(
                    f"Orphaned chunk {chunk.chunk_id} belongs to bucket {chunk.bucket_index + 1}, "
                    f"which is not configured"
                )
                self.orphan_repository.increment_attempts(chunk.bucket_index, chunk.chunk_id)
                continue

            backend = self.buckets[chunk.bucket_index]
            try:
                await backend.delete(chunk.chunk_id)
            except Exception as e:
                logger.warning(f"Error cleaning orphaned chunk {chunk.chunk_id} from {backend.name}: {e}")
                self.orphan_repository.increment_attempts(chunk.bucket_index, chunk.chunk_id)
                continue

            self.orphan_repository.remove_orphan(chunk.bucket_index, chunk.chunk_id)
            logger.info(f"Cleaned orphaned chunk {chunk.chunk_id} from {backend.name}")
            cleaned_count += 1

        remaining = len(orphans) - cleaned_count
        logger.info(f"Cleanup cycle complete: {cleaned_count} cleaned, {remaining} remaining")
        return cleaned_count
