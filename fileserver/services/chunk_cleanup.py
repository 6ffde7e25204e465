"""Compensating deletes for chunks that no catalog record references."""

import asyncio
from typing import List, Optional, Sequence

from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.bucket_backends import BucketSet
from fileserver.repositories.orphan_repository import OrphanRepository

logger = get_logger(__name__)


class ChunkCleaner:
    """
    Deletes chunks with a short retry loop; chunks that still cannot be
    deleted are written to the orphan ledger for the background cleaner.
    """

    def __init__(
        self,
        buckets: BucketSet,
        orphan_repository: Optional[OrphanRepository] = None,
        max_attempts: int = 3,
        base_delay: float = 0.5,
    ):
        self.buckets = buckets
        self.orphan_repository = orphan_repository
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def delete_chunk(self, chunk: ChunkRef) -> bool:
        """
        Delete one chunk, retrying with exponential backoff.

        Returns:
            True once the bucket no longer holds the chunk, False if every attempt failed
        """
        backend = self.buckets[chunk.bucket_index]
        for attempt in range(self.max_attempts):
            try:
                await backend.delete(chunk.chunk_id)
                logger.info(f"Deleted orphaned chunk {chunk.chunk_id} from {backend.name}")
                return True
            except Exception as e:
                if attempt < self.max_attempts - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Failed to delete chunk {chunk.chunk_id} from {backend.name}, "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Failed to delete orphaned chunk {chunk.chunk_id} from {backend.name} "
                        f"after {self.max_attempts} attempts: {e}"
                    )
        return False

    async def cleanup(self, chunks: Sequence[ChunkRef], reason: str = "") -> List[ChunkRef]:
        """
        Delete chunks left behind by a failed upload.

        Returns:
            Chunks that could not be deleted (recorded as orphans when a ledger is configured)
        """
        if not chunks:
            return []

        logger.info(f"Cleaning up {len(chunks)} orphaned chunk(s)")
        failed = [chunk for chunk in chunks if not await self.delete_chunk(chunk)]

        if failed and self.orphan_repository is not None:
            try:
                self.orphan_repository.record_orphans(failed, reason=reason)
            except Exception as e:
                logger.error(f"Could not record {len(failed)} orphaned chunk(s): {e}", exc_info=True)

        return failed
