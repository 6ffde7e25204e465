"""Concurrent fan-out of a file's chunks to their buckets."""

import asyncio
import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence

from common.exceptions import ChunkWriteError
from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.bucket_backends import BucketSet
from fileserver.services.chunk_cleanup import ChunkCleaner

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChunkWrite:
    bucket_index: int
    chunk_id: str
    data: bytes

    def to_ref(self) -> ChunkRef:
        return ChunkRef(bucket_index=self.bucket_index, chunk_id=self.chunk_id, size=len(self.data))


class WriteStatus(enum.Enum):
    WRITTEN = "written"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ChunkWriteResult:
    write: ChunkWrite
    status: WriteStatus
    error: Optional[Exception] = None


class FanoutWriter:
    """
    Writes one chunk per bucket concurrently.

    The first failing put cancels every sibling put still in progress. Once all
    workers have stopped, chunks that were written or whose put was cancelled
    midway are deleted again so a failed upload leaves nothing behind, and the
    first failure is raised.
    """

    def __init__(self, buckets: BucketSet, cleaner: ChunkCleaner):
        self.buckets = buckets
        self.cleaner = cleaner

    def _validate(self, writes: Sequence[ChunkWrite]) -> None:
        indexes = sorted(write.bucket_index for write in writes)
        if indexes != list(range(self.buckets.fanout)):
            raise ValueError(
                f"Expected one write for each of {self.buckets.fanout} buckets, got indexes {indexes}"
            )

    async def _write_one(self, write: ChunkWrite) -> ChunkWriteResult:
        backend = self.buckets[write.bucket_index]
        try:
            await backend.put(write.chunk_id, write.data)
        except asyncio.CancelledError:
            logger.debug(f"Put of chunk {write.chunk_id} to {backend.name} cancelled")
            raise
        except Exception as e:
            logger.error(f"Error writing chunk {write.chunk_id} to {backend.name}: {e}")
            return ChunkWriteResult(write=write, status=WriteStatus.FAILED, error=e)

        logger.info(f"Chunk {write.bucket_index + 1} saved to {backend.name} ({len(write.data)} bytes)")
        return ChunkWriteResult(write=write, status=WriteStatus.WRITTEN)

    @staticmethod
    async def _cancel(tasks) -> None:
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    @staticmethod
    def _result(task: asyncio.Task, write: ChunkWrite) -> ChunkWriteResult:
        if task.cancelled():
            return ChunkWriteResult(write=write, status=WriteStatus.CANCELLED)
        return task.result()

    async def write_all(self, writes: Sequence[ChunkWrite]) -> List[ChunkRef]:
        """
        Store every chunk of one file.

        Returns:
            References to the stored chunks, in bucket order

        Raises:
            ChunkWriteError: Carrying the first put failure, after sibling puts
                have been cancelled and leftover chunks cleaned up
        """
        self._validate(writes)

        tasks = {
            asyncio.create_task(self._write_one(write), name=f"write-chunk-{write.bucket_index}"): write
            for write in writes
        }
        failures: List[ChunkWriteResult] = []
        pending = set(tasks)

        try:
            while pending and not failures:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                failures.extend(
                    result for result in (task.result() for task in done)
                    if result.status is WriteStatus.FAILED
                )
            await self._cancel(pending)
        except asyncio.CancelledError:
            await self._cancel(pending)
            leftovers = [
                write.to_ref() for task, write in tasks.items()
                if self._result(task, write).status is not WriteStatus.FAILED
            ]
            await self.cleaner.cleanup(leftovers, reason="upload cancelled")
            raise

        results = [self._result(task, write) for task, write in tasks.items()]
        written = [r.write.to_ref() for r in results if r.status is WriteStatus.WRITTEN]

        if failures:
            first_write, first_error = failures[0].write, failures[0].error
            cancelled = [r.write.to_ref() for r in results if r.status is WriteStatus.CANCELLED]
            failed = sum(1 for r in results if r.status is WriteStatus.FAILED)
            logger.error(
                f"Fan-out failed: {failed} failed, {len(written)} written, {len(cancelled)} cancelled"
            )
            # a cancelled put may already have reached the bucket
            await self.cleaner.cleanup(written + cancelled, reason=f"chunk write failed: {first_error}")
            raise ChunkWriteError(
                f"Failed to write chunk {first_write.chunk_id} to bucket {first_write.bucket_index + 1}: {first_error}",
                bucket_index=first_write.bucket_index,
                chunk_id=first_write.chunk_id,
            ) from first_error

        return sorted(written, key=lambda ref: ref.bucket_index)
