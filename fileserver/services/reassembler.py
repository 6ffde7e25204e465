"""Ordered reconstruction of a file from its chunks."""

from typing import AsyncIterator, Tuple

from common.exceptions import ChunkIntegrityError, ChunkNotFoundError, ChunkReadError
from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.bucket_backends import BucketSet
from fileserver.repositories.file_repository import FileRecord, FileRepository

logger = get_logger(__name__)


class Reassembler:
    """
    Reads a file's chunks from bucket 0 to bucket N-1, strictly in that order.

    Every chunk is checked against the size recorded in the catalog before any
    of its bytes are emitted, and the running total is checked against the
    recorded file size, so a short or truncated read always ends in
    ``ChunkReadError`` instead of a silently shorter file.
    """

    def __init__(self, file_repository: FileRepository, buckets: BucketSet):
        self.file_repository = file_repository
        self.buckets = buckets

    async def _read_chunk(self, record: FileRecord, chunk: ChunkRef) -> bytes:
        if chunk.bucket_index >= len(self.buckets):
            raise ChunkReadError(
                f"File {record.file_id} references bucket {chunk.bucket_index + 1}, "
                f"but only {len(self.buckets)} bucket(s) are configured",
                bucket_index=chunk.bucket_index,
                chunk_id=chunk.chunk_id,
            )

        backend = self.buckets[chunk.bucket_index]
        try:
            data = await backend.get(chunk.chunk_id)
        except ChunkNotFoundError as e:
            logger.error(f"Chunk {chunk.chunk_id} of file {record.file_id} missing from {backend.name}")
            raise ChunkReadError(
                f"Chunk {chunk.chunk_id} missing from {backend.name}",
                bucket_index=chunk.bucket_index,
                chunk_id=chunk.chunk_id,
            ) from e
        except Exception as e:
            logger.error(f"Error reading chunk {chunk.chunk_id} of file {record.file_id} from {backend.name}: {e}")
            raise ChunkReadError(
                f"Failed to read chunk {chunk.chunk_id} from {backend.name}: {e}",
                bucket_index=chunk.bucket_index,
                chunk_id=chunk.chunk_id,
            ) from e

        if len(data) != chunk.size:
            raise ChunkIntegrityError(
                f"Chunk {chunk.chunk_id} in {backend.name} has {len(data)} bytes, expected {chunk.size}",
                bucket_index=chunk.bucket_index,
                chunk_id=chunk.chunk_id,
            )
        return data

    async def open(self, file_id: int) -> Tuple[FileRecord, AsyncIterator[bytes]]:
        """
        Resolve ``file_id`` and return its record with an ordered byte stream.

        The catalog lookup and the first chunk read happen before this returns,
        so a missing record or an unreadable first bucket is raised here rather
        than after the transport has started sending data.

        Raises:
            FileRecordNotFoundError: If the catalog has no record for the id
            ChunkReadError: If the first chunk cannot be read
        """
        record = self.file_repository.get_by_id(file_id)
        if not record.chunks:
            raise ChunkReadError(f"File {file_id} has no chunks in the catalog")

        first_chunk = await self._read_chunk(record, record.chunks[0])

        async def stream_file_data() -> AsyncIterator[bytes]:
            total_chunks = len(record.chunks)
            bytes_streamed = 0
            logger.info(f"Starting download of file {record.file_id} ({total_chunks} chunks, {record.size} bytes)")

            for position, chunk in enumerate(record.chunks):
                data = first_chunk if position == 0 else await self._read_chunk(record, chunk)
                bytes_streamed += len(data)
                if data:
                    yield data

            if bytes_streamed != record.size:
                raise ChunkIntegrityError(
                    f"File {record.file_id} reassembled to {bytes_streamed} bytes, expected {record.size}"
                )
            logger.info(f"File {record.name} (ID: {record.file_id}) downloaded successfully: {bytes_streamed} bytes")

        return record, stream_file_data()

    async def read_all(self, file_id: int) -> Tuple[FileRecord, bytes]:
        """
        Reassemble the whole file in memory, validating it before returning anything.
        """
        record, stream = await self.open(file_id)
        data = b"".join([piece async for piece in stream])
        return record, data
