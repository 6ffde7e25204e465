"""File service: the upload and download entry points."""

from typing import AsyncIterator, List, Tuple

from common.exceptions import CatalogError
from common.logging_config import get_logger
from fileserver.bucket_backends import BucketSet
from fileserver.partitioner import partition
from fileserver.repositories.file_repository import FileRecord, FileRepository
from fileserver.services.chunk_cleanup import ChunkCleaner
from fileserver.services.fanout_writer import ChunkWrite, FanoutWriter
from fileserver.services.reassembler import Reassembler
from fileserver.utils import generate_uuid

logger = get_logger(__name__)


class FileService:
    def __init__(
        self,
        file_repository: FileRepository,
        buckets: BucketSet,
        cleaner: ChunkCleaner,
    ):
        if file_repository.fanout != buckets.fanout:
            raise ValueError(
                f"Catalog expects {file_repository.fanout} chunks per file "
                f"but {buckets.fanout} bucket(s) are configured"
            )
        self.file_repo = file_repository
        self.buckets = buckets
        self.cleaner = cleaner
        self.writer = FanoutWriter(buckets, cleaner)
        self.reassembler = Reassembler(file_repository, buckets)

    def _split(self, data: bytes) -> List[ChunkWrite]:
        return [
            ChunkWrite(bucket_index=i, chunk_id=generate_uuid(), data=data[r.start:r.end])
            for i, r in enumerate(partition(len(data), self.buckets.fanout))
        ]

    async def upload_file(self, file_name: str, data: bytes) -> FileRecord:
        """
        Split ``data`` across the buckets and record it in the catalog.

        The catalog record is only created once every chunk is stored. If the
        catalog insert fails, the stored chunks are deleted again before the
        error propagates.

        Raises:
            ChunkWriteError: If any bucket put fails
            CatalogWriteError: If the record cannot be created
        """
        writes = self._split(data)
        logger.info(f"Uploading {file_name!r} ({len(data)} bytes) as {len(writes)} chunks")

        chunks = await self.writer.write_all(writes)

        try:
            record = self.file_repo.create_file(name=file_name, size=len(data), chunks=chunks)
        except CatalogError as e:
            logger.error(f"Upload of {file_name!r} failed after chunks were written: {e}")
            await self.cleaner.cleanup(chunks, reason=f"catalog write failed: {e}")
            raise

        logger.info(f"Uploaded {file_name!r} as file {record.file_id}")
        return record

    async def download_file(self, file_id: int) -> Tuple[FileRecord, AsyncIterator[bytes]]:
        """
        Raises:
            FileRecordNotFoundError: If no record exists for the id
            ChunkReadError: If the first chunk cannot be read
        """
        return await self.reassembler.open(file_id)

    async def read_file(self, file_id: int) -> Tuple[FileRecord, bytes]:
        return await self.reassembler.read_all(file_id)

    def get_file(self, file_id: int) -> FileRecord:
        return self.file_repo.get_by_id(file_id)

    def list_files(self) -> List[FileRecord]:
        return self.file_repo.list_files()
