"""Shared pytest fixtures for all tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from cli.config import Config
from common.exceptions import BucketError, ChunkNotFoundError
from fileserver.bucket_backends import BucketBackend, BucketSet, LocalBucketBackend
from fileserver.database import init_database
from fileserver.repositories.file_repository import FileRepository
from fileserver.repositories.orphan_repository import OrphanRepository
from fileserver.services.chunk_cleanup import ChunkCleaner
from fileserver.services.file_service import FileService


class MemoryBucketBackend(BucketBackend):
    """
    In-memory bucket with switchable failure modes for fault injection.
    """

    def __init__(
        self,
        bucket_index: int,
        fail_put: bool = False,
        fail_get: bool = False,
        fail_delete: bool = False,
        put_delay: float = 0.0,
    ):
        super().__init__(bucket_index)
        self.chunks: Dict[str, bytes] = {}
        self.fail_put = fail_put
        self.fail_get = fail_get
        self.fail_delete = fail_delete
        self.put_delay = put_delay
        self.put_calls: List[str] = []
        self.delete_calls: List[str] = []

    async def put(self, chunk_id: str, data: bytes) -> None:
        self.put_calls.append(chunk_id)
        if self.put_delay:
            await asyncio.sleep(self.put_delay)
        if self.fail_put:
            raise BucketError(f"{self.name}: disk full")
        self.chunks[chunk_id] = bytes(data)

    async def get(self, chunk_id: str) -> bytes:
        if self.fail_get:
            raise BucketError(f"{self.name}: read error")
        if chunk_id not in self.chunks:
            raise ChunkNotFoundError(f"Chunk {chunk_id} not found in {self.name}")
        return self.chunks[chunk_id]

    async def delete(self, chunk_id: str) -> bool:
        self.delete_calls.append(chunk_id)
        if self.fail_delete:
            raise BucketError(f"{self.name}: delete refused")
        return self.chunks.pop(chunk_id, None) is not None

    async def exists(self, chunk_id: str) -> bool:
        return chunk_id in self.chunks

    async def ping(self) -> bool:
        return not (self.fail_get or self.fail_put)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .splitstore directory
    """
    config_dir = tmp_path / '.splitstore'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, tmp_path):
    """
    Create temporary config instance with downloads going under tmp_path.
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['download_dir'] = str(tmp_path / 'downloads')
    return config


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def db_path(tmp_path) -> str:
    """
    Create a migrated catalog database for each test.
    """
    path = tmp_path / "catalog.db"
    init_database(str(path))
    return str(path)


@pytest.fixture
def memory_buckets():
    """Factory for a BucketSet of in-memory buckets."""
    def make(fanout: int = 3) -> BucketSet:
        return BucketSet([MemoryBucketBackend(i) for i in range(fanout)])
    return make


@pytest.fixture
def local_buckets(tmp_path) -> BucketSet:
    """Three directory buckets under tmp_path."""
    root = tmp_path / "buckets"
    return BucketSet([LocalBucketBackend(i, root / f"bucket{i + 1}") for i in range(3)])


@pytest.fixture
def orphan_repository(db_path) -> OrphanRepository:
    return OrphanRepository(db_path)


@pytest.fixture
def make_file_service(db_path, orphan_repository):
    """Factory wiring a FileService over the given buckets and the temp catalog."""
    def make(buckets: BucketSet, file_repository: Optional[FileRepository] = None) -> FileService:
        cleaner = ChunkCleaner(buckets, orphan_repository=orphan_repository, base_delay=0)
        repository = file_repository or FileRepository(db_path, fanout=buckets.fanout)
        return FileService(repository, buckets, cleaner)
    return make
