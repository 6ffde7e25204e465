"""Bucket backends: the N key/value chunk stores a file is fanned out to."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import httpx

from bucketserver.chunk_storage import ChunkStorage
from common.constants import BUCKET_TIMEOUT_SECONDS
from common.exceptions import BucketError, BucketUnavailableError, ChunkNotFoundError
from common.logging_config import get_logger

logger = get_logger(__name__)


class BucketBackend(ABC):
    """
    Contract every bucket store implements. Chunks are addressed by an opaque
    identifier that is unique within the bucket.
    """

    def __init__(self, bucket_index: int):
        self.bucket_index = bucket_index

    @property
    def name(self) -> str:
        return f"bucket{self.bucket_index + 1}"

    @abstractmethod
    async def put(self, chunk_id: str, data: bytes) -> None:
        """
        Store ``data`` under ``chunk_id``.

        Raises:
            BucketError: If the bytes could not be stored
        """

    @abstractmethod
    async def get(self, chunk_id: str) -> bytes:
        """
        Raises:
            ChunkNotFoundError: If nothing is stored under ``chunk_id``
            BucketError: For any other read failure
        """

    @abstractmethod
    async def delete(self, chunk_id: str) -> bool:
        """
        Returns:
            True if a chunk was removed, False if none existed
        """

    @abstractmethod
    async def exists(self, chunk_id: str) -> bool:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Report whether the bucket is reachable."""

    async def close(self) -> None:
        pass


class LocalBucketBackend(BucketBackend):
    """
    Bucket stored in a local directory; blocking file I/O runs in worker threads.
    """

    def __init__(self, bucket_index: int, root: Path):
        super().__init__(bucket_index)
        self.storage = ChunkStorage(root)

    async def put(self, chunk_id: str, data: bytes) -> None:
        write = asyncio.ensure_future(asyncio.to_thread(self.storage.write_chunk, chunk_id, data))
        try:
            path = await asyncio.shield(write)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; wait for it so a later delete sees the chunk
            await asyncio.wait([write])
            raise
        except OSError as e:
            raise BucketError(f"{self.name}: failed to write chunk {chunk_id}: {e}") from e
        logger.debug(f"Chunk {chunk_id} saved to {path}")

    async def get(self, chunk_id: str) -> bytes:
        try:
            return await asyncio.to_thread(self.storage.read_chunk, chunk_id)
        except ChunkNotFoundError:
            raise
        except OSError as e:
            raise BucketError(f"{self.name}: failed to read chunk {chunk_id}: {e}") from e

    async def delete(self, chunk_id: str) -> bool:
        try:
            return await asyncio.to_thread(self.storage.delete_chunk, chunk_id)
        except OSError as e:
            raise BucketError(f"{self.name}: failed to delete chunk {chunk_id}: {e}") from e

    async def exists(self, chunk_id: str) -> bool:
        return await asyncio.to_thread(self.storage.chunk_exists, chunk_id)

    async def ping(self) -> bool:
        try:
            await asyncio.to_thread(self.storage.ensure_directory)
            return True
        except OSError:
            return False

    def __repr__(self) -> str:
        return f"LocalBucketBackend({self.bucket_index}, {str(self.storage.root)!r})"


class HttpBucketBackend(BucketBackend):
    """
    Bucket served by a remote bucket server (see ``bucketserver.main``).
    """

    def __init__(
        self,
        bucket_index: int,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = BUCKET_TIMEOUT_SECONDS,
    ):
        super().__init__(bucket_index)
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise BucketUnavailableError(f"{self.name} at {self.base_url} is unavailable: {e}") from e
        except httpx.HTTPError as e:
            raise BucketError(f"{self.name}: {method} {path} failed: {e}") from e

    async def put(self, chunk_id: str, data: bytes) -> None:
        response = await self._request(
            "PUT",
            f"/chunks/{chunk_id}",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if response.status_code != 201:
            raise BucketError(
                f"{self.name}: storing chunk {chunk_id} returned status {response.status_code}"
            )

    async def get(self, chunk_id: str) -> bytes:
        response = await self._request("GET", f"/chunks/{chunk_id}")
        if response.status_code == 404:
            raise ChunkNotFoundError(f"Chunk {chunk_id} not found in {self.name}")
        if response.status_code != 200:
            raise BucketError(
                f"{self.name}: reading chunk {chunk_id} returned status {response.status_code}"
            )
        return response.content

    async def delete(self, chunk_id: str) -> bool:
        response = await self._request("DELETE", f"/chunks/{chunk_id}")
        if response.status_code != 200:
            raise BucketError(
                f"{self.name}: deleting chunk {chunk_id} returned status {response.status_code}"
            )
        return bool(response.json().get("deleted"))

    async def exists(self, chunk_id: str) -> bool:
        response = await self._request("HEAD", f"/chunks/{chunk_id}")
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise BucketError(
                f"{self.name}: checking chunk {chunk_id} returned status {response.status_code}"
            )
        return True

    async def ping(self) -> bool:
        try:
            response = await self._request("GET", "/health")
        except BucketError:
            return False
        return response.status_code == 200

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def __repr__(self) -> str:
        return f"HttpBucketBackend({self.bucket_index}, {self.base_url!r})"


class BucketSet:
    """
    The ordered buckets of a deployment; position ``i`` holds chunk ``i`` of every file.
    """

    def __init__(self, backends: Sequence[BucketBackend]):
        if not backends:
            raise ValueError("At least one bucket is required")
        for index, backend in enumerate(backends):
            if backend.bucket_index != index:
                raise ValueError(
                    f"Bucket at position {index} reports index {backend.bucket_index}"
                )
        self._backends: List[BucketBackend] = list(backends)

    @property
    def fanout(self) -> int:
        return len(self._backends)

    def __len__(self) -> int:
        return len(self._backends)

    def __getitem__(self, bucket_index: int) -> BucketBackend:
        return self._backends[bucket_index]

    def __iter__(self) -> Iterator[BucketBackend]:
        return iter(self._backends)

    async def close(self) -> None:
        for backend in self._backends:
            await backend.close()


def build_bucket_set(bucket_count: int, bucket_root: str, bucket_urls: Sequence[str] = ()) -> BucketSet:
    """
    Build the deployment's buckets: remote bucket servers when URLs are given,
    otherwise ``<bucket_root>/bucket1`` .. ``bucketN`` directories.
    """
    if bucket_urls:
        logger.info(f"Using {len(bucket_urls)} remote bucket(s): {', '.join(bucket_urls)}")
        return BucketSet([HttpBucketBackend(i, url) for i, url in enumerate(bucket_urls)])

    root = Path(bucket_root)
    logger.info(f"Using {bucket_count} local bucket(s) under {root}")
    return BucketSet([LocalBucketBackend(i, root / f"bucket{i + 1}") for i in range(bucket_count)])
