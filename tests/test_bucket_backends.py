"""Tests for the local-directory and HTTP bucket backends."""

import asyncio

import httpx
import pytest

from bucketserver.chunk_storage import ChunkStorage
from bucketserver.main import app as bucket_app
from common.exceptions import BucketError, BucketUnavailableError, ChunkNotFoundError
from fileserver.bucket_backends import (
    BucketSet,
    HttpBucketBackend,
    LocalBucketBackend,
    build_bucket_set,
)


@pytest.fixture
def local_backend(tmp_path):
    return LocalBucketBackend(0, tmp_path / "bucket1")


@pytest.fixture
def http_backend(tmp_path):
    bucket_app.state.storage = ChunkStorage(tmp_path / "remote")
    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=bucket_app),
        base_url="http://bucket1",
    )
    yield HttpBucketBackend(0, "http://bucket1", client=client)
    del bucket_app.state.storage


class TestLocalBucketBackend:
    """Local directory bucket."""

    @pytest.mark.asyncio
    async def test_put_get_roundtrip(self, local_backend):
        await local_backend.put("c1", b"payload")

        assert await local_backend.get("c1") == b"payload"
        assert await local_backend.exists("c1")

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, local_backend):
        with pytest.raises(ChunkNotFoundError):
            await local_backend.get("nope")

    @pytest.mark.asyncio
    async def test_delete(self, local_backend):
        await local_backend.put("c1", b"x")

        assert await local_backend.delete("c1") is True
        assert await local_backend.delete("c1") is False
        assert not await local_backend.exists("c1")

    @pytest.mark.asyncio
    async def test_cancelled_put_finishes_before_returning(self, local_backend):
        task = asyncio.create_task(local_backend.put("c1", b"late"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        # the write landed, so a follow-up delete removes it
        assert await local_backend.exists("c1")
        assert await local_backend.delete("c1") is True

    @pytest.mark.asyncio
    async def test_ping_creates_directory(self, local_backend, tmp_path):
        assert await local_backend.ping() is True
        assert (tmp_path / "bucket1").is_dir()

    @pytest.mark.asyncio
    async def test_write_failure_becomes_bucket_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        backend = LocalBucketBackend(0, blocker)

        with pytest.raises(BucketError):
            await backend.put("c1", b"x")

    def test_name_is_one_based(self, tmp_path):
        assert LocalBucketBackend(2, tmp_path).name == "bucket3"


class TestHttpBucketBackend:
    """Bucket served by the bucket server app."""

    @pytest.mark.asyncio
    async def test_put_get_roundtrip(self, http_backend):
        await http_backend.put("c1", b"remote bytes")

        assert await http_backend.get("c1") == b"remote bytes"
        assert await http_backend.exists("c1")

    @pytest.mark.asyncio
    async def test_empty_chunk(self, http_backend):
        await http_backend.put("empty", b"")

        assert await http_backend.get("empty") == b""

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, http_backend):
        with pytest.raises(ChunkNotFoundError):
            await http_backend.get("missing")
        assert not await http_backend.exists("missing")

    @pytest.mark.asyncio
    async def test_delete(self, http_backend):
        await http_backend.put("c1", b"x")

        assert await http_backend.delete("c1") is True
        assert await http_backend.delete("c1") is False

    @pytest.mark.asyncio
    async def test_ping(self, http_backend):
        assert await http_backend.ping() is True

    @pytest.mark.asyncio
    async def test_connection_failure_is_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://down")
        backend = HttpBucketBackend(1, "http://down", client=client)

        with pytest.raises(BucketUnavailableError):
            await backend.put("c1", b"x")
        assert await backend.ping() is False

    @pytest.mark.asyncio
    async def test_server_error_is_bucket_error(self):
        def broken(request):
            return httpx.Response(500, json={"detail": "boom"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(broken), base_url="http://b")
        backend = HttpBucketBackend(0, "http://b", client=client)

        with pytest.raises(BucketError):
            await backend.put("c1", b"x")
        with pytest.raises(BucketError):
            await backend.get("c1")


class TestBucketSet:
    """Ordered bucket collection."""

    def test_fanout_and_indexing(self, tmp_path):
        buckets = BucketSet([LocalBucketBackend(i, tmp_path / str(i)) for i in range(3)])

        assert buckets.fanout == 3
        assert len(buckets) == 3
        assert buckets[1].bucket_index == 1
        assert [b.name for b in buckets] == ["bucket1", "bucket2", "bucket3"]

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            BucketSet([])

    def test_rejects_misordered_backends(self, tmp_path):
        with pytest.raises(ValueError):
            BucketSet([LocalBucketBackend(1, tmp_path), LocalBucketBackend(0, tmp_path)])

    def test_build_local_buckets(self, tmp_path):
        buckets = build_bucket_set(3, str(tmp_path))

        assert buckets.fanout == 3
        assert all(isinstance(b, LocalBucketBackend) for b in buckets)
        assert buckets[2].storage.root == tmp_path / "bucket3"

    @pytest.mark.asyncio
    async def test_build_remote_buckets(self, tmp_path):
        buckets = build_bucket_set(3, str(tmp_path), ["http://b1:8100", "http://b2:8100/"])

        assert buckets.fanout == 2
        assert all(isinstance(b, HttpBucketBackend) for b in buckets)
        assert buckets[1].base_url == "http://b2:8100"
        await buckets.close()
