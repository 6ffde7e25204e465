"""Exception hierarchy shared by the file server, bucket backends and bucket server."""


class SplitStoreError(Exception):
    """
    Base exception class for all SplitStore errors.
    """
    pass


class PartitionError(SplitStoreError):
    """
    Raised when a file cannot be partitioned (negative length or fan-out below 1).
    """
    pass


class BucketError(SplitStoreError):
    """
    Raised when a bucket backend fails to store, read or delete a chunk.
    """
    pass


class ChunkNotFoundError(BucketError):
    """
    Raised when a bucket has no chunk under the requested identifier.
    """
    pass


class BucketUnavailableError(BucketError):
    """
    Raised when a remote bucket is unreachable or times out.
    """
    pass


class InvalidChunkIdError(BucketError):
    """
    Raised when a chunk identifier cannot name a file inside the bucket directory.
    """
    pass


class ChunkWriteError(SplitStoreError):
    """
    Raised when a chunk put fails during an upload fan-out.
    """

    def __init__(self, message: str, bucket_index: int = None, chunk_id: str = None):
        super().__init__(message)
        self.bucket_index = bucket_index
        self.chunk_id = chunk_id


class ChunkReadError(SplitStoreError):
    """
    Raised when a chunk get fails during reassembly.
    """

    def __init__(self, message: str, bucket_index: int = None, chunk_id: str = None):
        super().__init__(message)
        self.bucket_index = bucket_index
        self.chunk_id = chunk_id


class ChunkIntegrityError(ChunkReadError):
    """
    Raised when a chunk or a reassembled file does not have the length recorded in the catalog.
    """
    pass


class CatalogError(SplitStoreError):
    """
    Base class for metadata catalog failures.
    """
    pass


class CatalogWriteError(CatalogError):
    """
    Raised when the catalog rejects a file record insert.
    """
    pass


class CatalogReadError(CatalogError):
    """
    Raised when the catalog cannot be queried.
    """
    pass


class FileRecordNotFoundError(SplitStoreError):
    """
    Raised when a requested file id has no catalog record.
    """
    pass
