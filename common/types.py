"""Shared data type definitions (ByteRange, ChunkRef)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ByteRange:
    """
    Half-open range ``[start, end)`` of a file's bytes.
    """
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ChunkRef:
    """
    Location of one stored chunk: the bucket that holds it and its identifier.
    """
    bucket_index: int
    chunk_id: str
    size: int
