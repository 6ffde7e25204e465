"""Splits a file length into N contiguous byte ranges."""

from typing import List

from common.exceptions import PartitionError
from common.types import ByteRange


def chunk_size_for(total_size: int, fanout: int) -> int:
    """Ceiling of ``total_size / fanout``."""
    return -(-total_size // fanout)


def partition(total_size: int, fanout: int) -> List[ByteRange]:
    """
    Compute ``fanout`` ranges that cover ``[0, total_size)`` exactly once.

    Every range has ``ceil(total_size / fanout)`` bytes except the last ones,
    which take the remainder. When the file is short relative to the fan-out
    the trailing ranges start past the end and are clamped to the empty range
    ``[total_size, total_size)``; a zero-length file gives ``fanout`` empty ranges.

    Raises:
        PartitionError: If total_size is negative or fanout is below 1
    """
    if fanout < 1:
        raise PartitionError(f"Fan-out must be at least 1, got {fanout}")
    if total_size < 0:
        raise PartitionError(f"File length cannot be negative, got {total_size}")

    size = chunk_size_for(total_size, fanout)
    ranges = []
    for i in range(fanout):
        start = min(i * size, total_size)
        end = total_size if i == fanout - 1 else min((i + 1) * size, total_size)
        ranges.append(ByteRange(start=start, end=end))
    return ranges
