"""Manages physical chunk files of one bucket directory: write, read, delete."""

import os
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

from common.constants import CHUNK_FILE_SUFFIX, STREAM_PIECE_SIZE_BYTES
from common.exceptions import ChunkNotFoundError, InvalidChunkIdError


class ChunkStorage:
    """
    Append-only chunk store rooted at a single directory.

    Chunks are written once under their identifier and never modified.
    """

    def __init__(self, root: Path):
        """
        Args:
            root: Directory holding this bucket's chunk files
        """
        self.root = Path(root)

    def ensure_directory(self) -> None:
        """Ensure the bucket directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_chunk_path(self, chunk_id: str) -> Path:
        """
        Get file path for a chunk.

        Args:
            chunk_id: UUID of the chunk

        Returns:
            Path object for chunk file

        Raises:
            InvalidChunkIdError: If the identifier would escape the bucket directory
        """
        if not chunk_id or "/" in chunk_id or "\\" in chunk_id or chunk_id in (".", ".."):
            raise InvalidChunkIdError(f"Invalid chunk id: {chunk_id!r}")
        return self.root / f"{chunk_id}{CHUNK_FILE_SUFFIX}"

    def write_chunk(self, chunk_id: str, data: bytes) -> str:
        """
        Write chunk data to disk.

        The bytes land in a temporary file first and are renamed into place,
        so a reader never observes a partially written chunk.

        Args:
            chunk_id: UUID of the chunk
            data: Raw chunk data (may be empty)

        Returns:
            String path to written file

        Raises:
            OSError: If write operation fails
        """
        self.ensure_directory()
        filepath = self.get_chunk_path(chunk_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, filepath)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return str(filepath)

    def read_chunk(self, chunk_id: str) -> bytes:
        """
        Read entire chunk from disk.

        Raises:
            ChunkNotFoundError: If chunk does not exist
            OSError: If read operation fails
        """
        filepath = self.get_chunk_path(chunk_id)
        try:
            return filepath.read_bytes()
        except FileNotFoundError as e:
            raise ChunkNotFoundError(f"Chunk {chunk_id} not found in {self.root}") from e

    def read_chunk_streaming(self, chunk_id: str, piece_size: int = STREAM_PIECE_SIZE_BYTES) -> Iterator[bytes]:
        """
        Stream chunk data in pieces.

        Args:
            chunk_id: UUID of the chunk
            piece_size: Size of each piece in bytes (default 64KB)

        Yields:
            Chunk data pieces

        Raises:
            ChunkNotFoundError: If chunk does not exist
        """
        filepath = self.get_chunk_path(chunk_id)
        try:
            f = open(filepath, 'rb')
        except FileNotFoundError as e:
            raise ChunkNotFoundError(f"Chunk {chunk_id} not found in {self.root}") from e
        with f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def delete_chunk(self, chunk_id: str) -> bool:
        """
        Delete chunk file from disk.

        Returns:
            True if file was deleted, False if it didn't exist
        """
        filepath = self.get_chunk_path(chunk_id)
        try:
            filepath.unlink()
            return True
        except FileNotFoundError:
            return False

    def chunk_exists(self, chunk_id: str) -> bool:
        return self.get_chunk_path(chunk_id).exists()

    def get_chunk_size(self, chunk_id: str) -> Optional[int]:
        """
        Get size of chunk file in bytes, or None if chunk doesn't exist.
        """
        filepath = self.get_chunk_path(chunk_id)
        if filepath.exists():
            return filepath.stat().st_size
        return None

    def list_all_chunks(self) -> List[str]:
        """
        List all chunk IDs in the bucket directory (without suffix).
        """
        if not self.root.exists():
            return []
        return [filepath.stem for filepath in self.root.glob(f"*{CHUNK_FILE_SUFFIX}")]
