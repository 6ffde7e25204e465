"""File repository: the metadata catalog mapping file ids to their chunks."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence, Tuple

from common.exceptions import CatalogReadError, CatalogWriteError, FileRecordNotFoundError
from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.database import get_db_connection
from fileserver.utils import get_current_timestamp

logger = get_logger(__name__)

MIN_ROWID = -(2 ** 63)
MAX_ROWID = 2 ** 63 - 1


@dataclass(frozen=True)
class FileRecord:
    file_id: int
    name: str
    size: int
    created_at: datetime
    chunks: Tuple[ChunkRef, ...] = ()

    @property
    def chunk_ids(self) -> List[str]:
        return [chunk.chunk_id for chunk in self.chunks]


class FileRepository:
    """
    Catalog of uploaded files.

    A record and its N chunk rows are inserted in one transaction, so either
    the whole record is visible or none of it is.
    """

    def __init__(self, db_path: str, fanout: int):
        if fanout < 1:
            raise ValueError("fanout must be at least 1")
        self.db_path = db_path
        self.fanout = fanout

    def create_file(self, name: str, size: int, chunks: Sequence[ChunkRef]) -> FileRecord:
        """
        Insert a file record with exactly one chunk per bucket.

        Raises:
            CatalogWriteError: If the chunk list does not cover buckets 0..N-1
                or the store rejects the insert
        """
        ordered = sorted(chunks, key=lambda chunk: chunk.bucket_index)
        if [chunk.bucket_index for chunk in ordered] != list(range(self.fanout)):
            raise CatalogWriteError(
                f"File {name!r} needs exactly one chunk for each of {self.fanout} buckets, "
                f"got bucket indexes {[chunk.bucket_index for chunk in chunks]}"
            )
        if sum(chunk.size for chunk in ordered) != size:
            raise CatalogWriteError(f"Chunk sizes of {name!r} do not add up to {size} bytes")

        created_at = get_current_timestamp()
        logger.debug(f"Creating file record [name={name}, size={size}, chunks={len(ordered)}]")

        try:
            with get_db_connection(self.db_path) as conn:
                try:
                    cursor = conn.cursor()
                    cursor.execute(
                        """
                        INSERT INTO files (original_filename, size, chunk_count, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (name, size, len(ordered), created_at.isoformat())
                    )
                    file_id = cursor.lastrowid
                    cursor.executemany(
                        """
                        INSERT INTO file_chunks (file_id, bucket_index, chunk_id, size)
                        VALUES (?, ?, ?, ?)
                        """,
                        [(file_id, chunk.bucket_index, chunk.chunk_id, chunk.size) for chunk in ordered]
                    )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except sqlite3.Error as e:
            logger.error(f"Failed to create file record for {name!r}: {e}", exc_info=True)
            raise CatalogWriteError(f"Failed to create file record for {name!r}: {e}") from e

        logger.info(f"File record created [file_id={file_id}, name={name}]")
        return FileRecord(
            file_id=file_id,
            name=name,
            size=size,
            created_at=created_at,
            chunks=tuple(ordered),
        )

    def get_by_id(self, file_id: int) -> FileRecord:
        """
        Raises:
            FileRecordNotFoundError: If no record exists for the id
            CatalogReadError: If the store cannot be queried
        """
        # SQLite rowids are signed 64-bit; larger ids cannot exist
        if not MIN_ROWID <= file_id <= MAX_ROWID:
            raise FileRecordNotFoundError(f"File {file_id} not found")

        try:
            with get_db_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT id, original_filename, size, created_at FROM files WHERE id = ?",
                    (file_id,)
                )
                row = cursor.fetchone()
                if row is None:
                    raise FileRecordNotFoundError(f"File {file_id} not found")

                cursor.execute(
                    """
                    SELECT bucket_index, chunk_id, size
                    FROM file_chunks
                    WHERE file_id = ?
                    ORDER BY bucket_index
                    """,
                    (file_id,)
                )
                chunk_rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read file record {file_id}: {e}", exc_info=True)
            raise CatalogReadError(f"Failed to read file record {file_id}: {e}") from e

        return self._to_record(row, chunk_rows)

    def list_files(self) -> List[FileRecord]:
        """
        Return every file record, oldest first.

        Raises:
            CatalogReadError: If the store cannot be queried
        """
        try:
            with get_db_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id, original_filename, size, created_at FROM files ORDER BY id")
                rows = cursor.fetchall()
                cursor.execute(
                    "SELECT file_id, bucket_index, chunk_id, size FROM file_chunks ORDER BY file_id, bucket_index"
                )
                chunk_rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to list files: {e}", exc_info=True)
            raise CatalogReadError(f"Failed to list files: {e}") from e

        chunks_by_file = {}
        for chunk_row in chunk_rows:
            chunks_by_file.setdefault(chunk_row["file_id"], []).append(chunk_row)

        return [self._to_record(row, chunks_by_file.get(row["id"], [])) for row in rows]

    @staticmethod
    def _to_record(row: sqlite3.Row, chunk_rows: Sequence[sqlite3.Row]) -> FileRecord:
        return FileRecord(
            file_id=row["id"],
            name=row["original_filename"],
            size=row["size"],
            created_at=datetime.fromisoformat(row["created_at"]),
            chunks=tuple(
                ChunkRef(
                    bucket_index=chunk_row["bucket_index"],
                    chunk_id=chunk_row["chunk_id"],
                    size=chunk_row["size"],
                )
                for chunk_row in chunk_rows
            ),
        )
