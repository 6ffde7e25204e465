"""Orphan ledger: chunks that exist in a bucket without any catalog reference."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from common.logging_config import get_logger
from common.types import ChunkRef
from fileserver.database import get_db_connection
from fileserver.utils import get_current_timestamp

logger = get_logger(__name__)


@dataclass
class OrphanedChunk:
    bucket_index: int
    chunk_id: str
    reason: str
    attempts: int
    recorded_at: datetime


class OrphanRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def record_orphans(self, chunks: Iterable[ChunkRef], reason: str = "") -> int:
        """
        Add chunks to the ledger; chunks already listed keep their first entry.

        Returns:
            Number of chunks passed in
        """
        rows = [
            (chunk.bucket_index, chunk.chunk_id, reason, get_current_timestamp().isoformat())
            for chunk in chunks
        ]
        if not rows:
            return 0

        with get_db_connection(self.db_path) as conn:
            try:
                conn.executemany(
                    """
                    INSERT OR IGNORE INTO orphaned_chunks (bucket_index, chunk_id, reason, recorded_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    rows
                )
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Failed to record {len(rows)} orphaned chunk(s): {e}", exc_info=True)
                raise

        logger.warning(f"Recorded {len(rows)} orphaned chunk(s) for later cleanup")
        return len(rows)

    def list_orphans(self, limit: int = 500) -> List[OrphanedChunk]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                SELECT bucket_index, chunk_id, reason, attempts, recorded_at
                FROM orphaned_chunks
                ORDER BY recorded_at
                LIMIT ?
                """,
                (limit,)
            )
            rows = cursor.fetchall()

        return [
            OrphanedChunk(
                bucket_index=row["bucket_index"],
                chunk_id=row["chunk_id"],
                reason=row["reason"],
                attempts=row["attempts"],
                recorded_at=datetime.fromisoformat(row["recorded_at"]),
            )
            for row in rows
        ]

    def remove_orphan(self, bucket_index: int, chunk_id: str) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "DELETE FROM orphaned_chunks WHERE bucket_index = ? AND chunk_id = ?",
                (bucket_index, chunk_id)
            )
            conn.commit()

    def increment_attempts(self, bucket_index: int, chunk_id: str) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE orphaned_chunks SET attempts = attempts + 1 WHERE bucket_index = ? AND chunk_id = ?",
                (bucket_index, chunk_id)
            )
            conn.commit()

    def count(self) -> int:
        with get_db_connection(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM orphaned_chunks").fetchone()[0]
