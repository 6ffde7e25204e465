"""Repository layer for catalog access."""

from fileserver.repositories.file_repository import FileRecord, FileRepository
from fileserver.repositories.orphan_repository import OrphanedChunk, OrphanRepository

__all__ = [
    "FileRecord",
    "FileRepository",
    "OrphanedChunk",
    "OrphanRepository",
]
