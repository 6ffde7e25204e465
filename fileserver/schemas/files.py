"""Pydantic schemas for file operation endpoints."""

from typing import List

from pydantic import BaseModel

from fileserver.repositories.file_repository import FileRecord


class ChunkResponse(BaseModel):
    """One chunk of a stored file."""
    bucket: int
    chunk_id: str
    size: int


class UploadFileResponse(BaseModel):
    """Response model for file upload."""
    file_id: int
    name: str
    size: int
    chunk_count: int


class FileMetadataResponse(BaseModel):
    """Response model for file metadata."""
    file_id: int
    name: str
    size: int
    created_at: str
    chunks: List[ChunkResponse]

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileMetadataResponse":
        return cls(
            file_id=record.file_id,
            name=record.name,
            size=record.size,
            created_at=record.created_at.isoformat(),
            chunks=[
                ChunkResponse(bucket=chunk.bucket_index + 1, chunk_id=chunk.chunk_id, size=chunk.size)
                for chunk in record.chunks
            ],
        )


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileMetadataResponse]
