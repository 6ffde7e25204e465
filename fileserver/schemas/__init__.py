"""Pydantic schemas for API responses."""

from fileserver.schemas.common import ErrorResponse
from fileserver.schemas.files import (
    ChunkResponse,
    FileMetadataResponse,
    ListFilesResponse,
    UploadFileResponse,
)

__all__ = [
    "ChunkResponse",
    "ErrorResponse",
    "FileMetadataResponse",
    "ListFilesResponse",
    "UploadFileResponse",
]
