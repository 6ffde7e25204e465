"""File operation API routes."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from fileserver.schemas.common import ErrorResponse
from fileserver.schemas.files import (
    FileMetadataResponse,
    ListFilesResponse,
    UploadFileResponse,
)
from fileserver.services.file_service import FileService

router = APIRouter(prefix="/files", tags=["Files"])


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "_")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post(
    "",
    response_model=UploadFileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={503: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_file(
    file: UploadFile = File(...),
    file_service: FileService = Depends(get_file_service),
):
    """
    Upload a file; it is split into one chunk per bucket.

    Parameters:
        - file: File to upload (multipart/form-data)

    Returns:
        - file_id: Catalog id of the uploaded file
        - name: Original filename
        - size: File size in bytes
        - chunk_count: Number of chunks written

    Raises:
        - 500: Catalog write failed
        - 503: A bucket rejected its chunk
    """
    file_content = await file.read()

    record = await file_service.upload_file(
        file_name=file.filename or "upload",
        data=file_content,
    )

    return UploadFileResponse(
        file_id=record.file_id,
        name=record.name,
        size=record.size,
        chunk_count=len(record.chunks),
    )


@router.get("", response_model=ListFilesResponse)
async def list_files(file_service: FileService = Depends(get_file_service)):
    """
    List every stored file, oldest first.
    """
    files = file_service.list_files()
    return ListFilesResponse(files=[FileMetadataResponse.from_record(record) for record in files])


@router.get(
    "/{file_id}",
    response_model=FileMetadataResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_file(file_id: int, file_service: FileService = Depends(get_file_service)):
    return FileMetadataResponse.from_record(file_service.get_file(file_id))


@router.get(
    "/{file_id}/download",
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def download_file(file_id: int, file_service: FileService = Depends(get_file_service)):
    """
    Download a file by file_id.

    The first chunk is read before the response starts, so a missing file or
    an unreadable first bucket is reported with a proper status code. The
    declared Content-Length lets clients detect a stream that fails later.

    Raises:
        - 404: File not found
        - 503: A bucket could not serve its chunk
    """
    record, stream_generator = await file_service.download_file(file_id)

    return StreamingResponse(
        stream_generator,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": _content_disposition(record.name),
            "Content-Length": str(record.size),
        }
    )
