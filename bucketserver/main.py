"""Entry point for the bucket server.
Serves one bucket directory over HTTP so the file server can fan chunks out to it.
"""

import asyncio
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse

from bucketserver.chunk_storage import ChunkStorage
from bucketserver.config import BUCKET_DATA_PATH, BUCKETSERVER_HOST, BUCKETSERVER_PORT
from common.exceptions import ChunkNotFoundError, InvalidChunkIdError
from common.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

app = FastAPI(
    title="SplitStore Bucket Server",
    description="Key/value chunk store for a single bucket",
    version="1.0.0"
)


@app.on_event("startup")
async def startup_event():
    setup_logging('bucketserver')
    if not hasattr(app.state, "storage"):
        app.state.storage = ChunkStorage(Path(BUCKET_DATA_PATH))
    app.state.storage.ensure_directory()
    logger.info(f"Bucket server serving {app.state.storage.root}")


def get_chunk_storage(request: Request) -> ChunkStorage:
    return request.app.state.storage


@app.exception_handler(ChunkNotFoundError)
async def chunk_not_found_handler(request: Request, exc: ChunkNotFoundError):
    logger.warning(f"Chunk not found: {exc} path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "code": "CHUNK_NOT_FOUND"}
    )


@app.exception_handler(InvalidChunkIdError)
async def invalid_chunk_id_handler(request: Request, exc: InvalidChunkIdError):
    logger.warning(f"Invalid chunk id: {exc} path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "code": "INVALID_CHUNK_ID"}
    )


@app.put("/chunks/{chunk_id}", status_code=status.HTTP_201_CREATED)
async def put_chunk(chunk_id: str, request: Request, storage: ChunkStorage = Depends(get_chunk_storage)):
    """
    Store the raw request body under ``chunk_id``.
    """
    data = await request.body()
    await asyncio.to_thread(storage.write_chunk, chunk_id, data)
    logger.info(f"Stored chunk {chunk_id} ({len(data)} bytes)")
    return {"chunk_id": chunk_id, "size": len(data)}


@app.get("/chunks/{chunk_id}")
async def get_chunk(chunk_id: str, storage: ChunkStorage = Depends(get_chunk_storage)):
    """
    Stream a stored chunk; the declared length lets the caller detect a short read.
    """
    size = await asyncio.to_thread(storage.get_chunk_size, chunk_id)
    if size is None:
        raise ChunkNotFoundError(f"Chunk {chunk_id} not found")
    return StreamingResponse(
        storage.read_chunk_streaming(chunk_id),
        media_type="application/octet-stream",
        headers={"Content-Length": str(size)},
    )


@app.head("/chunks/{chunk_id}")
async def head_chunk(chunk_id: str, storage: ChunkStorage = Depends(get_chunk_storage)):
    size = await asyncio.to_thread(storage.get_chunk_size, chunk_id)
    if size is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(
        status_code=status.HTTP_200_OK,
        media_type="application/octet-stream",
        headers={"Content-Length": str(size)},
    )


@app.delete("/chunks/{chunk_id}")
async def delete_chunk(chunk_id: str, storage: ChunkStorage = Depends(get_chunk_storage)):
    deleted = await asyncio.to_thread(storage.delete_chunk, chunk_id)
    if deleted:
        logger.info(f"Deleted chunk {chunk_id}")
    return {"chunk_id": chunk_id, "deleted": deleted}


@app.get("/health")
async def health_check(storage: ChunkStorage = Depends(get_chunk_storage)):
    """
    Health check endpoint; reports the served directory.
    """
    return {"status": "healthy", "service": "bucketserver", "root": str(storage.root)}


def main() -> None:
    """
    Start the bucket server with uvicorn.
    """
    uvicorn.run(
        "bucketserver.main:app",
        host=BUCKETSERVER_HOST,
        port=BUCKETSERVER_PORT,
    )


if __name__ == "__main__":
    main()
