"""Entry point for the SplitStore file server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import (
    CatalogError,
    ChunkReadError,
    ChunkWriteError,
    FileRecordNotFoundError,
    SplitStoreError,
)
from common.logging_config import get_logger, setup_logging
from fileserver import config
from fileserver.bucket_backends import BucketSet, build_bucket_set
from fileserver.cleanup_task import OrphanedChunkCleaner
from fileserver.database import get_db_connection, init_database
from fileserver.repositories.file_repository import FileRepository
from fileserver.repositories.orphan_repository import OrphanRepository
from fileserver.routes.file_routes import router as file_router
from fileserver.services.chunk_cleanup import ChunkCleaner
from fileserver.services.file_service import FileService

logger = get_logger(__name__)

app = FastAPI(
    title="SplitStore File Server",
    description="Splits uploaded files across a fixed set of buckets and reassembles them on download",
    version="1.0.0"
)


def configure_app(
    application: FastAPI,
    db_path: str,
    buckets: BucketSet,
    cleanup_interval_seconds: int = config.ORPHAN_CLEANUP_INTERVAL_SECONDS,
) -> None:
    """
    Wire the catalog, buckets and services into ``application.state``.
    """
    init_database(db_path)
    logger.info(f"Database initialized at {db_path}")

    orphan_repository = OrphanRepository(db_path)
    cleaner = ChunkCleaner(
        buckets,
        orphan_repository=orphan_repository,
        max_attempts=config.CLEANUP_MAX_ATTEMPTS,
    )

    application.state.db_path = db_path
    application.state.buckets = buckets
    application.state.file_service = FileService(
        FileRepository(db_path, fanout=buckets.fanout),
        buckets,
        cleaner,
    )
    application.state.cleanup_task = OrphanedChunkCleaner(
        orphan_repository,
        buckets,
        interval_seconds=cleanup_interval_seconds,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database, buckets and the background cleanup task on application startup.
    """
    setup_logging('fileserver')
    logger.info("File server starting up...")

    if not hasattr(app.state, "file_service"):
        buckets = build_bucket_set(config.BUCKET_COUNT, config.BUCKET_ROOT, config.BUCKET_URLS)
        configure_app(app, config.DATABASE_PATH, buckets)

    logger.info(f"Serving {app.state.buckets.fanout} bucket(s)")

    await app.state.cleanup_task.start()
    logger.info("Background cleanup task started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup resources on application shutdown.
    """
    logger.info("File server shutting down...")

    if hasattr(app.state, "cleanup_task"):
        await app.state.cleanup_task.stop()
        logger.info("Cleanup task stopped")

    if hasattr(app.state, "buckets"):
        await app.state.buckets.close()


def _error_response(status_code: int, code: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(FileRecordNotFoundError)
async def file_not_found_handler(request: Request, exc: FileRecordNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"File not found error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND", exc)


@app.exception_handler(ChunkWriteError)
async def chunk_write_handler(request: Request, exc: ChunkWriteError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Chunk write error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "BUCKET_WRITE_FAILED", exc)


@app.exception_handler(ChunkReadError)
async def chunk_read_handler(request: Request, exc: ChunkReadError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Chunk read error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "BUCKET_READ_FAILED", exc)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Catalog error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "CATALOG_ERROR", exc)


@app.exception_handler(SplitStoreError)
async def splitstore_exception_handler(request: Request, exc: SplitStoreError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"SplitStore exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", exc)


app.include_router(file_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "SplitStore File Server API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "fileserver"}


@app.get("/ready")
async def ready_check(request: Request):
    """
    Readiness check endpoint.
    Verifies database connectivity and that every bucket answers.
    """
    state = request.app.state

    try:
        with get_db_connection(state.db_path) as conn:
            conn.execute("SELECT 1 FROM files LIMIT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    bucket_status = {}
    for backend in state.buckets:
        try:
            bucket_status[backend.name] = "ok" if await backend.ping() else "unreachable"
        except Exception as e:
            bucket_status[backend.name] = f"error: {str(e)}"

    ready = db_status == "ok" and all(value == "ok" for value in bucket_status.values())
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "buckets": bucket_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "fileserver.main:app",
        host=config.FILESERVER_HOST,
        port=config.FILESERVER_PORT,
    )


if __name__ == "__main__":
    main()
