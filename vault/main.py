"""Entry point for the vault service."""

import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from vault import config
from vault.blob_client import DiscordBlobClient, RemoteBlobClient
from vault.cleanup_task import OrphanedChunkCleaner
from vault.crypto import ChunkCipher
from vault.database import init_database
from vault.exceptions import (
    BackendUnavailable,
    NotFound,
    VaultException,
)
from vault.routes.file_routes import router as file_router
from vault.services.deletion_service import DeletionService
from vault.services.download_service import DownloadService
from vault.services.upload_service import UploadService

logger = setup_logging('vault')

app = FastAPI(
    title="Chunkvault",
    description="Encrypted chunked file storage on a remote blob backend",
    version="1.0.0"
)


def install_services(
    app: FastAPI,
    blob_client: RemoteBlobClient,
    chunk_cipher: ChunkCipher,
    chunk_size: int = config.CHUNK_SIZE,
    staging_dir: str = config.STAGING_DIR,
    sidecar_dir: Optional[str] = config.SIDECAR_DIR,
    upload_concurrency: int = config.UPLOAD_CONCURRENCY,
    batch_concurrency: int = config.BATCH_CONCURRENCY,
    compensate: bool = config.COMPENSATE_FAILED_UPLOADS,
    download_buffer_limit: int = config.DOWNLOAD_BUFFER_LIMIT,
) -> None:
    """
    Wire the shared backend session into the services used by the routes.
    """
    app.state.blob_client = blob_client
    app.state.upload_service = UploadService(
        blob_client=blob_client,
        chunk_cipher=chunk_cipher,
        chunk_size=chunk_size,
        staging_dir=staging_dir,
        sidecar_dir=sidecar_dir or None,
        upload_concurrency=upload_concurrency,
        batch_concurrency=batch_concurrency,
        compensate=compensate,
    )
    app.state.download_service = DownloadService(blob_client, chunk_cipher, download_buffer_limit)
    app.state.deletion_service = DeletionService(blob_client)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
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
    Initialize the catalog, open the backend session and start background tasks.
    """
    logger.info("Vault service starting up...")

    init_database()
    logger.info("Database initialized")

    if getattr(app.state, "blob_client", None) is None:
        token, channel_id = config.get_discord_credentials()
        blob_client = DiscordBlobClient(
            token=token,
            channel_id=channel_id,
            api_base=config.DISCORD_API_BASE,
            timeout=config.BACKEND_TIMEOUT,
        )
        install_services(app, blob_client, ChunkCipher(config.get_encryption_key()))

    app.state.cleanup_task = OrphanedChunkCleaner(app.state.blob_client, config.ORPHAN_CLEANUP_INTERVAL)
    await app.state.cleanup_task.start()
    logger.info("Background cleanup task started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks and close the backend session.
    """
    logger.info("Vault service shutting down...")

    cleanup_task = getattr(app.state, "cleanup_task", None)
    if cleanup_task:
        await cleanup_task.stop()
        logger.info("Cleanup task stopped")

    blob_client = getattr(app.state, "blob_client", None)
    if blob_client:
        await blob_client.close()


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"File not found error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "File not found.", "code": exc.code}
    )


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Backend unavailable error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "code": exc.code}
    )


@app.exception_handler(VaultException)
async def vault_exception_handler(request: Request, exc: VaultException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Operation failed: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    # Upload, download and delete failures wrap the backend error that caused them
    if isinstance(exc.__cause__, BackendUnavailable):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code}
    )


app.include_router(file_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Chunkvault API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "vault"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "vault.main:app",
        host=config.VAULT_HOST,
        port=config.VAULT_PORT,
    )


if __name__ == "__main__":
    main()
