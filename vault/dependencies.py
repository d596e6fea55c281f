"""FastAPI dependencies resolving the process-wide services from app state."""

from fastapi import Request

from vault.services.deletion_service import DeletionService
from vault.services.download_service import DownloadService
from vault.services.upload_service import UploadService


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_download_service(request: Request) -> DownloadService:
    return request.app.state.download_service


def get_deletion_service(request: Request) -> DeletionService:
    return request.app.state.deletion_service
