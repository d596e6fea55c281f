"""Service layer for upload, download and deletion."""

from vault.services.deletion_service import DeletionService
from vault.services.download_service import DownloadService
from vault.services.upload_service import UploadItem, UploadService

__all__ = [
    "DeletionService",
    "DownloadService",
    "UploadItem",
    "UploadService",
]
