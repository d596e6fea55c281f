"""Pydantic schemas for API requests and responses."""

from vault.schemas.common import ErrorResponse
from vault.schemas.files import (
    BulkUploadEntry,
    BulkUploadResponse,
    DeleteFileResponse,
    FileRecordResponse,
    ListFilesResponse,
    UploadFileResponse,
)

__all__ = [
    "ErrorResponse",
    "BulkUploadEntry",
    "BulkUploadResponse",
    "DeleteFileResponse",
    "FileRecordResponse",
    "ListFilesResponse",
    "UploadFileResponse",
]
