"""Pydantic schemas for file operation endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from common.types import BulkUploadSummary, FileRecord


class FileRecordResponse(BaseModel):
    """Catalog record as returned by the listing endpoint."""
    id: int
    file_name: str
    file_type: str
    file_size: int
    total_chunks: int
    chunk_references: List[str]
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordResponse":
        return cls(
            id=record.id,
            file_name=record.file_name,
            file_type=record.file_type,
            file_size=record.file_size,
            total_chunks=record.total_chunks,
            chunk_references=list(record.chunk_references),
            created_at=record.created_at,
        )


class UploadFileResponse(BaseModel):
    """Response model for single file upload."""
    id: int
    file_name: str
    file_size: int
    total_chunks: int


class BulkUploadEntry(BaseModel):
    file_name: str
    chunk_references: List[str]

    @classmethod
    def from_summary(cls, summary: BulkUploadSummary) -> "BulkUploadEntry":
        return cls(file_name=summary.file_name, chunk_references=list(summary.chunk_references))


class BulkUploadResponse(BaseModel):
    """Response model for bulk upload."""
    message: str
    bulk_message_ids: List[BulkUploadEntry]


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileRecordResponse]
    total_size: int


class DeleteFileResponse(BaseModel):
    """Response model for file deletion."""
    message: str
