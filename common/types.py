"""Shared data type definitions (FileRecord, BulkUploadSummary)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class FileRecord:
    """
    Catalog entry for one stored file.

    chunk_references is ordered by chunk sequence number; reconstruction
    depends on that order alone.
    """
    id: Optional[int]
    file_name: str
    file_type: str
    file_size: int
    total_chunks: int
    chunk_references: List[str] = field(default_factory=list)
    iv: str = ""
    created_at: Optional[datetime] = None

    def to_sidecar(self) -> dict:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "totalChunks": self.total_chunks,
            "fileSize": self.file_size,
            "chunkReferences": list(self.chunk_references),
        }


@dataclass(frozen=True)
class BulkUploadSummary:
    """
    Per-file result of a bulk upload.
    """
    file_name: str
    chunk_references: List[str]
