"""File operation API routes."""

from typing import List
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response, StreamingResponse

from common.types import BulkUploadSummary, FileRecord
from vault.dependencies import get_deletion_service, get_download_service, get_upload_service
from vault.repositories.file_repository import FileRepository
from vault.schemas.common import ErrorResponse
from vault.schemas.files import (
    BulkUploadEntry,
    BulkUploadResponse,
    DeleteFileResponse,
    FileRecordResponse,
    ListFilesResponse,
    UploadFileResponse,
)
from vault.services.deletion_service import DeletionService
from vault.services.download_service import DownloadService
from vault.services.upload_service import UploadItem, UploadService

router = APIRouter(tags=["Files"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"

STORAGE_ERRORS = {
    500: {"model": ErrorResponse, "description": "Operation failed"},
    503: {"model": ErrorResponse, "description": "Storage backend unavailable"},
}

LOOKUP_ERRORS = {
    404: {"model": ErrorResponse, "description": "File not found"},
    **STORAGE_ERRORS,
}


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def _to_item(upload: UploadFile) -> UploadItem:
    return UploadItem(
        file_name=upload.filename or "upload",
        file_type=upload.content_type or DEFAULT_CONTENT_TYPE,
        source=upload.file,
        file_size=_upload_size(upload),
    )


@router.post(
    "/upload",
    response_model=UploadFileResponse,
    status_code=status.HTTP_201_CREATED,
    responses=STORAGE_ERRORS,
)
async def upload_file(
    file: UploadFile = File(...),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Upload a single file.

    Parameters:
        - file: File to upload (multipart/form-data)

    Returns:
        - id: Catalog id of the stored file
        - file_name, file_size, total_chunks

    Raises:
        - 500: Upload or catalog failure
        - 503: Backend unavailable
    """
    item = _to_item(file)
    record = await upload_service.store_file(item.file_name, item.file_type, item.source, item.file_size)

    return UploadFileResponse(
        id=record.id,
        file_name=record.file_name,
        file_size=record.file_size,
        total_chunks=record.total_chunks,
    )


@router.post("/bulkUpload", response_model=BulkUploadResponse, responses=STORAGE_ERRORS)
async def bulk_upload(
    files: List[UploadFile] = File(...),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Upload several files in order.

    Returns:
        - bulk_message_ids: Per-file name and ordered chunk references

    Raises:
        - 500/503 on the first failing file; files stored before it stay stored
    """
    records = await upload_service.store_files([_to_item(upload) for upload in files])

    return BulkUploadResponse(
        message="Bulk upload completed successfully.",
        bulk_message_ids=[
            BulkUploadEntry.from_summary(BulkUploadSummary(record.file_name, record.chunk_references))
            for record in records
        ],
    )


@router.get("/files", response_model=ListFilesResponse)
async def list_files():
    """
    List every stored file with the total stored size.
    """
    records = FileRepository.list_all()
    return ListFilesResponse(
        files=[FileRecordResponse.from_record(record) for record in records],
        total_size=FileRepository.total_size(),
    )


@router.get("/download/{file_id}", responses=LOOKUP_ERRORS)
async def download_file(
    file_id: int,
    download_service: DownloadService = Depends(get_download_service),
):
    """
    Download a file by id.

    Files up to the service's buffer limit are reconstructed completely before
    the response starts, so a failed chunk is reported as an error status.
    Larger files are streamed chunk by chunk.

    Returns:
        - The original bytes with their content type, length and file name

    Raises:
        - 404: File not found
        - 500: Reconstruction failed
        - 503: Backend unavailable
    """
    record = download_service.get_record(file_id)
    if record.file_size <= download_service.buffer_limit:
        record, content = await download_service.retrieve_file(file_id)
        return Response(content=content, media_type=record.file_type, headers=_download_headers(record))

    record, stream = await download_service.stream_file(file_id)
    return StreamingResponse(stream, media_type=record.file_type, headers=_download_headers(record))


def _download_headers(record: FileRecord) -> dict:
    return {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.file_name)}",
        "Content-Length": str(record.file_size),
    }


@router.delete("/delete/{file_id}", response_model=DeleteFileResponse, responses=LOOKUP_ERRORS)
async def delete_file(
    file_id: int,
    deletion_service: DeletionService = Depends(get_deletion_service),
):
    """
    Delete a file's remote chunks and its catalog record.

    Raises:
        - 404: File not found
        - 500: A chunk could not be deleted; the record is kept for retry
    """
    await deletion_service.delete_file(file_id)
    return DeleteFileResponse(message="File deleted successfully.")
