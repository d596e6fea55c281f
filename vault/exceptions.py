"""Custom exception classes for the vault server."""

from typing import List, Optional


class VaultException(Exception):
    """
    Base exception class for all vault errors.
    """
    code = "OPERATION_FAILED"


class ConfigurationError(VaultException):
    """
    Raised when required configuration is missing or malformed.
    """
    code = "CONFIGURATION_ERROR"


class BackendUnavailable(VaultException):
    """
    Raised on network, timeout or authentication failures talking to the remote store.
    """
    code = "BACKEND_UNAVAILABLE"


class BackendRejected(VaultException):
    """
    Raised when the remote store refuses a request (quota, size limit, permissions).
    """
    code = "BACKEND_REJECTED"


class ReferenceNotFound(VaultException):
    """
    Raised when a remote object no longer exists.
    """
    code = "REFERENCE_NOT_FOUND"

    def __init__(self, reference: str, message: Optional[str] = None):
        self.reference = reference
        super().__init__(message or f"Remote object {reference} not found")


class NotFound(VaultException):
    """
    Raised when a catalog lookup misses.
    """
    code = "FILE_NOT_FOUND"

    def __init__(self, file_id: int):
        self.file_id = file_id
        super().__init__(f"File {file_id} not found")


class ReconstructionFailed(VaultException):
    """
    Raised when resolving or decrypting a chunk fails during download.

    chunk_index is 0-based and None when the failure is not tied to one chunk.
    """
    code = "RECONSTRUCTION_FAILED"

    def __init__(self, file_id: int, chunk_index: Optional[int], reason: str):
        self.file_id = file_id
        self.chunk_index = chunk_index
        self.reason = reason
        if chunk_index is None:
            message = f"Reconstruction of file {file_id} failed: {reason}"
        else:
            message = f"Reconstruction of file {file_id} failed at chunk {chunk_index}: {reason}"
        super().__init__(message)


class CatalogWriteFailed(VaultException):
    """
    Raised when a catalog write cannot be persisted.
    """
    code = "CATALOG_WRITE_FAILED"


class IOFailure(VaultException):
    """
    Raised on local staging read/write errors or a source shorter/longer than declared.
    """
    code = "IO_FAILURE"


class UploadFailed(VaultException):
    """
    Raised when storing a file fails after zero or more chunks were uploaded.

    Attributes:
        file_name: Name of the file being stored
        sequence_number: 1-based chunk that failed, None if the failure was not chunk-specific
        cause: The underlying exception
        orphaned_references: References that remain remote without a catalog record
    """
    code = "UPLOAD_FAILED"

    def __init__(
        self,
        file_name: str,
        sequence_number: Optional[int],
        cause: BaseException,
        orphaned_references: Optional[List[str]] = None,
    ):
        self.file_name = file_name
        self.sequence_number = sequence_number
        self.cause = cause
        self.orphaned_references = list(orphaned_references or [])
        where = f" at chunk {sequence_number}" if sequence_number is not None else ""
        message = f"Upload of {file_name} failed{where}: {cause}"
        if self.orphaned_references:
            message += f" ({len(self.orphaned_references)} orphaned chunk(s) left on backend)"
        super().__init__(message)


class DeletionFailed(VaultException):
    """
    Raised when a remote reference cannot be deleted; the catalog record is kept.
    """
    code = "DELETION_FAILED"

    def __init__(self, file_id: int, deleted: List[str], remaining: List[str], cause: BaseException):
        self.file_id = file_id
        self.deleted = list(deleted)
        self.remaining = list(remaining)
        self.cause = cause
        super().__init__(
            f"Deletion of file {file_id} failed after {len(self.deleted)} of "
            f"{len(self.deleted) + len(self.remaining)} chunk(s): {cause}"
        )
