"""Deletion coordination: remove every remote chunk, then the catalog record."""

from common.logging_config import get_logger
from vault.blob_client import RemoteBlobClient
from vault.exceptions import DeletionFailed, NotFound, ReferenceNotFound, VaultException
from vault.repositories.file_repository import FileRepository

logger = get_logger(__name__)


class DeletionService:
    def __init__(self, blob_client: RemoteBlobClient):
        self.blob_client = blob_client
        self.file_repo = FileRepository()

    async def delete_file(self, file_id: int) -> None:
        """
        Delete a file's remote chunks in order, then its catalog record.

        A reference that is already gone counts as deleted, so a retry after a
        partial failure resumes where the previous attempt stopped. Any other
        failure aborts and keeps the record.

        Raises:
            NotFound: If no catalog record has this id
            DeletionFailed: If a remote reference cannot be deleted
        """
        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFound(file_id)

        references = record.chunk_references
        logger.info(f"Deleting file {file_id} ({len(references)} chunks)")

        for position, reference in enumerate(references):
            try:
                await self.blob_client.delete(reference)
            except ReferenceNotFound:
                logger.info(f"Chunk already absent [reference={reference}]")
            except VaultException as e:
                logger.error(f"Failed to delete chunk {position + 1} of file {file_id} [reference={reference}]: {e}")
                raise DeletionFailed(file_id, references[:position], references[position:], e) from e

        self.file_repo.delete_by_id(file_id)
        logger.info(f"Deleted file {file_id}")
