"""Download reconstruction: resolve and decrypt chunk references in stored order."""

from typing import AsyncIterator, Tuple

from common.constants import DOWNLOAD_BUFFER_LIMIT_BYTES
from common.logging_config import get_logger
from common.types import FileRecord
from vault.blob_client import RemoteBlobClient
from vault.crypto import ChunkCipher
from vault.exceptions import NotFound, ReconstructionFailed, VaultException
from vault.repositories.file_repository import FileRepository

logger = get_logger(__name__)


class DownloadService:
    def __init__(
        self,
        blob_client: RemoteBlobClient,
        chunk_cipher: ChunkCipher,
        buffer_limit: int = DOWNLOAD_BUFFER_LIMIT_BYTES,
    ):
        self.blob_client = blob_client
        self.chunk_cipher = chunk_cipher
        self.buffer_limit = buffer_limit
        self.file_repo = FileRepository()

    def get_record(self, file_id: int) -> FileRecord:
        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFound(file_id)
        if len(record.chunk_references) != record.total_chunks:
            raise ReconstructionFailed(
                file_id, None,
                f"catalog lists {len(record.chunk_references)} references for {record.total_chunks} chunks"
            )
        return record

    async def retrieve_file(self, file_id: int) -> Tuple[FileRecord, bytes]:
        """
        Reconstruct a whole file in memory.

        Raises:
            NotFound: If no catalog record has this id
            ReconstructionFailed: If any chunk cannot be resolved or decrypted
        """
        record = self.get_record(file_id)

        parts = []
        for index in range(record.total_chunks):
            parts.append(await self._fetch_chunk(record, index))

        content = b"".join(parts)
        self._check_length(record, len(content))

        logger.info(f"Reconstructed file {file_id} ({len(content)} bytes, {record.total_chunks} chunks)")
        return record, content

    async def stream_file(self, file_id: int) -> Tuple[FileRecord, AsyncIterator[bytes]]:
        """
        Reconstruct a file chunk by chunk.

        The record lookup and the first chunk are resolved before returning so
        that missing files and an unreachable backend surface before any bytes
        are sent. Later failures raise ReconstructionFailed from the iterator.
        """
        record = self.get_record(file_id)
        first = await self._fetch_chunk(record, 0) if record.total_chunks else b""

        async def stream_chunks():
            bytes_streamed = 0
            logger.info(f"Starting download of file {file_id} ({record.total_chunks} chunks, {record.file_size} bytes)")

            if record.total_chunks:
                bytes_streamed += len(first)
                yield first

            for index in range(1, record.total_chunks):
                data = await self._fetch_chunk(record, index)
                bytes_streamed += len(data)
                yield data

            self._check_length(record, bytes_streamed)
            logger.info(f"Successfully streamed file {file_id}: {bytes_streamed} bytes total")

        return record, stream_chunks()

    async def _fetch_chunk(self, record: FileRecord, index: int) -> bytes:
        reference = record.chunk_references[index]
        sequence_number = index + 1

        try:
            ciphertext = await self.blob_client.resolve(reference)
        except VaultException as e:
            logger.error(f"Chunk {sequence_number}/{record.total_chunks} of file {record.id} unavailable [reference={reference}]: {e}")
            raise ReconstructionFailed(record.id, index, str(e)) from e

        try:
            return self.chunk_cipher.decrypt(bytes.fromhex(record.iv), sequence_number, ciphertext)
        except ValueError as e:
            logger.error(f"Chunk {sequence_number}/{record.total_chunks} of file {record.id} failed to decrypt: {e}")
            raise ReconstructionFailed(record.id, index, f"decryption failed: {e}") from e

    @staticmethod
    def _check_length(record: FileRecord, length: int) -> None:
        if length != record.file_size:
            raise ReconstructionFailed(
                record.id, None, f"reconstructed {length} bytes, expected {record.file_size}"
            )
