"""Upload orchestration: split, encrypt, stage, upload, then commit one catalog record."""

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence

from common.constants import CLEANUP_MAX_ATTEMPTS
from common.logging_config import get_logger
from common.types import FileRecord
from vault.blob_client import RemoteBlobClient
from vault.chunking import Chunk, expected_chunk_count, iter_chunks
from vault.crypto import ChunkCipher, generate_file_iv
from vault.exceptions import IOFailure, ReferenceNotFound, UploadFailed, VaultException
from vault.repositories.file_repository import FileRepository
from vault.repositories.orphan_repository import OrphanRepository

logger = get_logger(__name__)


@dataclass
class UploadItem:
    """One file of a batch upload."""
    file_name: str
    file_type: str
    source: BinaryIO
    file_size: int


class _ChunkUploadError(Exception):
    def __init__(self, sequence_number: int, cause: BaseException):
        super().__init__(str(cause))
        self.sequence_number = sequence_number
        self.cause = cause


class UploadService:
    def __init__(
        self,
        blob_client: RemoteBlobClient,
        chunk_cipher: ChunkCipher,
        chunk_size: int,
        staging_dir: str,
        sidecar_dir: Optional[str] = None,
        upload_concurrency: int = 1,
        batch_concurrency: int = 1,
        compensate: bool = True,
        cleanup_retry_delay: float = 1.0,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if upload_concurrency <= 0 or batch_concurrency <= 0:
            raise ValueError("concurrency limits must be positive")

        self.blob_client = blob_client
        self.chunk_cipher = chunk_cipher
        self.chunk_size = chunk_size
        self.staging_dir = Path(staging_dir)
        self.sidecar_dir = Path(sidecar_dir) if sidecar_dir else None
        self.upload_concurrency = upload_concurrency
        self.batch_concurrency = batch_concurrency
        self.compensate = compensate
        self.cleanup_retry_delay = cleanup_retry_delay
        self.file_repo = FileRepository()
        self.orphan_repo = OrphanRepository()

    async def store_file(
        self,
        file_name: str,
        file_type: str,
        source: BinaryIO,
        file_size: int,
    ) -> FileRecord:
        """
        Store one file and commit its catalog record.

        No record is created unless every chunk was uploaded. On failure,
        chunks uploaded so far are deleted again when compensation is enabled;
        references that survive are reported on the raised UploadFailed.

        Raises:
            UploadFailed: If any chunk cannot be read, encrypted, staged or uploaded
            IOFailure: Wrapped in UploadFailed when the source length differs from file_size
            CatalogWriteFailed: If the final commit fails (after compensation)
        """
        total_chunks = expected_chunk_count(file_size, self.chunk_size)
        file_iv = generate_file_iv()
        references: Dict[int, str] = {}

        logger.info(f"Storing {file_name} ({file_size} bytes, {total_chunks} chunks)")

        try:
            bytes_read = await self._upload_chunks(file_name, file_iv, source, total_chunks, references)
            if bytes_read != file_size:
                raise IOFailure(f"{file_name}: read {bytes_read} bytes but {file_size} were declared")

            ordered_references = [references[n] for n in sorted(references)]
            record = self.file_repo.insert(
                FileRecord(
                    id=None,
                    file_name=file_name,
                    file_type=file_type,
                    file_size=file_size,
                    total_chunks=total_chunks,
                    chunk_references=ordered_references,
                    iv=file_iv.hex(),
                )
            )
        except BaseException as e:
            uploaded = [references[n] for n in sorted(references)]
            logger.error(f"Upload failed for {file_name} after {len(uploaded)} chunk(s): {e}")

            orphaned = uploaded
            if uploaded and self.compensate:
                orphaned = await asyncio.shield(self._cleanup_references(uploaded, file_name))
            elif uploaded:
                logger.warning(f"Leaving {len(uploaded)} orphaned chunk(s) of {file_name} on backend")

            if isinstance(e, _ChunkUploadError):
                raise UploadFailed(file_name, e.sequence_number, e.cause, orphaned) from e.cause
            if isinstance(e, IOFailure):
                raise UploadFailed(file_name, None, e, orphaned) from e
            raise

        self._write_sidecar(record)
        logger.info(f"Successfully stored {file_name} as file {record.id} with {total_chunks} chunks")
        return record

    async def store_files(self, items: Sequence[UploadItem]) -> List[FileRecord]:
        """
        Store several files, in order, at most batch_concurrency at a time.

        Stops at the first failure and raises it; files committed before the
        failure stay committed.
        """
        if self.batch_concurrency == 1:
            records = []
            for item in items:
                records.append(
                    await self.store_file(item.file_name, item.file_type, item.source, item.file_size)
                )
            return records

        semaphore = asyncio.Semaphore(self.batch_concurrency)

        async def store_one(item: UploadItem) -> FileRecord:
            async with semaphore:
                return await self.store_file(item.file_name, item.file_type, item.source, item.file_size)

        tasks = [asyncio.create_task(store_one(item)) for item in items]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _upload_chunks(
        self,
        file_name: str,
        file_iv: bytes,
        source: BinaryIO,
        total_chunks: int,
        references: Dict[int, str],
    ) -> int:
        """
        Upload every chunk of source, filling references by sequence number.

        At most upload_concurrency uploads are in flight; with the default of 1,
        chunk n+1 is not read before chunk n's reference is recorded.

        Returns:
            Number of plaintext bytes read from source
        """
        pending = set()
        bytes_read = 0
        chunks = self._read_chunks(file_name, source)

        try:
            while True:
                while len(pending) >= self.upload_concurrency:
                    done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    self._raise_first_failure(done)

                chunk = next(chunks, None)
                if chunk is None:
                    break
                bytes_read += len(chunk.data)

                pending.add(asyncio.create_task(
                    self._upload_chunk(file_name, file_iv, chunk, total_chunks, references)
                ))

            if pending:
                done, pending = await asyncio.wait(pending)
                self._raise_first_failure(done)
        except BaseException:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            raise

        return bytes_read

    def _read_chunks(self, file_name: str, source: BinaryIO):
        chunks = iter_chunks(source, self.chunk_size)
        sequence_number = 1
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                return
            except OSError as e:
                raise _ChunkUploadError(sequence_number, IOFailure(f"Error reading {file_name}: {e}"))
            yield chunk
            sequence_number += 1

    @staticmethod
    def _raise_first_failure(done) -> None:
        failures = [task.exception() for task in done if not task.cancelled() and task.exception()]
        if failures:
            raise failures[0]

    async def _upload_chunk(
        self,
        file_name: str,
        file_iv: bytes,
        chunk: Chunk,
        total_chunks: int,
        references: Dict[int, str],
    ) -> None:
        label = f"Chunk {chunk.sequence_number} of {total_chunks} for {file_name}"

        try:
            ciphertext = self.chunk_cipher.encrypt(file_iv, chunk.sequence_number, chunk.data)
            staged_path = self._stage(ciphertext, chunk.sequence_number)
            try:
                payload = staged_path.read_bytes()
            except OSError as e:
                raise IOFailure(f"Cannot read staged chunk {staged_path}: {e}") from e

            try:
                reference = await self.blob_client.upload(payload, label)
            finally:
                self._release(staged_path)
        except VaultException as e:
            raise _ChunkUploadError(chunk.sequence_number, e) from e

        references[chunk.sequence_number] = reference
        logger.info(f"Wrote chunk {chunk.sequence_number}/{total_chunks} of {file_name} [reference={reference}]")

    def _stage(self, ciphertext: bytes, sequence_number: int) -> Path:
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            fd, path = tempfile.mkstemp(prefix=f"chunk_{sequence_number}_", suffix=".enc", dir=self.staging_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(ciphertext)
        except OSError as e:
            raise IOFailure(f"Cannot stage chunk {sequence_number}: {e}") from e
        logger.debug(f"Staged chunk {sequence_number} at {path}")
        return Path(path)

    @staticmethod
    def _release(staged_path: Path) -> None:
        try:
            staged_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove staged chunk {staged_path}: {e}")

    async def _cleanup_references(self, references: List[str], file_name: str) -> List[str]:
        """
        Delete remote references with retry logic.

        Args:
            references: References to delete
            file_name: File the references belonged to, for the orphan log

        Returns:
            References that could not be deleted; these are recorded for the orphan cleaner
        """
        failed_deletions = []

        for reference in references:
            deleted = False

            for attempt in range(CLEANUP_MAX_ATTEMPTS):
                try:
                    await self.blob_client.delete(reference)
                    logger.info(f"Deleted orphaned chunk {reference}")
                    deleted = True
                    break
                except ReferenceNotFound:
                    deleted = True
                    break
                except VaultException as e:
                    if attempt < CLEANUP_MAX_ATTEMPTS - 1:
                        delay = self.cleanup_retry_delay * (2 ** attempt)
                        logger.warning(f"Failed to delete chunk {reference}, retrying in {delay}s: {e}")
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"Failed to delete orphaned chunk {reference} after {CLEANUP_MAX_ATTEMPTS} attempts: {e}"
                        )

            if not deleted:
                failed_deletions.append(reference)

        if failed_deletions:
            try:
                self.orphan_repo.record(failed_deletions, file_name)
            except Exception as e:
                logger.error(f"Failed to record orphaned references for {file_name}: {e}", exc_info=True)

        return failed_deletions

    def _write_sidecar(self, record: FileRecord) -> None:
        if self.sidecar_dir is None:
            return

        safe_name = Path(record.file_name).name or "file"
        sidecar_path = self.sidecar_dir / f"{record.id}_{safe_name}_metadata.json"
        try:
            self.sidecar_dir.mkdir(parents=True, exist_ok=True)
            with open(sidecar_path, "w") as f:
                json.dump(record.to_sidecar(), f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write metadata sidecar {sidecar_path}: {e}")
