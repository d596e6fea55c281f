"""File repository for catalog operations."""

import sqlite3
from contextlib import ExitStack
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from common.types import FileRecord
from vault.database import get_db_connection
from vault.exceptions import CatalogWriteFailed

logger = get_logger(__name__)


class FileRepository:
    @staticmethod
    def insert(record: FileRecord, conn=None) -> FileRecord:
        """
        Persist a file record and its ordered chunk references in one transaction.

        When conn is given the caller owns the transaction and commits it.

        Returns:
            The record with its assigned id and creation timestamp

        Raises:
            CatalogWriteFailed: If the row or any chunk reference cannot be written
        """
        if len(record.chunk_references) != record.total_chunks:
            raise CatalogWriteFailed(
                f"Record for {record.file_name} declares {record.total_chunks} chunks "
                f"but carries {len(record.chunk_references)} references"
            )

        created_at = record.created_at or datetime.utcnow()

        with ExitStack() as stack:
            owns_connection = conn is None
            if owns_connection:
                conn = stack.enter_context(get_db_connection())

            try:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO files (file_name, file_type, file_size, total_chunks, iv, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.file_name,
                        record.file_type,
                        record.file_size,
                        record.total_chunks,
                        record.iv,
                        created_at.isoformat(),
                    )
                )
                file_id = cursor.lastrowid

                cursor.executemany(
                    """
                    INSERT INTO file_chunks (file_id, sequence_number, reference)
                    VALUES (?, ?, ?)
                    """,
                    [
                        (file_id, sequence_number, reference)
                        for sequence_number, reference in enumerate(record.chunk_references, start=1)
                    ]
                )

                if owns_connection:
                    conn.commit()
            except sqlite3.Error as e:
                if owns_connection:
                    FileRepository._rollback(conn)
                logger.error(f"Failed to insert catalog record for {record.file_name}: {e}", exc_info=True)
                raise CatalogWriteFailed(f"Failed to save file information for {record.file_name}: {e}") from e

        logger.info(
            f"Catalog record created [id={file_id}] [name={record.file_name}] "
            f"[chunks={record.total_chunks}] [size={record.file_size}]"
        )
        return replace(record, id=file_id, created_at=created_at)

    @staticmethod
    def get_by_id(file_id: int) -> Optional[FileRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, file_name, file_type, file_size, total_chunks, iv, created_at
                FROM files WHERE id = ?
                """,
                (file_id,)
            )
            row = cursor.fetchone()

            if row is None:
                return None

            cursor.execute(
                """
                SELECT reference FROM file_chunks
                WHERE file_id = ?
                ORDER BY sequence_number
                """,
                (file_id,)
            )
            references = [chunk_row["reference"] for chunk_row in cursor.fetchall()]

            return FileRepository._to_record(row, references)

    @staticmethod
    def list_all() -> List[FileRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, file_name, file_type, file_size, total_chunks, iv, created_at
                FROM files ORDER BY id
                """
            )
            rows = cursor.fetchall()

            cursor.execute(
                "SELECT file_id, reference FROM file_chunks ORDER BY file_id, sequence_number"
            )
            references_by_file = {}
            for chunk_row in cursor.fetchall():
                references_by_file.setdefault(chunk_row["file_id"], []).append(chunk_row["reference"])

            return [
                FileRepository._to_record(row, references_by_file.get(row["id"], []))
                for row in rows
            ]

    @staticmethod
    def total_size() -> int:
        """
        Sum of file_size across all catalog records (0 when empty).
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COALESCE(SUM(file_size), 0) AS total FROM files")
            return cursor.fetchone()["total"]

    @staticmethod
    def delete_by_id(file_id: int, conn=None) -> bool:
        """
        Remove a file record; its chunk rows cascade.

        Returns:
            True if a record was removed
        """
        logger.debug(f"Deleting catalog record [id={file_id}]")

        with ExitStack() as stack:
            owns_connection = conn is None
            if owns_connection:
                conn = stack.enter_context(get_db_connection())

            try:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM files WHERE id = ?", (file_id,))
                deleted = cursor.rowcount > 0
                if owns_connection:
                    conn.commit()
            except sqlite3.Error as e:
                if owns_connection:
                    FileRepository._rollback(conn)
                logger.error(f"Failed to delete catalog record [id={file_id}]: {e}", exc_info=True)
                raise CatalogWriteFailed(f"Failed to delete file information for {file_id}: {e}") from e

        logger.info(f"Catalog record deleted [id={file_id}]")
        return deleted

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        try:
            conn.rollback()
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed: {e}")

    @staticmethod
    def _to_record(row: sqlite3.Row, references: List[str]) -> FileRecord:
        return FileRecord(
            id=row["id"],
            file_name=row["file_name"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            total_chunks=row["total_chunks"],
            chunk_references=references,
            iv=row["iv"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
