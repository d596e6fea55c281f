"""Repository for remote references left without a catalog record."""

from dataclasses import dataclass
from datetime import datetime
from typing import List

from common.logging_config import get_logger
from vault.database import get_db_connection

logger = get_logger(__name__)


@dataclass
class OrphanedReference:
    reference: str
    file_name: str
    recorded_at: datetime
    attempts: int


class OrphanRepository:
    @staticmethod
    def record(references: List[str], file_name: str) -> None:
        if not references:
            return

        now = datetime.utcnow().isoformat()
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.executemany(
                """
                INSERT INTO orphaned_references (reference, file_name, recorded_at, attempts)
                VALUES (?, ?, ?, 0)
                ON CONFLICT(reference) DO NOTHING
                """,
                [(reference, file_name, now) for reference in references]
            )
            conn.commit()

        logger.warning(f"Recorded {len(references)} orphaned reference(s) from {file_name}")

    @staticmethod
    def list_all() -> List[OrphanedReference]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT reference, file_name, recorded_at, attempts
                FROM orphaned_references ORDER BY recorded_at
                """
            )
            return [
                OrphanedReference(
                    reference=row["reference"],
                    file_name=row["file_name"],
                    recorded_at=datetime.fromisoformat(row["recorded_at"]),
                    attempts=row["attempts"],
                )
                for row in cursor.fetchall()
            ]

    @staticmethod
    def remove(reference: str) -> None:
        with get_db_connection() as conn:
            conn.execute("DELETE FROM orphaned_references WHERE reference = ?", (reference,))
            conn.commit()

    @staticmethod
    def increment_attempts(reference: str) -> None:
        with get_db_connection() as conn:
            conn.execute(
                "UPDATE orphaned_references SET attempts = attempts + 1 WHERE reference = ?",
                (reference,)
            )
            conn.commit()
