"""Background task for cleaning up orphaned remote chunks."""

import asyncio
from typing import Optional

from common.constants import ORPHAN_CLEANUP_INTERVAL_SECONDS, ORPHAN_MAX_ATTEMPTS
from common.logging_config import get_logger
from vault.blob_client import RemoteBlobClient
from vault.exceptions import ReferenceNotFound, VaultException
from vault.repositories.orphan_repository import OrphanRepository

logger = get_logger(__name__)


class OrphanedChunkCleaner:
    """
    Periodically retries deleting references recorded by failed uploads whose
    compensating delete also failed.

    An entry that has failed max_attempts cycles is no longer retried; it stays
    in the orphaned_references table for manual inspection.
    """

    def __init__(
        self,
        blob_client: RemoteBlobClient,
        interval_seconds: float = ORPHAN_CLEANUP_INTERVAL_SECONDS,
        max_attempts: int = ORPHAN_MAX_ATTEMPTS,
    ):
        self.blob_client = blob_client
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.orphan_repo = OrphanRepository()
        self._stopping: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            logger.warning("Cleanup task already running")
            return

        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started orphaned chunk cleanup task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

        logger.info("Stopped orphaned chunk cleanup task")

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in cleanup task: {e}", exc_info=True)

    async def run_once(self) -> int:
        """
        Execute one cleanup cycle.

        Returns:
            Number of orphaned references cleared in this cycle
        """
        orphans = [o for o in self.orphan_repo.list_all() if o.attempts < self.max_attempts]
        if not orphans:
            logger.debug("No orphaned chunks to clean")
            return 0

        logger.info(f"Starting cleanup cycle for {len(orphans)} orphaned chunks")

        cleaned = 0
        for orphan in orphans:
            try:
                await self.blob_client.delete(orphan.reference)
            except ReferenceNotFound:
                logger.info(f"Orphaned chunk {orphan.reference} already gone")
            except VaultException as e:
                self.orphan_repo.increment_attempts(orphan.reference)
                if orphan.attempts + 1 >= self.max_attempts:
                    logger.error(
                        f"Giving up on orphaned chunk {orphan.reference} from {orphan.file_name} "
                        f"after {self.max_attempts} attempts: {e}"
                    )
                else:
                    logger.warning(f"Error cleaning orphaned chunk {orphan.reference}: {e}")
                continue

            self.orphan_repo.remove(orphan.reference)
            cleaned += 1

        logger.info(f"Cleanup cycle complete: {cleaned} cleaned, {len(orphans) - cleaned} remaining")
        return cleaned
