"""Tests for the orphaned chunk cleanup task."""

import asyncio

import pytest

from vault.cleanup_task import OrphanedChunkCleaner
from vault.repositories.orphan_repository import OrphanRepository


@pytest.mark.asyncio
async def test_run_once_with_nothing_to_do(test_db, fake_blob_client):
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=60)

    assert await cleaner.run_once() == 0


@pytest.mark.asyncio
async def test_run_once_deletes_orphans(test_db, fake_blob_client):
    orphan = await fake_blob_client.upload(b"ciphertext", "Chunk 1 of 2 for a.txt")
    OrphanRepository.record([orphan], "a.txt")
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=60)

    assert await cleaner.run_once() == 1

    assert fake_blob_client.objects == {}
    assert OrphanRepository.list_all() == []


@pytest.mark.asyncio
async def test_already_missing_orphan_is_forgotten(test_db, fake_blob_client):
    OrphanRepository.record(["gone"], "a.txt")
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=60)

    assert await cleaner.run_once() == 1
    assert OrphanRepository.list_all() == []


@pytest.mark.asyncio
async def test_failed_delete_is_kept_and_counted(test_db, fake_blob_client):
    orphan = await fake_blob_client.upload(b"ciphertext", "Chunk 1 of 1 for a.txt")
    OrphanRepository.record([orphan], "a.txt")
    fake_blob_client.fail_delete = {orphan}
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=60)

    assert await cleaner.run_once() == 0

    remaining = OrphanRepository.list_all()
    assert [o.reference for o in remaining] == [orphan]
    assert remaining[0].attempts == 1


@pytest.mark.asyncio
async def test_start_and_stop(test_db, fake_blob_client):
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=3600)

    await cleaner.start()
    assert cleaner.running

    await asyncio.sleep(0)
    await cleaner.stop()

    assert not cleaner.running


@pytest.mark.asyncio
async def test_periodic_cycle_runs(test_db, fake_blob_client):
    orphan = await fake_blob_client.upload(b"ciphertext", "Chunk 1 of 1 for a.txt")
    OrphanRepository.record([orphan], "a.txt")
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=0.01)

    await cleaner.start()
    for _ in range(100):
        if not OrphanRepository.list_all():
            break
        await asyncio.sleep(0.01)
    await cleaner.stop()

    assert OrphanRepository.list_all() == []
    assert fake_blob_client.objects == {}


@pytest.mark.asyncio
async def test_exhausted_orphans_are_skipped(test_db, fake_blob_client):
    orphan = await fake_blob_client.upload(b"ciphertext", "Chunk 1 of 1 for a.txt")
    OrphanRepository.record([orphan], "a.txt")
    fake_blob_client.fail_delete = {orphan}
    cleaner = OrphanedChunkCleaner(fake_blob_client, interval_seconds=60, max_attempts=2)

    await cleaner.run_once()
    await cleaner.run_once()
    fake_blob_client.fail_delete = set()

    assert await cleaner.run_once() == 0
    assert OrphanRepository.list_all()[0].attempts == 2
    assert orphan in fake_blob_client.objects
