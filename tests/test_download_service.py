"""Tests for DownloadService reconstruction."""

import io
import os

import pytest

from vault.exceptions import NotFound, ReconstructionFailed
from vault.services.download_service import DownloadService


@pytest.fixture
def download_service(fake_blob_client, chunk_cipher):
    return DownloadService(fake_blob_client, chunk_cipher)


async def store(make_upload_service, data: bytes, name: str = "file.bin"):
    service = make_upload_service()
    return await service.store_file(name, "application/octet-stream", io.BytesIO(data), len(data))


async def collect(stream) -> bytes:
    parts = []
    async for part in stream:
        parts.append(part)
    return b"".join(parts)


@pytest.mark.asyncio
@pytest.mark.parametrize("size", [1, 23, 24, 25, 48, 100])
async def test_round_trip(make_upload_service, download_service, size):
    data = os.urandom(size)
    record = await store(make_upload_service, data)

    fetched, content = await download_service.retrieve_file(record.id)

    assert content == data
    assert fetched.file_name == "file.bin"


@pytest.mark.asyncio
async def test_missing_file_is_not_found(test_db, download_service):
    with pytest.raises(NotFound) as exc_info:
        await download_service.retrieve_file(999)

    assert exc_info.value.file_id == 999


@pytest.mark.asyncio
async def test_missing_chunk_reports_its_index(make_upload_service, download_service, fake_blob_client):
    record = await store(make_upload_service, os.urandom(60))
    del fake_blob_client.objects[record.chunk_references[1]]

    with pytest.raises(ReconstructionFailed) as exc_info:
        await download_service.retrieve_file(record.id)

    assert exc_info.value.file_id == record.id
    assert exc_info.value.chunk_index == 1


@pytest.mark.asyncio
async def test_backend_outage_reports_chunk_index(make_upload_service, download_service, fake_blob_client):
    record = await store(make_upload_service, os.urandom(60))
    fake_blob_client.fail_resolve = {record.chunk_references[2]}

    with pytest.raises(ReconstructionFailed) as exc_info:
        await download_service.retrieve_file(record.id)

    assert exc_info.value.chunk_index == 2


@pytest.mark.asyncio
async def test_corrupt_chunk_fails_decryption(make_upload_service, download_service, fake_blob_client):
    record = await store(make_upload_service, os.urandom(60))
    fake_blob_client.objects[record.chunk_references[0]] = b"not a ciphertext"[:15]

    with pytest.raises(ReconstructionFailed) as exc_info:
        await download_service.retrieve_file(record.id)

    assert exc_info.value.chunk_index == 0


@pytest.mark.asyncio
async def test_swapped_chunks_do_not_reconstruct_silently(make_upload_service, download_service, fake_blob_client):
    data = os.urandom(48)
    record = await store(make_upload_service, data)
    first, second = record.chunk_references
    objects = fake_blob_client.objects
    objects[first], objects[second] = objects[second], objects[first]

    try:
        _, content = await download_service.retrieve_file(record.id)
    except ReconstructionFailed:
        return
    assert content != data


@pytest.mark.asyncio
async def test_stream_yields_file_in_order(make_upload_service, download_service):
    data = os.urandom(70)
    record = await store(make_upload_service, data)

    fetched, stream = await download_service.stream_file(record.id)

    assert fetched.file_size == 70
    assert await collect(stream) == data


@pytest.mark.asyncio
async def test_stream_of_empty_file(make_upload_service, download_service):
    record = await store(make_upload_service, b"")

    _, stream = await download_service.stream_file(record.id)

    assert await collect(stream) == b""


@pytest.mark.asyncio
async def test_stream_fails_before_returning_when_first_chunk_missing(
    make_upload_service, download_service, fake_blob_client
):
    record = await store(make_upload_service, os.urandom(30))
    del fake_blob_client.objects[record.chunk_references[0]]

    with pytest.raises(ReconstructionFailed):
        await download_service.stream_file(record.id)


@pytest.mark.asyncio
async def test_stream_raises_on_later_chunk(make_upload_service, download_service, fake_blob_client):
    record = await store(make_upload_service, os.urandom(60))
    del fake_blob_client.objects[record.chunk_references[2]]

    _, stream = await download_service.stream_file(record.id)

    with pytest.raises(ReconstructionFailed) as exc_info:
        await collect(stream)
    assert exc_info.value.chunk_index == 2


@pytest.mark.asyncio
async def test_stream_missing_file(test_db, download_service):
    with pytest.raises(NotFound):
        await download_service.stream_file(999)
