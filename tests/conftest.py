"""Shared pytest fixtures for all tests."""

import asyncio
import os
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from cli.config import Config
from vault.blob_client import RemoteBlobClient
from vault.crypto import ChunkCipher
from vault.database import init_database
from vault.exceptions import BackendUnavailable, ReferenceNotFound, VaultException
from vault.services.upload_service import UploadService


class FakeBlobClient(RemoteBlobClient):
    """
    In-memory remote store with injectable failures.

    References are handed out in completion order, so they say nothing about
    the sequence number of the chunk they hold; labels do.
    """

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.labels: Dict[str, str] = {}
        self.deleted: List[str] = []
        self.upload_calls = 0
        self.fail_upload_on_call: Optional[int] = None
        self.upload_error: VaultException = BackendUnavailable("simulated backend outage")
        self.upload_delays: Dict[int, float] = {}
        self.fail_delete: Set[str] = set()
        self.fail_resolve: Set[str] = set()
        self.max_in_flight = 0
        self.closed = False
        self._in_flight = 0
        self._next_id = 1000

    async def upload(self, data: bytes, label: str) -> str:
        self.upload_calls += 1
        call = self.upload_calls
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            delay = self.upload_delays.get(call)
            if delay:
                await asyncio.sleep(delay)
            if self.fail_upload_on_call == call:
                raise self.upload_error

            reference = str(self._next_id)
            self._next_id += 1
            self.objects[reference] = data
            self.labels[reference] = label
            return reference
        finally:
            self._in_flight -= 1

    async def resolve(self, reference: str) -> bytes:
        if reference in self.fail_resolve:
            raise BackendUnavailable("simulated resolve outage")
        if reference not in self.objects:
            raise ReferenceNotFound(reference)
        return self.objects[reference]

    async def delete(self, reference: str) -> None:
        if reference in self.fail_delete:
            raise BackendUnavailable("simulated delete outage")
        if reference not in self.objects:
            raise ReferenceNotFound(reference)
        del self.objects[reference]
        self.deleted.append(reference)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .chunkvault directory
    """
    config_dir = tmp_path / '.chunkvault'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def multiple_sample_files(tmp_path):
    files = []
    for i in range(3):
        file_path = tmp_path / f'test{i}.txt'
        file_path.write_text(f'Sample content {i}')
        files.append(file_path)
    return files


@pytest.fixture
def test_db(tmp_path, monkeypatch) -> Path:
    """
    Point the catalog at a fresh SQLite file for each test.
    """
    db_path = tmp_path / "catalog.db"
    monkeypatch.setattr("vault.database.DATABASE_PATH", str(db_path))
    monkeypatch.setattr("vault.config.DATABASE_PATH", str(db_path))
    init_database()
    return db_path


@pytest.fixture
def encryption_key() -> bytes:
    return os.urandom(32)


@pytest.fixture
def chunk_cipher(encryption_key) -> ChunkCipher:
    return ChunkCipher(encryption_key)


@pytest.fixture
def fake_blob_client() -> FakeBlobClient:
    return FakeBlobClient()


@pytest.fixture
def staging_dir(tmp_path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def make_upload_service(test_db, fake_blob_client, chunk_cipher, staging_dir):
    """
    Factory for UploadService instances over the fake backend with a 24-byte chunk size.
    """
    def factory(**overrides) -> UploadService:
        options = dict(
            blob_client=fake_blob_client,
            chunk_cipher=chunk_cipher,
            chunk_size=24,
            staging_dir=str(staging_dir),
            sidecar_dir=None,
            cleanup_retry_delay=0,
        )
        options.update(overrides)
        return UploadService(**options)

    return factory
