"""Tests for per-chunk AES encryption."""

import os

import pytest

from vault.crypto import ChunkCipher, derive_chunk_iv, generate_file_iv


@pytest.fixture
def file_iv() -> bytes:
    return generate_file_iv()


def test_round_trip(chunk_cipher, file_iv):
    plaintext = os.urandom(1000)
    ciphertext = chunk_cipher.encrypt(file_iv, 1, plaintext)

    assert ciphertext != plaintext
    assert chunk_cipher.decrypt(file_iv, 1, ciphertext) == plaintext


def test_empty_chunk_round_trip(chunk_cipher, file_iv):
    ciphertext = chunk_cipher.encrypt(file_iv, 1, b"")

    assert len(ciphertext) == 16
    assert chunk_cipher.decrypt(file_iv, 1, ciphertext) == b""


def test_ciphertext_is_padded_to_block_size(chunk_cipher, file_iv):
    assert len(chunk_cipher.encrypt(file_iv, 1, b"a" * 15)) == 16
    assert len(chunk_cipher.encrypt(file_iv, 1, b"a" * 16)) == 32


def test_deterministic_for_same_inputs(chunk_cipher, file_iv):
    assert chunk_cipher.encrypt(file_iv, 2, b"same bytes") == chunk_cipher.encrypt(file_iv, 2, b"same bytes")


def test_sequence_number_changes_ciphertext(chunk_cipher, file_iv):
    assert chunk_cipher.encrypt(file_iv, 1, b"same bytes") != chunk_cipher.encrypt(file_iv, 2, b"same bytes")


def test_file_iv_changes_ciphertext(chunk_cipher):
    first = chunk_cipher.encrypt(generate_file_iv(), 1, b"same bytes")
    second = chunk_cipher.encrypt(generate_file_iv(), 1, b"same bytes")
    assert first != second


def test_wrong_key_does_not_yield_plaintext(chunk_cipher, file_iv):
    plaintext = b"secret payload" * 4
    ciphertext = chunk_cipher.encrypt(file_iv, 1, plaintext)
    other = ChunkCipher(os.urandom(32))

    try:
        recovered = other.decrypt(file_iv, 1, ciphertext)
    except ValueError:
        return
    assert recovered != plaintext


def test_decrypt_rejects_truncated_ciphertext(chunk_cipher, file_iv):
    ciphertext = chunk_cipher.encrypt(file_iv, 1, b"0123456789abcdef0123")

    with pytest.raises(ValueError):
        chunk_cipher.decrypt(file_iv, 1, ciphertext[:-3])


def test_decrypt_rejects_empty_ciphertext(chunk_cipher, file_iv):
    with pytest.raises(ValueError):
        chunk_cipher.decrypt(file_iv, 1, b"")


def test_key_length_is_enforced():
    with pytest.raises(ValueError):
        ChunkCipher(b"short key")


class TestDeriveChunkIv:
    def test_adds_sequence_number(self):
        file_iv = bytes(15) + b"\x01"
        assert derive_chunk_iv(file_iv, 2) == bytes(15) + b"\x03"

    def test_wraps_around(self):
        file_iv = b"\xff" * 16
        assert derive_chunk_iv(file_iv, 1) == bytes(16)

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            derive_chunk_iv(b"\x00" * 8, 1)

    def test_generated_ivs_are_random(self):
        assert len(generate_file_iv()) == 16
        assert generate_file_iv() != generate_file_iv()
