"""AES-256-CBC chunk encryption with per-file IVs."""

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from common.constants import AES_BLOCK_SIZE_BYTES, AES_KEY_SIZE_BYTES


def generate_file_iv() -> bytes:
    """Fresh random IV for a new file."""
    return os.urandom(AES_BLOCK_SIZE_BYTES)


def derive_chunk_iv(file_iv: bytes, sequence_number: int) -> bytes:
    """
    IV for one chunk: the file IV plus the chunk sequence number, modulo 2**128.
    """
    if len(file_iv) != AES_BLOCK_SIZE_BYTES:
        raise ValueError(f"file IV must be {AES_BLOCK_SIZE_BYTES} bytes, got {len(file_iv)}")
    value = (int.from_bytes(file_iv, "big") + sequence_number) % (1 << (8 * AES_BLOCK_SIZE_BYTES))
    return value.to_bytes(AES_BLOCK_SIZE_BYTES, "big")


class ChunkCipher:
    """
    Symmetric chunk cipher.

    encrypt/decrypt are deterministic for a given (key, file IV, sequence number),
    and decrypt(encrypt(chunk)) == chunk for every chunk including the empty one.
    """

    def __init__(self, key: bytes):
        if len(key) != AES_KEY_SIZE_BYTES:
            raise ValueError(f"key must be {AES_KEY_SIZE_BYTES} bytes, got {len(key)}")
        self._key = key

    def encrypt(self, file_iv: bytes, sequence_number: int, chunk: bytes) -> bytes:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(chunk) + padder.finalize()

        encryptor = self._cipher(file_iv, sequence_number).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, file_iv: bytes, sequence_number: int, ciphertext: bytes) -> bytes:
        """
        Raises:
            ValueError: If the ciphertext length or padding is invalid
        """
        if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE_BYTES:
            raise ValueError(f"ciphertext length {len(ciphertext)} is not a positive multiple of the block size")

        decryptor = self._cipher(file_iv, sequence_number).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()

    def _cipher(self, file_iv: bytes, sequence_number: int) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(derive_chunk_iv(file_iv, sequence_number)))
