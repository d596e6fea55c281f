"""Split a byte stream into ordered, bounded-size chunks."""

from dataclasses import dataclass
from typing import BinaryIO, Iterator


@dataclass(frozen=True)
class Chunk:
    """
    Plaintext slice [offset, offset + len(data)) of one file.
    """
    sequence_number: int
    offset: int
    data: bytes

    @property
    def index(self) -> int:
        return self.sequence_number - 1


def expected_chunk_count(file_size: int, chunk_size: int) -> int:
    """
    Number of chunks a file of file_size bytes splits into; 0 for an empty file.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if file_size < 0:
        raise ValueError(f"file_size must not be negative, got {file_size}")
    return -(-file_size // chunk_size)


def iter_chunks(source: BinaryIO, chunk_size: int) -> Iterator[Chunk]:
    """
    Lazily read source into chunks of exactly chunk_size bytes, the last one possibly shorter.

    Sequence numbers start at 1. Short reads from the source (sockets, pipes,
    spooled uploads) are coalesced so chunk boundaries never depend on how the
    source happens to deliver bytes. An empty source yields nothing.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    sequence_number = 1
    offset = 0

    while True:
        buffer = bytearray()
        while len(buffer) < chunk_size:
            piece = source.read(chunk_size - len(buffer))
            if not piece:
                break
            buffer.extend(piece)

        if not buffer:
            break

        yield Chunk(sequence_number=sequence_number, offset=offset, data=bytes(buffer))

        offset += len(buffer)
        sequence_number += 1

        if len(buffer) < chunk_size:
            break
