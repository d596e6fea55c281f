"""Utility functions for CLI operations."""

import sys
from typing import BinaryIO

from cli.constants import GREEN, RESET


class ProgressReader:
    """Read-only wrapper around an open binary file that prints transfer progress."""

    def __init__(self, handle: BinaryIO, total_size: int, label: str):
        self._handle = handle
        self.total_size = total_size
        self.label = label
        self.transferred = 0
        self._finished = False

    def read(self, size: int = -1) -> bytes:
        data = self._handle.read(size if size > 0 else 65536)
        if data:
            self.transferred += len(data)
            print_progress(self.label, self.transferred, self.total_size)
        elif not self._finished:
            self._finished = True
            sys.stdout.write('\n')
            sys.stdout.flush()
        return data


def print_progress(label: str, done: int, total: int) -> None:
    """Rewrite the current terminal line with a transfer percentage."""
    if total <= 0:
        return
    progress = (done / total) * 100
    sys.stdout.write(
        f"\r{label}: {format_file_size(done)} / {format_file_size(total)} ({GREEN}{progress:.1f}%{RESET})"
    )
    sys.stdout.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = size_bytes / 1024.0
    for unit in ('KiB', 'MiB', 'GiB', 'TiB'):
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
