"""Repository layer for catalog access."""

from vault.repositories.file_repository import FileRepository
from vault.repositories.orphan_repository import OrphanRepository, OrphanedReference

__all__ = [
    "FileRepository",
    "OrphanRepository",
    "OrphanedReference",
]
