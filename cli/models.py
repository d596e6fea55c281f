"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload files one at a time."""

    file_list: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class BulkUploadCommand:
    """Upload files in one bulk request."""

    file_list: tuple[str, ...]
    command: Literal["bulk-upload"] = "bulk-upload"


@dataclass(frozen=True)
class ListCommand:
    """List all stored files."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class DownloadCommand:
    """Download file by id."""

    file_id: int
    output_path: str | None = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete file by id."""

    file_id: int
    command: Literal["delete"] = "delete"


CommandRequest = (
    UploadCommand
    | BulkUploadCommand
    | ListCommand
    | DownloadCommand
    | DeleteCommand
)
