"""Command parser for CLI input."""

import shlex

from cli.models import (
    BulkUploadCommand,
    CommandRequest,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "bulk-upload":
        return _parse_bulk_upload(tokens[1:])
    elif command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "delete":
        return _parse_delete(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file>...' command."""
    if not args:
        raise ParseError("upload requires at least one file")
    return UploadCommand(file_list=tuple(args))


def _parse_bulk_upload(args: list[str]) -> BulkUploadCommand:
    """Parse 'bulk-upload <file>...' command."""
    if not args:
        raise ParseError("bulk-upload requires at least one file")
    return BulkUploadCommand(file_list=tuple(args))


def _parse_list(args: list[str]) -> ListCommand:
    if args:
        raise ParseError("list takes no arguments")
    return ListCommand()


def _parse_file_id(command: str, raw: str) -> int:
    try:
        file_id = int(raw)
    except ValueError:
        raise ParseError(f"{command} requires a numeric file id, got '{raw}'")
    if file_id <= 0:
        raise ParseError(f"{command} requires a positive file id, got {file_id}")
    return file_id


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <id> [output_path]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <id> [output_path]")

    file_id = _parse_file_id("download", args[0])
    output_path = args[1] if len(args) > 1 else None

    return DownloadCommand(file_id=file_id, output_path=output_path)


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <id>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly 1 argument: <id>")
    return DeleteCommand(file_id=_parse_file_id("delete", args[0]))
