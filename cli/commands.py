"""Command handler functions for CLI operations."""

from typing import Optional

from common.logging_config import get_logger
from cli.config import DEFAULT_CONFIG_PATH, Config
from cli.models import (
    BulkUploadCommand,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    UploadCommand,
)
from cli.vault_client import VaultClient

logger = get_logger(__name__)


_client: Optional[VaultClient] = None


def get_client() -> VaultClient:
    """
    Get or create global VaultClient instance.

    Returns:
        VaultClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new VaultClient instance")
        config = Config(DEFAULT_CONFIG_PATH)
        _client = VaultClient(config)
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_list
        client: Optional VaultClient for dependency injection (testing)

    Returns:
        Success or error message with upload results
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} files")
    if client is None:
        client = get_client()
    return client.upload_files(list(cmd.file_list))


def handle_bulk_upload(cmd: BulkUploadCommand, client: Optional[VaultClient] = None) -> str:
    logger.info(f"Executing bulk-upload command: {len(cmd.file_list)} files")
    if client is None:
        client = get_client()
    return client.bulk_upload(list(cmd.file_list))


def handle_list(cmd: ListCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'list' command.

    Returns:
        Formatted list of files
    """
    if client is None:
        client = get_client()
    return client.list_files()


def handle_download(cmd: DownloadCommand, client: Optional[VaultClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with file_id and optional output_path
        client: Optional VaultClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: file_id={cmd.file_id} output_path={cmd.output_path}")
    if client is None:
        client = get_client()
    return client.download(cmd.file_id, cmd.output_path)


def handle_delete(cmd: DeleteCommand, client: Optional[VaultClient] = None) -> str:
    logger.info(f"Executing delete command: file_id={cmd.file_id}")
    if client is None:
        client = get_client()
    return client.delete_file(cmd.file_id)
