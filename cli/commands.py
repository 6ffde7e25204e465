"""Command handler functions for CLI operations."""

from typing import Optional

from cli.config import Config
from cli.models import DownloadCommand, InfoCommand, ListCommand, UploadCommand
from cli.server_client import SplitStoreClient
from common.logging_config import get_logger

logger = get_logger(__name__)


_client: Optional[SplitStoreClient] = None


def get_client() -> SplitStoreClient:
    """
    Get or create global SplitStoreClient instance.
    """
    global _client
    if _client is None:
        logger.debug("Creating new SplitStoreClient instance")
        _client = SplitStoreClient(Config())
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[SplitStoreClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with the local path
        client: Optional SplitStoreClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing upload command: path={cmd.path}")
    if client is None:
        client = get_client()
    return client.upload(cmd.path)


def handle_list(cmd: ListCommand, client: Optional[SplitStoreClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.list_files()


def handle_info(cmd: InfoCommand, client: Optional[SplitStoreClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.file_info(cmd.file_id)


def handle_download(cmd: DownloadCommand, client: Optional[SplitStoreClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with file id and optional output_path
        client: Optional SplitStoreClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: file_id={cmd.file_id} output_path={cmd.output_path}")
    if client is None:
        client = get_client()
    result = client.download(cmd.file_id, cmd.output_path)
    logger.debug("Download command completed")
    return result
