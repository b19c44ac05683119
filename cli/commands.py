"""Command handler functions for CLI operations."""

import os
from typing import Optional

from cli.upload_client import UploadClient, UploadError
from cli.utils import format_file_size
from common.checksum import compute_file_checksum
from common.logging_config import get_logger

logger = get_logger(__name__)


def handle_upload(
    client: UploadClient,
    file_path: str,
    name: Optional[str] = None,
    chunk_size: Optional[int] = None,
    workers: Optional[int] = None,
) -> str:
    """
    Handle 'upload' command.

    Returns:
        Success or error message
    """
    if not os.path.isfile(file_path):
        return f"Error: Not a file: {file_path}"

    try:
        result = client.upload_file(file_path, name=name, chunk_size=chunk_size, workers=workers)
    except UploadError as e:
        logger.warning(f"Upload of {file_path} failed: code={e.code} status={e.status_code}")
        return f"Upload failed: {e}"
    except (ConnectionError, ValueError) as e:
        return f"Error: {e}"

    lines = [
        f"Uploaded: {result['fileName']} ({format_file_size(result['size'])}, {result['totalChunks']} chunks)",
        f"Stored at: {result['path']}",
    ]
    if result.get('warning'):
        lines.append(f"Warning: temporary chunks were not removed: {result['warning']}")
    return "\n".join(lines)


def handle_status(client: UploadClient, file_path: str, chunk_size: Optional[int] = None) -> str:
    """
    Handle 'status' command.

    Returns:
        Progress summary or error message
    """
    if not os.path.isfile(file_path):
        return f"Error: Not a file: {file_path}"

    try:
        status = client.upload_status(file_path, chunk_size=chunk_size)
    except UploadError as e:
        return f"Status check failed: {e}"
    except ConnectionError as e:
        return f"Error: {e}"

    uploaded = len(status['uploaded'])
    total = status['total_chunks']
    missing = sorted(set(range(total)) - set(status['uploaded']))
    lines = [f"{status['file_hash']}: {uploaded}/{total} chunks uploaded"]
    if missing:
        lines.append("Missing: " + ", ".join(str(index) for index in missing))
    return "\n".join(lines)


def handle_merge(
    client: UploadClient,
    file_path: str,
    name: Optional[str] = None,
    chunk_size: Optional[int] = None,
) -> str:
    """
    Handle 'merge' command: assemble chunks already on the server.

    Returns:
        Success or error message
    """
    if not os.path.isfile(file_path):
        return f"Error: Not a file: {file_path}"

    chunk_size = chunk_size or client.config.get_chunk_size()
    try:
        result = client.merge(
            name or os.path.basename(file_path),
            compute_file_checksum(file_path),
            os.path.getsize(file_path),
            chunk_size,
        )
    except UploadError as e:
        return f"Merge failed: {e}"
    except ConnectionError as e:
        return f"Error: {e}"

    return f"Merged: {result['fileName']} ({format_file_size(result['size'])}) at {result['path']}"
