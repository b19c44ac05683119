"""Utility functions for CLI operations."""

from pathlib import Path
from typing import Union


def count_chunks(file_size: int, chunk_size: int) -> int:
    """Number of chunks a file of file_size bytes is split into."""
    return -(-file_size // chunk_size)


def read_chunk(path: Union[str, Path], index: int, chunk_size: int) -> bytes:
    """
    Read one chunk of a file.

    Args:
        path: File to read
        index: Zero-based chunk index
        chunk_size: Chunk size in bytes

    Returns:
        Bytes of chunk index (shorter than chunk_size for the last chunk)
    """
    with open(path, 'rb') as f:
        f.seek(index * chunk_size)
        return f.read(chunk_size)


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

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
