"""Provides the SHA-256 digest used as a file's upload identifier."""

import hashlib
from pathlib import Path
from typing import Union

from common.constants import COPY_BUFFER_SIZE


def compute_file_checksum(path: Union[str, Path], piece_size: int = COPY_BUFFER_SIZE) -> str:
    """
    Compute the SHA-256 checksum of a file without loading it into memory.

    Args:
        path: File to hash
        piece_size: Read size in bytes

    Returns:
        Hexadecimal SHA-256 digest of the whole file
    """
    hasher = hashlib.sha256()
    with open(path, 'rb') as f:
        for piece in iter(lambda: f.read(piece_size), b''):
            hasher.update(piece)
    return hasher.hexdigest()
