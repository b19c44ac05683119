"""Manages chunk files on disk: one directory per upload identifier, one file per chunk index."""

import errno
import logging
import os
import re
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Set, Union

from assembler.exceptions import (
    BadRequestError,
    ChunkNotFoundError,
    InvalidIdentifierError,
    StorageError,
    StorageFullError,
)
from common.constants import UPLOAD_ID_PATTERN

logger = logging.getLogger(__name__)

_UPLOAD_ID = re.compile(UPLOAD_ID_PATTERN)


def storage_error(exc: OSError, message: str) -> StorageError:
    """
    Wrap an OSError into the matching StorageError subclass.

    Args:
        exc: Original filesystem error
        message: Context describing the failed operation

    Returns:
        StorageFullError for ENOSPC, StorageError otherwise
    """
    if exc.errno == errno.ENOSPC:
        return StorageFullError(f"Disk full: {message}")
    return StorageError(f"{message}: {exc}")


class ChunkStore:
    """
    Persists and enumerates chunks grouped by upload identifier.

    Layout: <temp_root>/<upload_id>/<index>. Writing the same index twice
    silently replaces the earlier content (last writer wins).
    """

    def __init__(self, temp_root: Union[str, Path]):
        self.temp_root = Path(temp_root)

    def namespace_path(self, upload_id: str) -> Path:
        """
        Get the directory holding the chunks of one upload.

        Raises:
            InvalidIdentifierError: If upload_id cannot be used as a directory name
        """
        if not upload_id or not _UPLOAD_ID.fullmatch(upload_id) or upload_id in (".", ".."):
            raise InvalidIdentifierError(f"Invalid upload identifier: {upload_id!r}")
        return self.temp_root / upload_id

    def chunk_path(self, upload_id: str, index: int) -> Path:
        """
        Get file path for a chunk.

        Raises:
            InvalidIdentifierError: If upload_id is not usable
            BadRequestError: If index is negative
        """
        if index < 0:
            raise BadRequestError(f"Chunk index must be non-negative, got {index}")
        return self.namespace_path(upload_id) / str(index)

    def put(self, upload_id: str, index: int, data: bytes) -> int:
        """
        Write chunk data to disk, replacing any previous content at the same index.

        The data is written to a hidden temporary file first and renamed into
        place, so list_indices() never reports a partially written chunk.

        Args:
            upload_id: Upload identifier (file hash)
            index: Chunk index, starting at 0
            data: Raw chunk bytes

        Returns:
            Number of bytes stored

        Raises:
            StorageError: If the write fails
        """
        target = self.chunk_path(upload_id, index)
        tmp_path = target.with_name(f".{index}.{uuid.uuid4().hex}.part")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError as e:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning(f"Could not remove temporary chunk file {tmp_path}")
            raise storage_error(e, f"cannot write chunk {index} of {upload_id}") from e

        logger.debug(f"Stored chunk {index} of {upload_id} ({len(data)} bytes)")
        return len(data)

    def list_indices(self, upload_id: str) -> Set[int]:
        """
        List the chunk indices currently stored for an upload.

        Returns:
            Set of indices; empty if nothing was uploaded for upload_id

        Raises:
            StorageError: If the namespace cannot be read
        """
        namespace = self.namespace_path(upload_id)
        try:
            entries = list(namespace.iterdir())
        except FileNotFoundError:
            return set()
        except OSError as e:
            raise storage_error(e, f"cannot list chunks of {upload_id}") from e

        indices = set()
        for entry in entries:
            name = entry.name
            # Only canonical decimal names ("1", not "01") map back to a chunk path.
            if name.isascii() and name.isdigit() and str(int(name)) == name:
                indices.add(int(name))
        return indices

    def exists(self, upload_id: str) -> bool:
        """Check whether any chunk directory exists for upload_id."""
        return self.namespace_path(upload_id).is_dir()

    def open(self, upload_id: str, index: int) -> BinaryIO:
        """
        Open a stored chunk for reading.

        Raises:
            ChunkNotFoundError: If the chunk does not exist
            StorageError: If the chunk cannot be opened
        """
        path = self.chunk_path(upload_id, index)
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise ChunkNotFoundError(f"Chunk {index} of {upload_id} not found", chunk_index=index) from e
        except OSError as e:
            raise storage_error(e, f"cannot open chunk {index} of {upload_id}") from e

    def size(self, upload_id: str, index: int) -> int:
        """
        Get size of a stored chunk in bytes.

        Raises:
            ChunkNotFoundError: If the chunk does not exist
        """
        path = self.chunk_path(upload_id, index)
        try:
            return path.stat().st_size
        except FileNotFoundError as e:
            raise ChunkNotFoundError(f"Chunk {index} of {upload_id} not found", chunk_index=index) from e
        except OSError as e:
            raise storage_error(e, f"cannot stat chunk {index} of {upload_id}") from e

    def purge(self, upload_id: str) -> None:
        """
        Remove every chunk of an upload. Does nothing if already removed.

        Raises:
            StorageError: If the directory exists but cannot be removed
        """
        namespace = self.namespace_path(upload_id)
        try:
            shutil.rmtree(namespace)
        except FileNotFoundError:
            return
        except OSError as e:
            raise storage_error(e, f"cannot purge chunks of {upload_id}") from e
        logger.info(f"Purged chunk directory for {upload_id}")
