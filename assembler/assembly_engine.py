"""Merges the stored chunks of one upload, in index order, into the final file."""

import errno
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from assembler.chunk_store import ChunkStore, storage_error
from assembler.exceptions import (
    BadRequestError,
    ChunkNotFoundError,
    EmptyChunkError,
    EmptyResultError,
    InvalidNameError,
    MissingChunkError,
    MissingChunksError,
    StorageError,
)
from assembler.name_sanitizer import sanitize_file_name
from common.constants import COPY_BUFFER_SIZE
from common.types import AssembledFile, AssemblyRequest

logger = logging.getLogger(__name__)


class AssemblyEngine:
    """
    Validates chunk completeness and concatenates chunks 0..N-1 into one file.

    N is always derived from the request (ceil(file_size / chunk_size)), never
    from what happens to be stored. Any gap aborts the merge with the lowest
    missing index. A partially written output is left in place after a
    failure and must not be served.

    The engine does not lock; callers must not upload into an identifier
    while it is being merged (see UploadService for per-identifier locking).
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        output_root: Union[str, Path],
        purge_after_merge: bool = True,
    ):
        self.chunk_store = chunk_store
        self.output_root = Path(output_root)
        self.purge_after_merge = purge_after_merge

    def assemble(self, request: AssemblyRequest) -> AssembledFile:
        """
        Assemble every chunk of request.file_hash into output_root/<safe name>.

        Args:
            request: Target name, upload identifier, total size and chunk size

        Returns:
            AssembledFile describing the written file

        Raises:
            InvalidNameError: If the file name is empty, contains a path separator or is too long
            BadRequestError: If file_size or chunk_size is below 1
            MissingChunksError: If nothing is stored for the identifier
            MissingChunkError: If a required chunk is absent
            EmptyChunkError: If a required chunk has zero bytes
            EmptyResultError: If the merged file ends up empty
            StorageError: If reading chunks or writing the output fails
        """
        safe_name = sanitize_file_name(request.file_name)
        if safe_name is None:
            raise InvalidNameError("Invalid file name")

        if request.file_size < 1 or request.chunk_size < 1:
            raise BadRequestError(
                f"fileSize and chunkSize must be at least 1 "
                f"(got fileSize={request.file_size}, chunkSize={request.chunk_size})"
            )
        total_chunks = request.total_chunks

        if not self.chunk_store.exists(request.file_hash):
            logger.warning(f"Temporary directory not found for hash: {request.file_hash}")
            raise MissingChunksError("Missing chunks")

        try:
            self.output_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise storage_error(e, f"cannot create output directory {self.output_root}") from e

        output_path = self.output_root / safe_name
        logger.info(f"Merging {total_chunks} chunks of {request.file_hash} into {output_path}")

        try:
            out = open(output_path, "wb")
        except OSError as e:
            if e.errno == errno.ENAMETOOLONG:
                raise InvalidNameError("File name too long") from e
            raise storage_error(e, f"cannot create {output_path}") from e

        try:
            with out:
                for index in range(total_chunks):
                    self._append_chunk(out, request.file_hash, index)
            merged_size = output_path.stat().st_size
        except OSError as e:
            raise storage_error(e, f"cannot write {output_path}") from e

        logger.info(f"Merge completed. Final file size: {merged_size} bytes")
        if merged_size == 0:
            logger.error(f"Merged file is empty: {output_path}")
            raise EmptyResultError("Merged file is empty")

        purged, cleanup_error = self._cleanup(request.file_hash)

        return AssembledFile(
            path=str(output_path),
            size=merged_size,
            total_chunks=total_chunks,
            purged=purged,
            cleanup_error=cleanup_error,
        )

    def _append_chunk(self, out: BinaryIO, upload_id: str, index: int) -> None:
        """Copy one chunk to the end of out and flush, attributing failures to index."""
        try:
            size = self.chunk_store.size(upload_id, index)
        except ChunkNotFoundError:
            logger.warning(f"Missing chunk {index} for {upload_id}")
            raise MissingChunkError(index) from None

        if size == 0:
            logger.warning(f"Chunk {index} of {upload_id} is empty")
            raise EmptyChunkError(index)

        logger.debug(f"Copying chunk {index} (size: {size} bytes)")
        try:
            with self.chunk_store.open(upload_id, index) as chunk:
                shutil.copyfileobj(chunk, out, COPY_BUFFER_SIZE)
            out.flush()
        except ChunkNotFoundError:
            logger.warning(f"Chunk {index} of {upload_id} disappeared during merge")
            raise MissingChunkError(index) from None
        except OSError as e:
            error = storage_error(e, f"failed while writing chunk {index}")
            error.chunk_index = index
            raise error from e

    def _cleanup(self, upload_id: str) -> Tuple[bool, Optional[str]]:
        """Purge the namespace after a successful merge; failures are reported, not raised."""
        if not self.purge_after_merge:
            logger.debug(f"Keeping chunks of {upload_id} (purge disabled)")
            return False, None

        try:
            self.chunk_store.purge(upload_id)
        except StorageError as e:
            logger.warning(f"Merge of {upload_id} succeeded but cleanup failed: {e}")
            return False, str(e)
        return True, None
