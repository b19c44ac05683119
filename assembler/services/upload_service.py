"""Upload service: chunk uploads, session queries and serialized merges."""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from assembler.assembly_engine import AssemblyEngine
from assembler.chunk_store import ChunkStore
from assembler.config import StorageConfig
from assembler.exceptions import BadRequestError
from common.types import AssembledFile, AssemblyRequest, ChunkDescriptor

logger = logging.getLogger(__name__)


class UploadService:
    """
    Facade used by the HTTP layer.

    Merges of the same upload identifier are mutually exclusive; uploads and
    status queries never take a lock. Uploading into an identifier while it
    is being merged is the caller's responsibility: a chunk written after the
    merge has passed its index is not part of that merge.
    """

    def __init__(self, chunk_store: ChunkStore, engine: AssemblyEngine):
        self.chunk_store = chunk_store
        self.engine = engine
        self._locks: Dict[str, threading.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._registry_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> "UploadService":
        chunk_store = ChunkStore(config.temp_root)
        engine = AssemblyEngine(
            chunk_store,
            config.output_root,
            purge_after_merge=config.purge_after_merge,
        )
        return cls(chunk_store, engine)

    def list_uploaded(self, file_hash: str) -> List[int]:
        """
        Report which chunk indices are stored for file_hash.

        Used by clients to resume; completeness is only checked by merge().

        Returns:
            Sorted list of indices, empty if nothing was uploaded
        """
        indices = sorted(self.chunk_store.list_indices(file_hash))
        logger.info(f"Checking chunk upload status for fileHash: {file_hash} ({len(indices)} stored)")
        return indices

    def upload_chunk(self, file_hash: str, chunk_index: int, data: bytes) -> ChunkDescriptor:
        """
        Store one chunk, replacing any earlier upload of the same index.

        Raises:
            BadRequestError: If chunk_index is negative
            StorageError: If the chunk cannot be written
        """
        if chunk_index < 0:
            raise BadRequestError(f"chunkIndex must be non-negative, got {chunk_index}")
        logger.info(f"Uploading chunk {chunk_index} for fileHash: {file_hash}")
        size = self.chunk_store.put(file_hash, chunk_index, data)
        return ChunkDescriptor(file_hash=file_hash, chunk_index=chunk_index, size=size)

    def merge(self, request: AssemblyRequest) -> AssembledFile:
        """
        Assemble the chunks of request.file_hash, one merge per identifier at a time.

        A second merge of the same identifier waits for the first; if the
        first purged the chunks it then fails with MissingChunksError.
        """
        logger.info(f"Merging chunks for fileHash: {request.file_hash}")
        with self._merge_lock(request.file_hash):
            return self.engine.assemble(request)

    @contextmanager
    def _merge_lock(self, file_hash: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._locks.setdefault(file_hash, threading.Lock())
            self._lock_users[file_hash] = self._lock_users.get(file_hash, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._registry_lock:
                self._lock_users[file_hash] -= 1
                if self._lock_users[file_hash] == 0:
                    del self._lock_users[file_hash]
                    del self._locks[file_hash]
