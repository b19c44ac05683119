"""Shared data type definitions (AssemblyRequest, AssembledFile, ChunkDescriptor)."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChunkDescriptor:
    """
    A chunk as stored under an upload identifier.
    """
    file_hash: str
    chunk_index: int
    size: int


@dataclass(frozen=True)
class AssemblyRequest:
    """
    Request to merge every chunk of one upload into a single file.
    """
    file_name: str
    file_hash: str
    file_size: int
    chunk_size: int

    @property
    def total_chunks(self) -> int:
        """Number of chunks that must be present: ceil(file_size / chunk_size)."""
        return -(-self.file_size // self.chunk_size)


@dataclass(frozen=True)
class AssembledFile:
    """
    Result of a successful assembly.

    purged is False when the merge succeeded but the chunk namespace could
    not be removed; cleanup_error then holds the reason.
    """
    path: str
    size: int
    total_chunks: int
    purged: bool = True
    cleanup_error: Optional[str] = None
