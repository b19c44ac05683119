"""Custom exception classes for the assembler."""

from typing import Optional


class AssemblerException(Exception):
    """
    Base exception class for all chunk upload and assembly errors.

    code is the stable identifier sent to clients; chunk_index is set on
    errors that concern one specific chunk.
    """
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, chunk_index: Optional[int] = None):
        super().__init__(message)
        self.chunk_index = chunk_index


class InvalidNameError(AssemblerException):
    """
    Raised when the display name is empty or contains a path separator.
    """
    code = "INVALID_NAME"


class BadRequestError(AssemblerException):
    """
    Raised when file size, chunk size or chunk index is out of range.
    """
    code = "BAD_REQUEST"


class InvalidIdentifierError(BadRequestError):
    """
    Raised when an upload identifier cannot be used as a namespace name.
    """
    code = "INVALID_IDENTIFIER"


class MissingChunksError(AssemblerException):
    """
    Raised when no chunks were ever stored for an upload identifier.
    """
    code = "MISSING_CHUNKS"


class MissingChunkError(AssemblerException):
    """
    Raised when a required chunk index was never stored.
    """
    code = "MISSING_CHUNK"

    def __init__(self, chunk_index: int):
        super().__init__(f"Missing chunk: {chunk_index}", chunk_index=chunk_index)


class EmptyChunkError(AssemblerException):
    """
    Raised when a stored chunk has zero bytes.
    """
    code = "EMPTY_CHUNK"

    def __init__(self, chunk_index: int):
        super().__init__(f"Empty chunk: {chunk_index}", chunk_index=chunk_index)


class EmptyResultError(AssemblerException):
    """
    Raised when the assembled file is empty after the merge.
    """
    code = "EMPTY_RESULT"


class ChunkNotFoundError(AssemblerException):
    """
    Raised when a single stored chunk is requested but does not exist.
    """
    code = "CHUNK_NOT_FOUND"


class StorageError(AssemblerException):
    """
    Raised when the underlying filesystem operation fails.
    """
    code = "STORAGE_ERROR"


class StorageFullError(StorageError):
    """
    Raised when the filesystem reports insufficient space.
    """
    code = "STORAGE_FULL"
