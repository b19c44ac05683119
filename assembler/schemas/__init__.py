"""Pydantic schemas for API requests and responses."""

from assembler.schemas.upload import (
    ChunkUploadResponse,
    MergeRequest,
    MergeResponse,
)
from assembler.schemas.common import ErrorResponse

__all__ = [
    "ChunkUploadResponse",
    "MergeRequest",
    "MergeResponse",
    "ErrorResponse",
]
