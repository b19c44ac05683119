"""Pydantic schemas for chunk upload and merge endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MergeRequest(BaseModel):
    """Request model for merging uploaded chunks."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    file_hash: str = Field(..., alias="fileHash")
    file_size: int = Field(..., alias="fileSize", ge=1)
    chunk_size: int = Field(..., alias="chunkSize", ge=1)

    @field_validator("file_name", "file_hash")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cannot be blank")
        return value


class ChunkUploadResponse(BaseModel):
    """Response model for a stored chunk."""
    model_config = ConfigDict(populate_by_name=True)

    file_hash: str = Field(..., alias="fileHash")
    chunk_index: int = Field(..., alias="chunkIndex")
    size: int


class MergeResponse(BaseModel):
    """Response model for a completed merge."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    path: str
    size: int
    total_chunks: int = Field(..., alias="totalChunks")
    purged: bool
    warning: Optional[str] = None
