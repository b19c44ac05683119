"""Chunk upload API routes."""

from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from assembler.schemas.upload import ChunkUploadResponse, MergeRequest, MergeResponse
from assembler.services.upload_service import UploadService
from common.constants import API_PREFIX
from common.types import AssemblyRequest

router = APIRouter(prefix=API_PREFIX, tags=["Upload"])


def get_upload_service(request: Request) -> UploadService:
    """Return the UploadService bound to the running application."""
    return request.app.state.upload_service


@router.get("/check", response_model=List[int])
def check_chunks(
    file_hash: str = Query(..., alias="fileHash", min_length=1),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    List the chunk indices already stored for a file.

    Parameters:
        - fileHash: Upload identifier (content hash of the whole file)

    Returns:
        - Sorted list of stored chunk indices (empty if none)

    Raises:
        - 400: Invalid upload identifier
        - 500: Storage error
    """
    return upload_service.list_uploaded(file_hash)


@router.post("", response_model=ChunkUploadResponse)
def upload_chunk(
    file: UploadFile = File(...),
    chunk_index: int = Form(..., alias="chunkIndex", ge=0),
    file_hash: str = Form(..., alias="fileHash", min_length=1),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Store one chunk of a file.

    Parameters:
        - file: Chunk bytes (multipart/form-data)
        - chunkIndex: Zero-based chunk index
        - fileHash: Upload identifier

    Returns:
        - fileHash, chunkIndex and the stored size in bytes

    Raises:
        - 400: Invalid upload identifier
        - 422: Missing or invalid form fields
        - 500: Storage error
        - 507: Storage full
    """
    data = file.file.read()
    chunk = upload_service.upload_chunk(file_hash, chunk_index, data)
    return ChunkUploadResponse(
        file_hash=chunk.file_hash,
        chunk_index=chunk.chunk_index,
        size=chunk.size,
    )


@router.post("/merge", response_model=MergeResponse)
def merge_chunks(
    body: MergeRequest,
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Merge all chunks of a file into the output directory.

    Parameters:
        - fileName: Display name of the final file
        - fileHash: Upload identifier
        - fileSize: Total file size in bytes
        - chunkSize: Chunk size used by the client

    Returns:
        - Name, path and size of the assembled file; warning is set when the
          chunks could not be removed afterwards

    Raises:
        - 400: Invalid name, missing chunks, missing or empty chunk
        - 422: Missing or invalid fields
        - 500: Empty result or storage error
    """
    result = upload_service.merge(
        AssemblyRequest(
            file_name=body.file_name,
            file_hash=body.file_hash,
            file_size=body.file_size,
            chunk_size=body.chunk_size,
        )
    )
    return MergeResponse(
        file_name=Path(result.path).name,
        path=result.path,
        size=result.size,
        total_chunks=result.total_chunks,
        purged=result.purged,
        warning=result.cleanup_error,
    )
