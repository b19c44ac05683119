"""Service layer for upload and merge logic."""

from assembler.services.upload_service import UploadService

__all__ = [
    "UploadService",
]
