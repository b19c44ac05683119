"""API routes package."""

from assembler.routes.upload_routes import router as upload_router

__all__ = ["upload_router"]
