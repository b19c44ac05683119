"""Entry point for the assembler service."""

import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from assembler.config import SERVER_HOST, SERVER_PORT, StorageConfig, load_config
from assembler.exceptions import AssemblerException
from assembler.routes.upload_routes import router as upload_router
from assembler.schemas.common import ErrorResponse
from assembler.services.upload_service import UploadService
from common.logging_config import reset_request_id, set_request_id, setup_logging

logger = setup_logging('assembler')

STATUS_BY_CODE = {
    "INVALID_NAME": status.HTTP_400_BAD_REQUEST,
    "INVALID_IDENTIFIER": status.HTTP_400_BAD_REQUEST,
    "BAD_REQUEST": status.HTTP_400_BAD_REQUEST,
    "MISSING_CHUNKS": status.HTTP_400_BAD_REQUEST,
    "MISSING_CHUNK": status.HTTP_400_BAD_REQUEST,
    "EMPTY_CHUNK": status.HTTP_400_BAD_REQUEST,
    "CHUNK_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "EMPTY_RESULT": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "STORAGE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "STORAGE_FULL": status.HTTP_507_INSUFFICIENT_STORAGE,
}


async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)

    start_time = time.time()
    logger.info(f"Request started: {request.method} {request.url.path}")

    try:
        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )
    finally:
        reset_request_id(token)

    response.headers["X-Request-ID"] = request_id
    return response


async def assembler_exception_handler(request: Request, exc: AssemblerException):
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    if status_code >= 500:
        logger.error(message, exc_info=exc)
    else:
        logger.warning(message)

    error = ErrorResponse(detail=str(exc), code=exc.code, chunk_index=exc.chunk_index)
    return JSONResponse(status_code=status_code, content=error.model_dump(exclude_none=True))


def create_app(config: Optional[StorageConfig] = None) -> FastAPI:
    """
    Build the FastAPI application around a storage configuration.

    Args:
        config: Storage locations; read from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="Chunk Assembler",
        description="Resumable chunked upload and file assembly service",
        version="1.0.0"
    )
    app.state.upload_service = UploadService.from_config(config)

    app.middleware("http")(log_requests)
    app.add_exception_handler(AssemblerException, assembler_exception_handler)
    app.include_router(upload_router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            f"Assembler starting: temp_root={config.temp_root} "
            f"output_root={config.output_root} purge_after_merge={config.purge_after_merge}"
        )

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "Chunk Assembler API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for container healthchecks.
        """
        return {"status": "healthy", "service": "assembler"}

    return app


app = create_app()


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "assembler.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
    )


if __name__ == "__main__":
    main()
