"""FastAPI application serving the persisted bond snapshot."""

import logging
from typing import Annotated, Final

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from ..snapshot.models import Snapshot
from ..snapshot.writer import SnapshotWriter
from .models import ErrorResponse, HealthResponse
from .settings import api_settings

ERROR_SNAPSHOT_NOT_FOUND: Final[str] = "snapshot_not_found"
ERROR_SNAPSHOT_UNREADABLE: Final[str] = "snapshot_unreadable"
ERROR_INTERNAL_ERROR: Final[str] = "internal_error"
ERROR_NOT_FOUND: Final[str] = "not_found"

logger = logging.getLogger(__name__)


def get_snapshot_writer() -> SnapshotWriter:
    """
    Dependency function to provide the snapshot store.

    Returns:
        SnapshotWriter: Store bound to the configured snapshot path
    """
    return SnapshotWriter()


app = FastAPI(
    title="BTP Tracker API",
    description="Read-only access to the latest Italian government bond snapshot",
    version="1.0.0",
)


@app.get("/", response_model=HealthResponse)
async def root(
    writer: Annotated[SnapshotWriter, Depends(get_snapshot_writer)],
) -> HealthResponse:
    """Health check endpoint.

    Returns:
        HealthResponse: Health status information
    """
    return HealthResponse(
        message="BTP Tracker API is running",
        status="healthy",
        snapshot_available=writer.exists(),
    )


@app.get("/snapshot")
@app.get("/data/btp-data.json")
async def get_snapshot(
    writer: Annotated[SnapshotWriter, Depends(get_snapshot_writer)],
) -> Response:
    """
    Return the latest persisted snapshot document.

    Query parameters (such as a cache-busting timestamp) are ignored.

    Args:
        writer: Snapshot store dependency

    Returns:
        Response: The stored JSON document, uncached

    Raises:
        HTTPException: For various error conditions including:
            - 404: No snapshot has been persisted yet
            - 500: The stored document cannot be decoded
    """
    if (document := writer.read_text()) is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorResponse(
                error=ERROR_SNAPSHOT_NOT_FOUND,
                message="No snapshot has been generated yet",
            ).model_dump(),
        )

    try:
        Snapshot.model_validate_json(document)
    except ValidationError as e:
        logger.error(f"Stored snapshot at {writer.path} is unreadable: {e}")
        raise HTTPException(
            status_code=500,
            detail=ErrorResponse(
                error=ERROR_SNAPSHOT_UNREADABLE,
                message="The stored snapshot could not be decoded",
            ).model_dump(),
        ) from e

    return Response(
        content=document,
        media_type="application/json",
        headers={"Cache-Control": api_settings.cache_control},
    )


@app.exception_handler(404)
async def not_found_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle 404 errors.

    Returns:
        JSONResponse: Error response in JSON format
    """
    if isinstance(exc, HTTPException) and isinstance(exc.detail, dict):
        return JSONResponse(status_code=404, content={"detail": exc.detail})
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(
            error=ERROR_NOT_FOUND, message="Endpoint not found"
        ).model_dump(),
    )


@app.exception_handler(500)
async def internal_error_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle internal server errors.

    Args:
        exc: The exception that was raised

    Returns:
        JSONResponse: Error response in JSON format
    """
    if isinstance(exc, HTTPException) and isinstance(exc.detail, dict):
        return JSONResponse(status_code=500, content={"detail": exc.detail})
    logger.error(f"Internal server error: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ERROR_INTERNAL_ERROR, message="An internal server error occurred"
        ).model_dump(),
    )


async def main() -> None:
    """Main entry point for the API server."""
    config = uvicorn.Config(
        app,
        host=api_settings.api_host,
        port=api_settings.api_port,
        log_level=api_settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
