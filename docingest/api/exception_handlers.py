"""
Error envelope and FastAPI exception handlers.

The routing layer mounts these with register_exception_handlers(app) so every
failure coming out of the ingestion core leaves as {"error", "message"} JSON
with a status code matching its class.
"""
from typing import Dict, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docingest.exceptions import (
    ConversionError,
    IngestionException,
    InvalidInputError,
    InvalidTransitionError,
    PayloadTooLargeError,
    StorageException,
    TaskNotFoundError,
    VectorizerConflictError,
)
from docingest.logging_config import get_logger
from docingest.schemas.responses import ErrorEnvelope

log = get_logger(__name__)

# Most specific classes first
_CLASSIFICATION: Tuple[Tuple[Type[Exception], int, str], ...] = (
    (InvalidInputError, 400, "Invalid input"),
    (PayloadTooLargeError, 413, "Payload too large"),
    (TaskNotFoundError, 404, "Task not found"),
    (InvalidTransitionError, 409, "Invalid task transition"),
    (ConversionError, 422, "Document conversion failed"),
    (VectorizerConflictError, 409, "Vectorizer conflict"),
    (StorageException, 503, "Storage unavailable"),
    (IngestionException, 400, "Failed to process request"),
)


def error_envelope(exc: Exception) -> ErrorEnvelope:
    """Classify an exception into the uniform error body."""
    for exc_type, status_code, error in _CLASSIFICATION:
        if isinstance(exc, exc_type):
            return ErrorEnvelope(error=error, message=str(exc), status_code=status_code)
    return ErrorEnvelope(error="Failed to process request", message=str(exc), status_code=500)


async def ingestion_error_handler(request: Request, exc: IngestionException) -> JSONResponse:
    """Handle validation, not-found and conversion errors."""
    envelope = error_envelope(exc)
    log.warning(
        "ingestion_error",
        path=request.url.path,
        error_type=exc.__class__.__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=envelope.status_code, content=envelope.model_dump())


async def storage_error_handler(request: Request, exc: StorageException) -> JSONResponse:
    """Handle database/storage errors."""
    envelope = error_envelope(exc)
    log.error("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=envelope.status_code, content=envelope.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: nothing from the core should take the process down."""
    envelope = error_envelope(exc)
    log.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=envelope.status_code, content=envelope.model_dump())


HANDLERS: Dict[Type[Exception], object] = {
    IngestionException: ingestion_error_handler,
    StorageException: storage_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> FastAPI:
    for exc_type, handler in HANDLERS.items():
        app.add_exception_handler(exc_type, handler)
    return app
