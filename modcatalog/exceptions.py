
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

logger = logging.getLogger(__name__)

class ModCatalogException(Exception):
    """Base exception for the application"""
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class ValidationError(ModCatalogException):
    status_code = 400
    default_message = "Invalid input"

class AuthError(ModCatalogException):
    status_code = 401
    default_message = "Authentication required"

class NotFoundError(ModCatalogException):
    status_code = 404
    default_message = "Resource not found"

class ConflictError(ModCatalogException):
    """Duplicate unique key, already-rated, category still in use."""
    status_code = 400
    default_message = "Conflict with existing data"

class PayloadTooLargeError(ModCatalogException):
    status_code = 413
    default_message = "Request body too large"

class RateLimitError(ModCatalogException):
    status_code = 429
    default_message = "Too many requests"

    def __init__(self, message: str = None, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after

class StorageError(ModCatalogException):
    status_code = 500
    default_message = "Storage operation failed"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")

async def app_exception_handler(request: Request, exc: ModCatalogException):
    """
    Render domain exceptions raised by services and dependencies.
    """
    request_id = _request_id(request)

    if exc.status_code >= 500:
        logger.error(
            exc.message,
            extra={"request_id": request_id, "path": request.url.path},
            exc_info=exc,
        )
    else:
        logger.info(
            f"HTTP {exc.status_code} error",
            extra={"request_id": request_id, "detail": exc.message},
        )

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    # StorageError details stay in the server log
    message = StorageError.default_message if exc.status_code >= 500 else exc.message
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message, "request_id": request_id},
        headers=headers,
    )

async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler to execute last (if registered appropriately).
    Returns 500 JSON response and hides internal error details.
    """
    request_id = _request_id(request)

    logger.error(
        "Unhandled exception occurred",
        extra={"request_id": request_id, "path": request.url.path},
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please contact support.",
            "request_id": request_id
        },
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle standard FastAPI HTTPExceptions (404 for unknown routes, 405, ...).
    """
    request_id = _request_id(request)

    # Log 5xx errors as errors, 4xx as warnings or info
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})
    else:
        logger.info(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "request_id": request_id},
        headers=getattr(exc, "headers", None),
    )

def _describe_error(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid value")
    # pydantic prefixes messages raised from validators
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors as 400 with a field-specific message.
    """
    request_id = _request_id(request)
    errors = exc.errors()
    logger.info("Validation error", extra={"request_id": request_id, "errors": errors})

    message = _describe_error(errors[0]) if errors else "Invalid input"
    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "details": [
                {"field": ".".join(str(part) for part in e.get("loc", ())), "message": e.get("msg")}
                for e in errors
            ],
            "request_id": request_id
        },
    )

async def storage_exception_handler(request: Request, exc: Exception):
    """
    Database errors that escaped the services become a generic StorageError;
    the driver message (SQL, constraint names) is only logged.
    """
    logger.error(
        "Database error",
        extra={"request_id": _request_id(request), "path": request.url.path, "error": type(exc).__name__},
        exc_info=exc,
    )
    return await app_exception_handler(request, StorageError())
