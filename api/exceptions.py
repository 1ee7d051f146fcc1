"""
Centralized exception handling for the API.

Provides custom exception classes and exception handlers that
return consistent JSON error responses of the form {"error": "<message>"}.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("classify-relay")


# =============================================================================
# CUSTOM EXCEPTION CLASSES
# =============================================================================


class APIError(Exception):
    """
    Base exception for API errors.

    All custom API exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(message)


class MissingFileError(APIError):
    """The multipart upload field is absent."""

    def __init__(self, message: str = "No file part", field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="MISSING_FILE",
            details={"field": field} if field else None,
        )


class UploadRejectedError(APIError):
    """The upload is present but empty or too large."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="UPLOAD_REJECTED",
        )


class StorageFailedError(APIError):
    """The upload could not be written to scratch storage."""

    def __init__(self, message: str = "Failed to save file"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="STORAGE_ERROR",
        )


class ClassificationFailedError(APIError):
    """The remote classification call failed or returned nothing usable."""

    def __init__(self, message: str, error_code: str = "CLASSIFICATION_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=error_code,
        )


# =============================================================================
# ERROR RESPONSE BUILDER
# =============================================================================


def build_error_response(message: str) -> Dict[str, Any]:
    """
    Build a standardized error response dictionary.

    Devices parse this flat shape, so codes and details stay in the logs.
    """
    return {"error": message}


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom APIError exceptions."""
    logger.warning(
        f"[API ERROR] {exc.error_code}: {exc.message}",
        extra={"status_code": exc.status_code, "details": exc.details},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_response(exc.message),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle framework HTTP errors (404, 405, ...) with the same body shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic/FastAPI validation errors."""
    messages = []
    for error in exc.errors():
        loc = " -> ".join(str(x) for x in error["loc"])
        messages.append(f"{loc}: {error['msg']}")

    logger.warning(f"[VALIDATION ERROR] {len(messages)} validation errors")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=build_error_response("; ".join(messages) or "Request validation failed"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full traceback but returns a generic error to the client
    to avoid leaking internal details.
    """
    logger.error(
        f"[UNHANDLED ERROR] {type(exc).__name__}: {exc}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_response("An internal error occurred"),
    )


# =============================================================================
# SETUP FUNCTION
# =============================================================================


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Call this during app initialization:
        from api.exceptions import setup_exception_handlers
        setup_exception_handlers(app)
    """
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("[EXCEPTIONS] Registered custom exception handlers")
