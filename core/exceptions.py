"""
Application errors and the FastAPI handlers that render them.

Every AppError carries the HTTP status it maps to, so services raise domain
errors and never import FastAPI.
"""
import logging
from typing import Optional

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all application errors."""
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed request input."""
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class InterviewClosedError(NotFoundError):
    """The interview exists but no longer accepts answers."""
    pass


class ConflictError(AppError):
    status_code = 409


class ProviderError(AppError):
    """An LLM provider call failed."""
    status_code = 500


class ProviderCredentialError(ProviderError):
    """Missing or rejected API key for a cloud provider."""
    pass


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or could not serve the request."""
    status_code = 503


class ProviderTimeoutError(ProviderUnavailableError):
    pass


class ProviderUnreachableError(ProviderUnavailableError):
    pass


class ProviderModelMissingError(ProviderUnavailableError):
    pass


class MalformedLLMOutputError(AppError):
    """The provider answered, but not with the JSON we asked for."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message, {"raw_text": raw_text[:500]})
        self.raw_text = raw_text


# ============================================================================
# FastAPI Exception Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "detail": exc.message, "error": type(exc).__name__},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", []) if part not in ("body", "query", "path")]
    message = first.get("msg", "Invalid request")
    content = {"message": message, "detail": jsonable_encoder(errors)}
    if loc:
        content["field"] = ".".join(loc)
    return JSONResponse(status_code=400, content=content)


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP exception: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "detail": "Internal server error"},
    )
