from http import HTTPStatus
from typing import Optional

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

logger = logging.getLogger(__name__)


class WhichMovieException(Exception):
    """Base exception for the application"""
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class AuthenticationRequiredError(WhichMovieException):
    status_code = 401
    message = "Authentication required."


class MissingPreferencesError(WhichMovieException):
    status_code = 409
    message = "User preferences not found. Please complete onboarding."


class GenerationFailedError(WhichMovieException):
    status_code = 503
    message = "Unable to generate movie recommendations. Please try again."

    def __init__(self, last_error: Optional[Exception] = None):
        super().__init__()
        self.last_error = last_error


class UserMovieNotFoundError(WhichMovieException):
    status_code = 404
    message = "Movie not found in user's collection."


class ExternalServiceError(WhichMovieException):
    """A call to OpenAI or OMDB failed (connection error, HTTP error, ...)"""
    status_code = 502
    message = "Upstream service error."


class InvalidResponseError(ExternalServiceError):
    message = "Upstream service returned an invalid response."


class NotFoundError(ExternalServiceError):
    status_code = 404
    message = "Movie not found."


class UpstreamTimeoutError(ExternalServiceError):
    status_code = 504
    message = "Upstream service timed out."


async def application_exception_handler(request: Request, exc: WhichMovieException):
    """
    Map application errors to their HTTP status.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        f"{type(exc).__name__}: {exc.message}",
        extra={"request_id": request_id, "path": request.url.path},
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "request_id": request_id,
        },
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler to execute last (if registered appropriately).
    Returns 500 JSON response and hides internal error details in production.
    """
    request_id = getattr(request.state, "request_id", "unknown")

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
    Routing errors (404, 405) and HTTPExceptions raised by FastAPI itself.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": HTTPStatus(exc.status_code).phrase,
            "message": exc.detail,
            "request_id": request_id,
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info("Validation error", extra={"request_id": request_id, "errors": exc.errors()})

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "message": "Request parameters or body are invalid.",
            "details": jsonable_errors(exc),
            "request_id": request_id
        },
    )


def jsonable_errors(exc: RequestValidationError):
    # pydantic v2 puts the raw exception object under "ctx" for some validators
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
