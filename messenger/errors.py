"""Service error taxonomy and the HTTP boundary translator."""

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from messenger.config import get_settings
from messenger.logging import get_logger

logger = get_logger(__name__)


class ServiceError(Exception):
    """Base class for domain errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(ServiceError):
    """Malformed or missing input, or an illegal state transition."""

    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ServiceError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(ServiceError):
    """Authenticated but not permitted."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """Uniqueness invariant violation."""

    status_code = 409
    default_message = "Conflict"


class InternalError(ServiceError):
    status_code = 500
    default_message = "Internal server error"


class UnavailableError(ServiceError):
    """Store timeout or connection failure; safe to retry."""

    status_code = 503
    default_message = "Service temporarily unavailable"


class InvalidTokenError(UnauthorizedError):
    default_message = "Invalid or expired token"


class InvalidOrExpiredCodeError(BadRequestError):
    default_message = "Invalid or expired code"


def _error_body(message: str, **extra: Any) -> Dict[str, Any]:
    return {"status": "fail", "detail": message, **extra}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.warning(
        "service_error",
        error_type=type(exc).__name__,
        detail=exc.message,
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(exc.message), headers=headers
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = sorted(
        {".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()}
    )
    logger.warning(
        "request_validation_failed", path=request.url.path, fields=fields
    )
    return JSONResponse(
        status_code=400, content=_error_body("Invalid request", fields=fields)
    )


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate storage errors that escaped the repositories."""
    if isinstance(exc, IntegrityError):
        status_code, message = 409, "Conflict"
    elif isinstance(exc, DataError):
        status_code, message = 400, "Invalid input"
    else:
        status_code, message = 503, UnavailableError.default_message

    logger.error(
        "database_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=_error_body(message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    message = InternalError.default_message
    if get_settings().is_dev:
        message = f"{message}: {exc}"
    return JSONResponse(status_code=500, content=_error_body(message))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the single boundary translator from error kind to HTTP status."""
    app.add_exception_handler(ServiceError, service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_error_handler  # type: ignore[arg-type]
    )
    for db_error in (
        IntegrityError,
        DataError,
        OperationalError,
        InterfaceError,
        PoolTimeoutError,
    ):
        app.add_exception_handler(db_error, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
