"""
Exception handlers for the ticketing API.

Turns domain errors, request validation failures and storage failures into
one response shape:

    {"error": {"code", "message", "timestamp", "path", "details"}}

Storage and unexpected errors are logged with their stack trace and answered
with a generic message.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ticketing.core.exceptions import TicketingError

logger = logging.getLogger(__name__)


def _error_body(
    request: Request, code: str, message: str, details: Optional[dict] = None, **extra
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
            "details": details or {},
            **extra,
        }
    }


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    """Handle domain errors raised by the catalog, ledger and reservation engine"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, exc.message, exc.details),
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI validation errors"""
    errors = []
    for err in exc.errors():
        # Drop the leading "body"/"query"/"path" marker from the location
        loc = [str(part) for part in err["loc"]]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        errors.append(
            {"field": ".".join(loc), "message": err["msg"], "type": err["type"]}
        )

    logger.warning(
        f"Validation error on {request.url.path}",
        extra={"errors": errors, "method": request.method},
    )
    return JSONResponse(
        status_code=400,
        content=_error_body(
            request,
            "VALIDATION_ERROR",
            "Request validation failed",
            validationErrors=errors,
        ),
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes, wrong methods and framework-raised HTTP errors"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, f"HTTP_{exc.status_code}", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors"""
    is_connection_error = isinstance(exc, OperationalError)

    logger.error(
        f"Database error: {type(exc).__name__}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "is_connection_error": is_connection_error,
        },
        exc_info=exc,
    )

    if is_connection_error:
        return JSONResponse(
            status_code=503,
            content=_error_body(
                request,
                "DATABASE_UNAVAILABLE",
                "Database connection failed. Please try again.",
            ),
            headers={"Retry-After": "30"},
        )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            request, "DATABASE_ERROR", "Database operation failed. Please try again."
        ),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected errors"""
    logger.error(
        f"Unexpected error on {request.method} {request.url.path}: {type(exc).__name__}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            request, "INTERNAL_ERROR", "An unexpected error occurred. Please try again."
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TicketingError, ticketing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
