"""
Exception Handlers

Renders the domain error taxonomy as structured JSON. Storage errors that escape a
handler are never shown verbatim: integrity violations become 409 and everything
else a generic 500.
"""

import traceback

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import settings
from shared.domain.exceptions import DomainException, ErrorCode

logger = structlog.get_logger(__name__)


def _error_body(error_code: str, message: str, **extra) -> dict:
    body = {"status": "error", "error": error_code, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _debug_traceback(exc: Exception) -> str | None:
    if not settings.expose_tracebacks:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render a domain exception with its own status code."""
    body = exc.to_dict()
    trace = _debug_traceback(exc)
    if trace:
        body["traceback"] = trace
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap framework HTTP errors in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTP_ERROR", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            _error_body(
                ErrorCode.DOMAIN_VALIDATION_ERROR.value,
                "Invalid input data. Please check your request parameters.",
                details=exc.errors(),
            )
        ),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique and foreign key violations that were not translated earlier."""
    logger.warning(
        "Integrity violation",
        path=request.url.path,
        correlation_id=getattr(request.state, "correlation_id", None),
        error=str(exc.orig),
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(
            ErrorCode.ENTITY_ALREADY_EXISTS.value,
            "The request conflicts with existing data",
            traceback=_debug_traceback(exc),
        ),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures with request context and hide the details."""
    logger.exception(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        correlation_id=getattr(request.state, "correlation_id", None),
        exception_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            traceback=_debug_traceback(exc),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all error handlers to an application."""
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
