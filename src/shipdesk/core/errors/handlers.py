"""Exception handlers rendering RFC 7807 Problem Details.

Every error body carries ``type``, ``title``, ``status``, ``detail`` and
``instance``, plus ``trace_id`` (the request id) when one was assigned.
Details attached to an ``AppException`` are merged into the top level, so
clients read ``invalid_ids``, ``required_permissions`` or ``user_count``
directly from the body.

See: https://tools.ietf.org/html/rfc7807
"""

from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from shipdesk.config import settings
from shipdesk.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()

# Request body failed schema validation before reaching a service
REQUEST_VALIDATION_STATUS = 422

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class FieldError(BaseModel):
    """A single field-level error."""

    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details body.

    Attributes:
        type: URI identifying the problem type, ending in the error code
        title: Short human-readable summary
        status: HTTP status code
        detail: Explanation specific to this occurrence
        instance: Request path
        errors: Field-level errors for validation failures
        trace_id: Request id, for matching the response to log lines
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None
    trace_id: str | None = None

    model_config = {"extra": "allow"}


def problem_response(
    request: Request,
    status_code: int,
    error_code: str,
    detail: str,
    errors: list[FieldError] | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a Problem Details response for the current request.

    Keys in ``extra`` are added to the body unless they would overwrite one
    of the standard members.
    """
    content: dict[str, Any] = ProblemDetail(
        type=f"{settings.api_docs_base_url}/errors/{error_code}",
        title=error_code.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        instance=request.url.path,
        errors=errors,
        trace_id=getattr(request.state, "trace_id", None),
    ).model_dump(exclude_none=True)

    for key, value in (extra or {}).items():
        content.setdefault(key, value)

    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render a domain exception raised by a service or permission check."""
    logger.warning(
        "app_exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        details=exc.details,
    )
    return problem_response(
        request, exc.status_code, exc.error_code, exc.message, extra=exc.details
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render a request body, query or path that failed schema validation."""
    errors = [
        FieldError(
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body")
            or "unknown",
            message=error.get("msg", "Invalid value"),
            type=error.get("type"),
        )
        for error in exc.errors()
    ]

    logger.warning(
        "request_validation_error",
        path=request.url.path,
        fields=[e.field for e in errors],
    )
    return problem_response(
        request,
        REQUEST_VALIDATION_STATUS,
        "validation_error",
        "Request validation failed",
        errors=errors,
    )


def integrity_error_code(exc: IntegrityError) -> str:
    """Classify a constraint violation the services did not anticipate.

    asyncpg reports a SQLSTATE; SQLite only a message.
    """
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    message = str(exc.orig).lower()
    if sqlstate == FOREIGN_KEY_VIOLATION or "foreign key" in message:
        return "reference_conflict"
    if sqlstate == UNIQUE_VIOLATION or "unique" in message:
        return "duplicate_resource"
    return "integrity_conflict"


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Render a constraint violation as a 409.

    Services check uniqueness and references before writing; this covers a
    concurrent request winning between that check and the flush. The
    database message is logged, never returned.
    """
    error_code = integrity_error_code(exc)
    logger.warning(
        "integrity_error",
        error_code=error_code,
        path=request.url.path,
        error=str(exc.orig),
    )
    return problem_response(
        request,
        status.HTTP_409_CONFLICT,
        error_code,
        "The request conflicts with the current state of the resource",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render any other exception as a 500 without leaking its message."""
    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return problem_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register every handler above on ``app``."""
    app.add_exception_handler(AppException, cast("ExceptionHandler", app_exception_handler))
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", validation_exception_handler)
    )
    app.add_exception_handler(
        IntegrityError, cast("ExceptionHandler", integrity_error_handler)
    )
    app.add_exception_handler(Exception, generic_exception_handler)
