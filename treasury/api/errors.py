"""API error handling and response helpers."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from treasury.services.errors import (
    ConflictError,
    ForbiddenError,
    LedgerError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_ERROR: dict[type[LedgerError], int] = {
    ValidationError: 422,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


def http_status_for(error: LedgerError) -> int:
    """HTTP status for a ledger error (400 for unmapped subclasses)."""
    for error_cls, http_status in HTTP_STATUS_BY_ERROR.items():
        if isinstance(error, error_cls):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def error_response(code: str, message: str, field: str | None = None) -> Dict[str, Any]:
    """Create a standardized error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if field is not None:
        error["field"] = field
    return {"error": error}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render a LedgerError as a JSON error body."""
    http_status = http_status_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {http_status} {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=http_status,
        content=error_response(exc.code, exc.message, exc.field),
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Hide storage-layer details from callers."""
    logger.error(f"{request.method} {request.url.path} storage failure", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("internal_error", "Internal server error"),
    )


HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (missing principal, unknown route) in the same shape."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render payload validation failures as validation_error with the first bad field."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or None
    message = first.get("msg", "Invalid request")
    logger.info(f"{request.method} {request.url.path} -> 422 validation_error: {field}: {message}")
    return JSONResponse(
        status_code=422,
        content=error_response("validation_error", message, field),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install ledger, storage and framework error handlers on the app."""
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)


__all__ = [
    "HTTP_STATUS_BY_ERROR",
    "http_status_for",
    "error_response",
    "register_error_handlers",
]
