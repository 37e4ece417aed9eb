"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Toute erreur sort sous la forme `{success: false, error: {code, message, details?}}`, le code
appartenant à la taxonomie `ErrorKind`. L'identifiant de trace est recopié dans l'en-tête
`X-Trace-ID` de la réponse.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from heritage.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
    REQUEST_ID_HEADER,
    TRACE_ID_HEADER,
)
from heritage.domain.errors import ErrorKind, ServiceError

log = logging.getLogger(__name__)

# statut HTTP -> code de la taxonomie
_KIND_BY_STATUS = {
    HTTP_BAD_REQUEST: ErrorKind.VALIDATION_ERROR,
    HTTP_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    HTTP_FORBIDDEN: ErrorKind.FORBIDDEN,
    HTTP_NOT_FOUND: ErrorKind.NOT_FOUND,
    HTTP_CONFLICT: ErrorKind.CONFLICT,
    HTTP_UNPROCESSABLE_ENTITY: ErrorKind.VALIDATION_ERROR,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    headers = {TRACE_ID_HEADER: trace_id} if trace_id else None
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def extract_trace_id(request: Request) -> str | None:
    """Trace ID from headers, then from request state (set by middleware)."""
    trace_id = request.headers.get(TRACE_ID_HEADER) or request.headers.get(REQUEST_ID_HEADER)
    if trace_id:
        return trace_id
    return getattr(request.state, "request_id", None)


def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle domain errors raised by services."""
    trace_id = extract_trace_id(request)
    level = logging.ERROR if exc.kind is ErrorKind.INTERNAL_ERROR else logging.INFO
    log.log(
        level,
        "Service error occurred",
        extra={
            "code": exc.kind.value,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "trace_id": trace_id,
        },
    )
    body = exc.to_dict()
    return create_error_response(
        status_code=exc.status_code,
        code=body["code"],
        message=body["message"],
        trace_id=trace_id,
        details=body.get("details"),
    )


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    kind = _KIND_BY_STATUS.get(exc.status_code, ErrorKind.INTERNAL_ERROR)
    log.warning(
        "HTTP exception occurred",
        extra={
            "code": kind.value,
            "error_message": str(exc.detail),
            "status_code": exc.status_code,
            "trace_id": trace_id,
        },
    )
    return create_error_response(
        status_code=exc.status_code,
        code=kind.value,
        message=str(exc.detail),
        trace_id=trace_id,
    )


def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed path/query/body parameters become VALIDATION_ERROR with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    return create_error_response(
        status_code=HTTP_BAD_REQUEST,
        code=ErrorKind.VALIDATION_ERROR.value,
        message="Invalid request parameters",
        trace_id=extract_trace_id(request),
        details=details,
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)
    log.error(
        "Unexpected error occurred",
        extra={
            "code": ErrorKind.INTERNAL_ERROR.value,
            "trace_id": trace_id,
            "exception_type": type(exc).__name__,
        },
        exc_info=True,
    )
    return create_error_response(
        status_code=HTTP_INTERNAL_SERVER_ERROR,
        code=ErrorKind.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
        trace_id=trace_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Branche les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_generic_exception)
