"""
Typed application errors and their HTTP mapping.

Services raise these; `register_exception_handlers` turns them into JSON bodies
of the form ``{"error": "..."}`` or ``{"errors": ["...", ...]}``. Anything that
is not a known error becomes a generic 500 and is logged with its stack trace.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class PortaleError(Exception):
    """Base for errors that map to a client-facing HTTP response."""

    error_code: str = "PORTALE_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_id: str | None = None):
        self.message = message
        self.error_id = error_id or str(uuid4())
        super().__init__(message)

    def to_body(self) -> dict:
        return {"error": self.message}


class AuthenticationError(PortaleError):
    """No identity, or an identity we cannot trust."""

    error_code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(PortaleError):
    """Identity present, but role or scope is insufficient."""

    error_code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PortaleError):
    error_code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(PortaleError):
    """Missing or malformed input. Carries one message per failing field."""

    error_code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[str] | str, error_id: str | None = None):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors), error_id=error_id)

    def to_body(self) -> dict:
        return {"errors": self.errors}


class ConflictError(PortaleError):
    """Duplicate unique key (VAT number, tax code, email)."""

    error_code = "CONFLICT"
    status_code = status.HTTP_400_BAD_REQUEST


async def portale_error_handler(request: Request, exc: PortaleError) -> JSONResponse:
    log = logger.info if exc.status_code < 500 else logger.error
    log(
        "Request failed code=%s status=%s error_id=%s path=%s method=%s",
        exc.error_code,
        exc.status_code,
        exc.error_id,
        request.url.path,
        request.method,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: list[str] = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": messages})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    error_id = str(uuid4())
    logger.error(
        "Unhandled exception error_id=%s path=%s method=%s",
        error_id,
        request.url.path,
        request.method,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortaleError, portale_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
