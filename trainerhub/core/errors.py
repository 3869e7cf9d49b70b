"""
Marketplace error types and the FastAPI handlers that turn them into one envelope:

    {"error": {"code", "message", "request_id"}, "detail": message}

Services raise the ``AppError`` subclasses below; anything else reaching the app
surfaces as an opaque 500.
"""

import builtins
import logging
from typing import Optional
from uuid import uuid4

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from trainerhub.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    """User input rejected before anything is written."""
    code = "validation_error"
    status_code = 400


class AuthenticationError(AppError):
    code = "unauthenticated"
    status_code = 401


class PermissionError(AppError, builtins.PermissionError):
    """The principal's role does not allow the operation."""
    code = "forbidden"
    status_code = 403


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    """Duplicate account, or the same toggle already in flight."""
    code = "conflict"
    status_code = 409


class GatewayError(AppError):
    """The hosted backend failed or refused the call; ``upstream_status`` is its HTTP status if any."""
    code = "gateway_error"
    status_code = 502

    def __init__(self, message: str, *, upstream_status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status


class FetchError(GatewayError):
    code = "fetch_failed"


class MutationError(GatewayError):
    code = "mutation_failed"


# HTTPException statuses raised by the framework itself (unknown route, wrong method)
_HTTP_CODES = {401: "unauthenticated", 403: "forbidden", 404: "not_found", 405: "method_not_allowed"}


def _request_id(request: Request, preferred: Optional[str] = None) -> str:
    return preferred or getattr(request.state, "request_id", None) or get_request_id() or uuid4().hex


def error_response(request: Request, status: int, code: str, message: str, *, request_id: Optional[str] = None) -> JSONResponse:
    rid = _request_id(request, request_id)
    level = logging.ERROR if status >= 500 else logging.WARNING
    logger.log(level, "request failed: %s", message, extra={"request_id": rid, "error_code": code, "status": status})
    return JSONResponse(
        status_code=status,
        content={"error": {"code": code, "message": message, "request_id": rid}, "detail": message},
        headers={"x-request-id": rid},
    )


async def app_error_handler(request: Request, exc: AppError):
    return error_response(request, exc.status_code, exc.code, exc.message, request_id=exc.request_id)


async def http_error_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    return error_response(request, exc.status_code, _HTTP_CODES.get(exc.status_code, "http_error"), message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies or query params; reports the first offending field."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{where}: {first.get('msg', 'invalid')}" if where else first.get("msg", "invalid")
    else:
        message = "Invalid request"
    return error_response(request, 422, "validation_error", message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id(request)
    logger.error("unhandled exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return error_response(request, 500, "internal_error", "Unexpected error", request_id=rid)
