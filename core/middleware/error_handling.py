"""
Error handling with sensitive-value sanitization.

Every failure leaves the API in the same envelope:

    {"error": {"code", "message", "path", "method", "details"?, "request_id"?}}

Domain errors carry their own status and code; database errors are mapped
to 409/503/500; anything else becomes an opaque 500.
"""

import logging
import re
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import RecruitmentError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged or returned
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{16}\b'),  # Card / account numbers
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_traceback: bool = False) -> dict[str, Any]:
    """
    Extract safe error details without exposing sensitive information.

    Args:
        exc: The exception to extract details from
        include_traceback: Whether to include the stack trace (debug only)

    Returns:
        Dictionary with safe error details
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }
    if include_traceback:
        details["traceback"] = traceback.format_exc()
    return details


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic validation errors into field/message/type entries."""
    errors = []
    for error in exc.errors():
        entry = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        value = error.get("input")
        if isinstance(value, (str, int, float, bool)):
            if not any(pattern.search(str(value)) for pattern in SENSITIVE_PATTERNS):
                entry["input"] = value
        errors.append(entry)
    return errors


@dataclass
class ErrorInfo:
    """Resolved HTTP rendering of an exception."""

    status_code: int
    code: str
    message: str
    details: Any = None


def resolve_error(exc: Exception, path: str, method: str, debug: bool = False) -> ErrorInfo:
    """
    Map an exception to its HTTP status, code and client-safe message.

    Logs at WARNING for client errors and ERROR for server-side failures.
    """
    if isinstance(exc, RecruitmentError):
        logger.warning(
            f"{type(exc).__name__}: {method} {path} - {sanitize_error_message(exc.message)}"
        )
        return ErrorInfo(
            exc.status_code, exc.error_code, sanitize_error_message(exc.message), exc.details
        )

    if isinstance(exc, StarletteHTTPException):
        logger.warning(f"HTTP exception: {method} {path} - Status: {exc.status_code}")
        return ErrorInfo(exc.status_code, "HTTP_EXCEPTION", sanitize_error_message(exc.detail))

    if isinstance(exc, RequestValidationError):
        details = format_validation_errors(exc)
        logger.warning(f"Validation error: {method} {path} - Errors: {details}")
        return ErrorInfo(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            details,
        )

    if isinstance(exc, IntegrityError):
        logger.warning(f"Database integrity error: {method} {path}")
        return ErrorInfo(
            status.HTTP_409_CONFLICT,
            "INTEGRITY_ERROR",
            "Database integrity constraint violated",
            get_safe_error_details(exc) if debug else None,
        )

    if isinstance(exc, OperationalError):
        logger.error(f"Database operational error: {method} {path}", exc_info=True)
        return ErrorInfo(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "DATABASE_ERROR",
            "Database service temporarily unavailable",
        )

    if isinstance(exc, SQLAlchemyError):
        logger.error(f"SQLAlchemy error: {method} {path}", exc_info=True)
        return ErrorInfo(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "DATABASE_ERROR",
            "A database error occurred",
            get_safe_error_details(exc, include_traceback=True) if debug else None,
        )

    logger.error(
        f"Unhandled exception: {method} {path} - "
        f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
        exc_info=True,
    )
    return ErrorInfo(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
        get_safe_error_details(exc, include_traceback=True) if debug else None,
    )


def build_error_response(
    info: ErrorInfo, path: str, method: str, request_id: Optional[str] = None
) -> JSONResponse:
    body: dict[str, Any] = {
        "code": info.code,
        "message": info.message,
        "path": path,
        "method": method,
    }
    if info.details is not None:
        body["details"] = info.details
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(status_code=info.status_code, content={"error": body})


class ErrorHandlingMiddleware:
    """
    Outermost ASGI safety net.

    Catches anything that escaped the registered exception handlers and
    renders it in the standard envelope.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self._handle_exception(exc, scope)
            await response(scope, receive, send)

    def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        path = scope.get("path", "unknown")
        method = scope.get("method", "unknown")
        info = resolve_error(exc, path, method, self.debug)

        request_id = None
        headers = dict(scope.get("headers") or [])
        if headers.get(b"x-request-id"):
            request_id = headers[b"x-request-id"].decode()

        return build_error_response(info, path, method, request_id)


def setup_error_handlers(app, debug: bool = False):
    """
    Register exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Include sanitized exception details in 500 responses
    """

    async def _handle(request: Request, exc: Exception) -> JSONResponse:
        path = str(request.url.path)
        info = resolve_error(exc, path, request.method, debug)
        request_id = getattr(request.state, "request_id", None) or request.headers.get(
            "x-request-id"
        )
        return build_error_response(info, path, request.method, request_id)

    for exc_class in (
        RecruitmentError,
        StarletteHTTPException,
        RequestValidationError,
        IntegrityError,
        OperationalError,
        SQLAlchemyError,
        Exception,
    ):
        app.add_exception_handler(exc_class, _handle)
