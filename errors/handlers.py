"""
Exception handlers for applications hosting the session layer.

This module converts session errors into structured JSON error responses
with a consistent format, and registers FastAPI exception handlers so that
errors raised from route code (for example a destroy on an absent session)
never leak internal details.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors.codes import ErrorCode
from errors.exceptions import AppException, fingerprint

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """
    Structured error response model.

    All error responses follow this format so clients can handle session
    failures programmatically.
    """
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None
    session: Optional[str] = None


def get_session_fingerprint(request: Request) -> Optional[str]:
    """
    Get a log-safe fingerprint of the session attached to the request.

    Args:
        request: The FastAPI request object

    Returns:
        The fingerprint, or None when no session is attached
    """
    session = getattr(request.state, "session", None)
    if session is None:
        return None
    return fingerprint(session.id)


def build_error_response(exc: AppException, session: Optional[str] = None) -> JSONResponse:
    """
    Render an AppException as a JSONResponse.

    Args:
        exc: The exception to render
        session: Optional session fingerprint to include

    Returns:
        JSONResponse carrying the exception's status code
    """
    error_response = ErrorResponse(
        error_code=exc.error_code.value,
        message=exc.message,
        details=exc.details,
        session=session,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
    )


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle known application exceptions and convert to structured response.

    Args:
        request: The FastAPI request object
        exc: The AppException that was raised

    Returns:
        JSONResponse with structured error format
    """
    session = get_session_fingerprint(request)

    logger.warning(
        "Application error occurred",
        extra={
            "extra_data": {
                "error_code": exc.error_code.value,
                "error_message": exc.message,
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
                "method": request.method,
            }
        }
    )

    return build_error_response(exc, session=session)


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions safely without exposing internal details.

    Args:
        request: The FastAPI request object
        exc: The unexpected exception that was raised

    Returns:
        JSONResponse with generic error message (no internal details exposed)
    """
    logger.error(
        "Unexpected error occurred",
        extra={
            "extra_data": {
                "error_code": ErrorCode.INTERNAL_ERROR.value,
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            }
        },
        exc_info=exc,
    )

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred. Please try again later.",
        session=get_session_fingerprint(request),
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(exclude_none=True),
    )


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)

    logger.info("Exception handlers registered successfully")
