"""
Error handling module for the session layer.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException and the session error taxonomy
- Error response models for consistent API responses
- Exception handlers for FastAPI integration
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AppException,
    BackendUnavailableError,
    IdentityExhaustedError,
    InvalidIdentityError,
    SessionError,
    SessionNotFoundError,
    SessionSerializationError,
)
from errors.handlers import (
    ErrorResponse,
    build_error_response,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "AppException",
    "SessionError",
    "SessionNotFoundError",
    "InvalidIdentityError",
    "SessionSerializationError",
    "BackendUnavailableError",
    "IdentityExhaustedError",
    "ErrorResponse",
    "build_error_response",
    "handle_app_exception",
    "handle_unexpected_exception",
    "register_exception_handlers",
]
