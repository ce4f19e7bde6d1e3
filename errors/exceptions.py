"""
Exception classes for the session layer.

This module provides the AppException base class and the session error
taxonomy raised by stores and the session handler:

- SessionNotFoundError: id absent or expired, recovered by minting a session
- InvalidIdentityError: malformed token presented by a client
- SessionSerializationError: corrupt or incompatible stored record
- BackendUnavailableError: external store I/O failure, never retried by stores
- IdentityExhaustedError: no unique id within the generator's bound
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all application-specific errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code to return
    - details: Optional additional context

    Example:
        raise AppException(
            error_code=ErrorCode.SESSION_STORE_UNAVAILABLE,
            message="Cache did not answer",
            details={"operation": "load"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


class SessionError(AppException):
    """Base class for every error raised by the session layer."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Session error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=type(self).error_code,
            message=message or type(self).default_message,
            details=details,
        )


class SessionNotFoundError(SessionError):
    """The session id is absent from the store or has expired."""

    error_code = ErrorCode.SESSION_NOT_FOUND
    default_message = "Session not found"


class InvalidIdentityError(SessionError):
    """A client presented a malformed, tampered or undecodable token."""

    error_code = ErrorCode.INVALID_SESSION_ID
    default_message = "Invalid session identity"


class SessionSerializationError(SessionError):
    """A stored record could not be encoded or decoded."""

    error_code = ErrorCode.SESSION_CORRUPT
    default_message = "Session record is corrupt"


class BackendUnavailableError(SessionError):
    """
    The external store failed or timed out.

    Stores surface this without retrying; the retry policy belongs to the
    session handler or the application.
    """

    error_code = ErrorCode.SESSION_STORE_UNAVAILABLE
    default_message = "Session store unavailable"


class IdentityExhaustedError(SessionError):
    """
    The identity generator could not find a free id within its bound.

    With a cryptographic random source this only happens when the source
    is misconfigured, so it is treated as fatal rather than retryable.
    """

    error_code = ErrorCode.IDENTITY_EXHAUSTED
    default_message = "Unable to generate a unique session id"


# Convenience factory functions for common error types

def session_not_found(
    session_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None
) -> SessionNotFoundError:
    """Create a session not found exception."""
    if session_id is not None:
        details = {**(details or {}), "session": fingerprint(session_id)}
    return SessionNotFoundError(details=details)


def backend_unavailable(
    operation: str,
    cause: Optional[BaseException] = None,
    details: Optional[dict[str, Any]] = None
) -> BackendUnavailableError:
    """Create a backend unavailable exception for a failed store operation."""
    context = {**(details or {}), "operation": operation}
    if cause is not None:
        context["error_type"] = type(cause).__name__
    return BackendUnavailableError(
        message=f"Session store unavailable during {operation}",
        details=context,
    )


def fingerprint(session_id: str) -> str:
    """Short, log-safe prefix of a session id."""
    return session_id[:8] + "..." if len(session_id) > 8 else session_id
