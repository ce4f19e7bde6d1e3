"""
Error code catalog for the session layer.

This module defines all error codes raised by session stores and the session
handler, together with the HTTP status code a host application should answer
with when one of them escapes a request.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used by the session layer.

    Each error code maps to a specific HTTP status code and error category:
    - Client token errors (4xx): Missing or malformed session identities
    - External store errors (5xx): Backend connectivity failures
    - Integrity errors (5xx): Corrupt records, identity generator failures
    """

    # Client token errors (4xx)
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    """Session id absent or expired (HTTP 404)"""

    INVALID_SESSION_ID = "INVALID_SESSION_ID"
    """Malformed or tampered session token (HTTP 400)"""

    # External store errors (5xx)
    SESSION_STORE_UNAVAILABLE = "SESSION_STORE_UNAVAILABLE"
    """Database/cache backend unavailable (HTTP 503)"""

    # Integrity errors (5xx)
    SESSION_CORRUPT = "SESSION_CORRUPT"
    """Stored record could not be decoded (HTTP 500)"""

    IDENTITY_EXHAUSTED = "IDENTITY_EXHAUSTED"
    """No unique session id within the retry bound (HTTP 500)"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.INVALID_SESSION_ID: 400,
    ErrorCode.SESSION_STORE_UNAVAILABLE: 503,
    ErrorCode.SESSION_CORRUPT: 500,
    ErrorCode.IDENTITY_EXHAUSTED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
