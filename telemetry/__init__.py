"""
Telemetry module for structured logging.

This module provides:
- JSONFormatter for structured JSON log output
- configure_logging to install it on the root logger
- A context variable correlating log entries with the current session
"""

from telemetry.service import (
    JSONFormatter,
    configure_logging,
    reset_session_fingerprint,
    session_fingerprint_var,
    set_session_fingerprint,
)

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "reset_session_fingerprint",
    "session_fingerprint_var",
    "set_session_fingerprint",
]
