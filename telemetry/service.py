"""
Structured logging for the session layer.

This module provides JSON log output with session correlation: every log
entry carries a fingerprint of the session being handled by the current
request, taken from a context variable the session middleware sets.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Fingerprint of the session handled by the current request or task
session_fingerprint_var: ContextVar[str] = ContextVar("session_fingerprint", default="")


class JSONFormatter(logging.Formatter):
    """
    Custom log formatter that outputs logs in JSON format.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry
    - session: Fingerprint of the current session, if any

    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted string containing the log entry
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        session = session_fingerprint_var.get("")
        if session:
            log_data["session"] = session

        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data.update(extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


def configure_logging(log_level: str = "INFO", stream: Optional[Any] = None) -> logging.Logger:
    """
    Configure structured JSON logging on the root logger.

    Existing root handlers are removed to avoid duplicate output.

    Args:
        log_level: Name of the logging level
        stream: Output stream, stdout by default

    Returns:
        The logger used by the session layer
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    logger = logging.getLogger("session")
    logger.info("Logging configured", extra={"extra_data": {"log_level": log_level.upper()}})
    return logger


def set_session_fingerprint(value: str):
    """Bind a session fingerprint to the current context; returns the reset token."""
    return session_fingerprint_var.set(value)


def reset_session_fingerprint(token) -> None:
    """Restore the fingerprint bound before set_session_fingerprint."""
    session_fingerprint_var.reset(token)
