"""
Middleware components for applications hosting the session layer.
"""

from middleware.session import (
    SessionMiddleware,
    get_request_session,
    session_lifespan,
    setup_sessions,
)

__all__ = [
    "SessionMiddleware",
    "get_request_session",
    "session_lifespan",
    "setup_sessions",
]
