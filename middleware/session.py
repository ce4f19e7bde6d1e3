"""
Session middleware for FastAPI/Starlette applications.

This middleware is the host side of the session lifecycle: it reads the
session cookie, asks the SessionHandler for the request's session before
the route runs, and applies the handler's cookie decision to the response.
Routes reach the session through ``request.state.session`` or the
``get_request_session`` dependency.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from config.settings import SessionSettings, get_settings
from errors.exceptions import (
    BackendUnavailableError,
    IdentityExhaustedError,
    SessionError,
    SessionNotFoundError,
    fingerprint,
)
from errors.handlers import build_error_response, register_exception_handlers
from session.codec import TokenCodec
from session.entity import Session
from session.handler import (
    SessionHandler,
    SessionOutcome,
    get_session_handler,
    init_session_handler,
)
from session.redis_store import RedisCacheClient
from session.sweeper import SessionSweeper
from telemetry.service import (
    configure_logging,
    reset_session_fingerprint,
    set_session_fingerprint,
)

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware that attaches a session to every request.

    For each request:
    1. The session cookie (if any) is passed to ``handler.begin``
    2. The session is stored in request.state for routes
    3. The session fingerprint is bound for log correlation
    4. After the route, ``handler.end`` decides the cookie action
    5. The cookie is set, refreshed or deleted on the response

    When the store is unavailable the request fails with a structured
    503 error, unless ``fail_open`` is set, in which case it proceeds
    without a session.
    """

    def __init__(
        self,
        app: ASGIApp,
        handler: Optional[SessionHandler] = None,
        settings: Optional[SessionSettings] = None,
    ):
        """
        Initialize the middleware.

        Args:
            app: The ASGI application to wrap
            handler: The session handler; defaults to the process-wide one
            settings: Cookie attributes and failure policy; defaults to
                the global settings
        """
        super().__init__(app)
        self._handler = handler
        self.settings = settings or get_settings()

    @property
    def handler(self) -> SessionHandler:
        return self._handler or get_session_handler()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        presented = request.cookies.get(self.settings.cookie_name)

        try:
            session = await self.handler.begin(presented)
        except BackendUnavailableError as e:
            if not self.settings.fail_open:
                return build_error_response(e)
            logger.warning("Session store unavailable; serving request without a session")
            request.state.session = None
            return await call_next(request)
        except IdentityExhaustedError as e:
            return build_error_response(e)

        request.state.session = session
        token = set_session_fingerprint(fingerprint(session.id))
        try:
            response = await call_next(request)

            try:
                outcome = await self.handler.end(session)
            except SessionError as e:
                if isinstance(e, BackendUnavailableError) and self.settings.fail_open:
                    logger.warning("Session store unavailable; session changes were not saved")
                    return response
                logger.error(
                    "Failed to persist session",
                    extra={"extra_data": {"error_code": e.error_code.value}}
                )
                return build_error_response(e, session=fingerprint(session.id))

            self.apply_outcome(response, outcome)
            return response
        finally:
            reset_session_fingerprint(token)

    def apply_outcome(self, response: Response, outcome: SessionOutcome) -> None:
        """Set, refresh or delete the session cookie on a response."""
        settings = self.settings
        if outcome.clear_cookie:
            response.delete_cookie(
                settings.cookie_name,
                path=settings.cookie_path,
                domain=settings.cookie_domain,
                secure=settings.cookie_secure,
                httponly=settings.cookie_http_only,
                samesite=settings.cookie_same_site.value,
            )
        elif outcome.needs_cookie_update and outcome.cookie_value:
            response.set_cookie(
                settings.cookie_name,
                outcome.cookie_value,
                max_age=settings.ttl_seconds,
                path=settings.cookie_path,
                domain=settings.cookie_domain,
                secure=settings.cookie_secure,
                httponly=settings.cookie_http_only,
                samesite=settings.cookie_same_site.value,
            )


def get_request_session(request: Request) -> Session:
    """
    FastAPI dependency returning the current request's session.

    Raises:
        SessionNotFoundError: If no session is attached (middleware not
            installed, or the store was down with fail_open set).
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise SessionNotFoundError(message="No session is attached to this request")
    return session


@asynccontextmanager
async def session_lifespan(
    handler: SessionHandler,
    sweep_interval_seconds: Optional[float] = None,
):
    """
    Startup/shutdown for the session layer, for use inside an app lifespan.

    Connects a Redis-backed store, runs the periodic sweeper while the app
    is up, and releases both on shutdown.

    Example:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with session_lifespan(handler, settings.sweep_interval_seconds):
                yield
    """
    client = getattr(handler.store, "client", None)
    if isinstance(client, RedisCacheClient):
        await client.connect()

    sweeper = None
    if sweep_interval_seconds:
        sweeper = SessionSweeper(handler.store, sweep_interval_seconds)
        sweeper.start()

    try:
        yield handler
    finally:
        if sweeper is not None:
            await sweeper.stop()
        if isinstance(client, RedisCacheClient):
            await client.disconnect()


def setup_sessions(
    app,
    settings: Optional[SessionSettings] = None,
    client=None,
    codec: Optional[TokenCodec] = None,
) -> SessionHandler:
    """
    Configure logging, build the process-wide session handler and install
    the middleware.

    Args:
        app: The FastAPI application instance
        settings: Session settings; defaults to the global settings
        client: External client for database/cache stores
        codec: Token codec for cookie stores

    Returns:
        The installed SessionHandler
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    handler = init_session_handler(SessionHandler.from_settings(settings, client=client, codec=codec))
    app.add_middleware(SessionMiddleware, handler=handler, settings=settings)
    register_exception_handlers(app)
    logger.info(
        "Session middleware installed",
        extra={"extra_data": {"store": settings.store_type.value, "cookie_name": settings.cookie_name}}
    )
    return handler
