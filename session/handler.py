"""
Session orchestration between request handling and storage.

The SessionHandler owns one store and exposes the lifecycle a host
pipeline drives for every request:

    session = await handler.begin(cookie_value)   # before the route runs
    ...                                           # route reads/mutates it
    outcome = await handler.end(session)          # after the route
    if outcome.clear_cookie:        delete the cookie
    elif outcome.needs_cookie_update: set cookie to outcome.cookie_value

Two requests that mutate the same session concurrently race: the last
``end`` wins. No cross-request session locking is performed; applications
that need it must serialize such requests themselves.
"""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from config.settings import SessionSettings
from errors.exceptions import (
    BackendUnavailableError,
    InvalidIdentityError,
    SessionNotFoundError,
    fingerprint,
)
from resilience.retry import RetryConfig, retry_async
from session.backend_store import KeyValueClient
from session.codec import TokenCodec
from session.entity import Session
from session.factory import create_store
from session.identity import SessionIdGenerator
from session.store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class SessionOutcome:
    """
    What the host must do with the session cookie on the way out.

    Attributes:
        needs_cookie_update: Set (or refresh) the cookie to cookie_value.
        cookie_value: The session id, or the sealed token for cookie sessions.
        clear_cookie: Delete the cookie; takes precedence over an update.
    """
    needs_cookie_update: bool
    cookie_value: Optional[str] = None
    clear_cookie: bool = False


class SessionHandler:
    """
    Backend-agnostic session lifecycle.

    Attributes:
        store: The session store.
        generator: Session id generator.
        ttl_seconds: Lifetime of new (and, with rolling, refreshed) sessions.
        rolling: Refresh the expiry and reissue the cookie on every request.
        sweep_lottery: Probability that ``begin`` triggers ``store.tidy()``.
        retry_config: Retry policy for store calls.
    """

    def __init__(
        self,
        store: SessionStore,
        generator: Optional[SessionIdGenerator] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        rolling: bool = False,
        sweep_lottery: float = 0.0,
        retry_config: Optional[RetryConfig] = None,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if not 0.0 <= sweep_lottery <= 1.0:
            raise ValueError("sweep_lottery must be between 0 and 1")
        self.store = store
        self.generator = generator or SessionIdGenerator()
        self.ttl_seconds = ttl_seconds
        self.rolling = rolling
        self.sweep_lottery = sweep_lottery
        self.retry_config = retry_config or RetryConfig()
        self._clock = clock
        self._rng = rng

    @classmethod
    def from_settings(
        cls,
        settings: SessionSettings,
        client: Optional[KeyValueClient] = None,
        codec: Optional[TokenCodec] = None,
        clock: Callable[[], float] = time.time,
    ) -> "SessionHandler":
        """Build the configured store, generator and policies from settings."""
        return cls(
            store=create_store(settings, client=client, codec=codec, clock=clock),
            generator=SessionIdGenerator(
                byte_length=settings.id_byte_length,
                max_attempts=settings.max_id_attempts,
            ),
            ttl_seconds=settings.ttl_seconds,
            rolling=settings.rolling,
            sweep_lottery=settings.sweep_lottery,
            retry_config=RetryConfig(max_attempts=settings.backend_retry_attempts),
            clock=clock,
        )

    async def _call(self, operation: str, func, *args):
        return await retry_async(func, *args, config=self.retry_config, operation_name=operation)

    async def begin(self, presented_id: Optional[str]) -> Session:
        """
        Resolve the session for an incoming request.

        Returns the stored session for a valid presented id, otherwise a
        newly minted one. Malformed, unknown and expired ids all lead to a
        new session; they never fail the request.

        Raises:
            BackendUnavailableError: If the external store failed.
            IdentityExhaustedError: If no unique id could be generated.
        """
        await self._maybe_sweep()

        if presented_id:
            session = await self._load_presented(presented_id)
            if session is not None:
                now = self._clock()
                session.touch(now)
                if self.rolling:
                    session.refresh(self.ttl_seconds, now)
                return session

        return await self._mint()

    async def _load_presented(self, presented_id: str) -> Optional[Session]:
        if not self.store.client_side and not self.generator.is_well_formed(presented_id):
            logger.info("Ignoring malformed session id")
            return None
        try:
            return await self._call("load", self.store.load, presented_id)
        except InvalidIdentityError:
            logger.info("Ignoring invalid session token")
        except SessionNotFoundError:
            logger.debug("Presented session not found or expired")
        return None

    async def _mint(self) -> Session:
        now = self._clock()
        reserved: dict[str, Session] = {}

        async def is_taken(candidate: str) -> bool:
            session = Session.create(candidate, self.ttl_seconds, now)
            if await self._call("reserve", self.store.reserve, session):
                reserved[candidate] = session
                return False
            return True

        session_id = await self.generator.generate_unique(is_taken)
        logger.debug("Minted session", extra={"extra_data": {"session": fingerprint(session_id)}})
        return reserved[session_id]

    async def _maybe_sweep(self) -> None:
        if self.sweep_lottery <= 0.0 or self._rng() >= self.sweep_lottery:
            return
        try:
            await self.store.tidy()
        except BackendUnavailableError:
            logger.warning("Lottery sweep failed; continuing without it")

    async def end(self, session: Session) -> SessionOutcome:
        """
        Persist a session after the request and report the cookie action.

        Raises:
            BackendUnavailableError: If the external store failed.
        """
        if session.invalidated:
            # Cookie sessions have no server-side record; dropping the cookie is the destroy
            if not self.store.client_side:
                try:
                    await self._call("destroy", self.store.destroy, session.id)
                except SessionNotFoundError:
                    logger.debug("Invalidated session was already gone")
            return SessionOutcome(needs_cookie_update=False, clear_cookie=True)

        token: Optional[str] = None
        if session.is_dirty() or (self.store.client_side and session.is_new):
            token = await self._call("store", self.store.store, session)
            session.mark_clean()

        if self.store.client_side:
            return SessionOutcome(needs_cookie_update=token is not None, cookie_value=token)

        if session.is_new or self.rolling:
            return SessionOutcome(needs_cookie_update=True, cookie_value=session.id)
        return SessionOutcome(needs_cookie_update=False)

    async def clear(self, presented_id: str) -> SessionOutcome:
        """
        Empty a session's data, keeping its identity.

        Server-side sessions keep their cookie unchanged. Cookie sessions
        get a new token, because the cookie is the record.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        self._require_presentable(presented_id)
        token = await self._call("clear", self.store.clear, presented_id)
        if self.store.client_side:
            return SessionOutcome(needs_cookie_update=True, cookie_value=token)
        return SessionOutcome(needs_cookie_update=False)

    async def destroy(self, presented_id: str) -> SessionOutcome:
        """
        Remove a session and tell the host to delete the cookie.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        self._require_presentable(presented_id)
        await self._call("destroy", self.store.destroy, presented_id)
        logger.debug("Destroyed session")
        return SessionOutcome(needs_cookie_update=False, clear_cookie=True)

    def _require_presentable(self, presented_id: str) -> None:
        if not presented_id or (
            not self.store.client_side and not self.generator.is_well_formed(presented_id)
        ):
            raise SessionNotFoundError()

    async def tidy(self) -> int:
        """Reclaim expired sessions in the store."""
        return await self._call("tidy", self.store.tidy)


# Process-wide handler, initialized once at startup
_handler: Optional[SessionHandler] = None
_handler_lock = threading.Lock()


def init_session_handler(handler: SessionHandler) -> SessionHandler:
    """
    Install the process-wide session handler.

    Raises:
        RuntimeError: If a handler is already installed.
    """
    global _handler
    with _handler_lock:
        if _handler is not None:
            raise RuntimeError("Session handler already initialized")
        _handler = handler
    return handler


def get_session_handler() -> SessionHandler:
    """
    Return the process-wide session handler.

    Raises:
        RuntimeError: If init_session_handler has not been called.
    """
    handler = _handler
    if handler is None:
        raise RuntimeError("Session handler not initialized. Call init_session_handler() first.")
    return handler


def reset_session_handler() -> None:
    """Remove the process-wide handler (shutdown and tests)."""
    global _handler
    with _handler_lock:
        _handler = None
