"""
Session stores backed by an external key/value client.

The database and cache variants delegate to an externally supplied client
exposing a narrow async capability (``get``, ``put``, ``delete``). Any
client failure, timeouts included, is surfaced as BackendUnavailableError;
nothing is retried here, the retry policy belongs to the caller.
"""

import logging
import math
import time
from typing import Awaitable, Callable, Optional, Protocol, TypeVar, runtime_checkable

from config.settings import StoreKind
from errors.exceptions import (
    SessionError,
    SessionSerializationError,
    backend_unavailable,
    fingerprint,
    session_not_found,
)
from session.entity import Session
from session.serialization import decode_session, encode_record
from session.store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class KeyValueClient(Protocol):
    """Capability every external backend client must provide."""

    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None when the key is absent."""
        ...

    async def put(self, key: str, value: bytes, ttl: int) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete ``key``; return whether it existed."""
        ...


@runtime_checkable
class ReservingClient(Protocol):
    """Optional capability: atomic insert-if-absent."""

    async def add(self, key: str, value: bytes, ttl: int) -> bool:
        """Store ``value`` only if ``key`` is absent; return whether it was stored."""
        ...


@runtime_checkable
class PurgingClient(Protocol):
    """Optional capability: bulk removal of expired records."""

    async def purge_expired(self, now: float) -> int:
        """Delete records whose expiry has passed; return how many."""
        ...


class KeyValueSessionStore(SessionStore):
    """
    Shared implementation of the external-client store variants.

    Attributes:
        client: The external key/value client.
        key_prefix: Namespace prepended to every session id.
    """

    key_prefix: str = "session:"

    def __init__(
        self,
        client: KeyValueClient,
        key_prefix: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        if key_prefix is not None:
            self.key_prefix = key_prefix
        self._clock = clock

    def _get_key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def _ttl_for(self, session: Session) -> int:
        return max(1, math.ceil(session.expires_at - self._clock()))

    async def _call(self, operation: str, func: Callable[..., Awaitable[T]], *args) -> T:
        """Run a client call, converting any failure into BackendUnavailableError."""
        try:
            return await func(*args)
        except SessionError:
            raise
        except Exception as e:
            logger.error(
                "Session backend call failed",
                extra={
                    "extra_data": {
                        "operation": operation,
                        "store": self.kind.value,
                        "error_type": type(e).__name__,
                        "error": str(e),
                    }
                }
            )
            raise backend_unavailable(operation, cause=e, details={"store": self.kind.value}) from e

    async def load(self, session_id: str) -> Session:
        key = self._get_key(session_id)
        raw = await self._call("load", self.client.get, key)
        if raw is None:
            raise session_not_found(session_id)

        try:
            session = decode_session(raw)
        except SessionSerializationError as e:
            logger.error(
                "Discarding corrupt session record",
                extra={"extra_data": {"session": fingerprint(session_id), "store": self.kind.value}}
            )
            await self._discard(key)
            raise session_not_found(session_id) from e

        if session.id != session_id:
            logger.error(
                "Session record stored under a foreign key",
                extra={"extra_data": {"session": fingerprint(session_id), "store": self.kind.value}}
            )
            raise session_not_found(session_id)

        if session.is_expired(self._clock()):
            await self._discard(key)
            raise session_not_found(session_id)
        return session

    async def _discard(self, key: str) -> None:
        """Best-effort removal of an unusable record during a load."""
        try:
            await self._call("delete", self.client.delete, key)
        except SessionError:
            logger.warning("Could not discard unusable session record")

    async def store(self, session: Session) -> Optional[str]:
        await self._call(
            "store",
            self.client.put,
            self._get_key(session.id),
            encode_record(session).encode("utf-8"),
            self._ttl_for(session),
        )
        return None

    async def reserve(self, session: Session) -> bool:
        if isinstance(self.client, ReservingClient):
            return await self._call(
                "reserve",
                self.client.add,
                self._get_key(session.id),
                encode_record(session).encode("utf-8"),
                self._ttl_for(session),
            )
        return await super().reserve(session)

    async def clear(self, session_id: str) -> Optional[str]:
        session = await self.load(session_id)
        session.clear_data()
        await self._call(
            "clear",
            self.client.put,
            self._get_key(session_id),
            encode_record(session).encode("utf-8"),
            self._ttl_for(session),
        )
        return None

    async def destroy(self, session_id: str) -> None:
        # Records the backend has not evicted yet may already be expired
        await self.load(session_id)
        existed = await self._call("destroy", self.client.delete, self._get_key(session_id))
        if not existed:
            raise session_not_found(session_id)

    async def health_check(self) -> bool:
        ping = getattr(self.client, "ping", None)
        if ping is None:
            return True
        try:
            return bool(await ping())
        except Exception:
            return False


class DatabaseSessionStore(KeyValueSessionStore):
    """
    Store for database-backed clients.

    Databases rarely evict on their own, so ``tidy`` asks the client to
    purge expired rows when it offers that capability.
    """

    kind = StoreKind.DATABASE
    key_prefix = "sessions/"

    async def tidy(self) -> int:
        if not isinstance(self.client, PurgingClient):
            return 0
        return await self._call("tidy", self.client.purge_expired, self._clock())


class CacheSessionStore(KeyValueSessionStore):
    """Store for cache clients, which evict records themselves once the TTL runs out."""

    kind = StoreKind.CACHE
    key_prefix = "session:"
