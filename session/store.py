"""
Session store abstraction.

This module defines the contract every session backend satisfies, whether
the record of truth lives in process memory, in an external cache or
database, or in the client's own cookie. The session handler only talks to
this interface, which keeps it backend-agnostic.

All methods are async so that external stores can suspend on I/O without
blocking unrelated requests.
"""

from abc import ABC, abstractmethod
from typing import Optional

from config.settings import StoreKind
from errors.exceptions import SessionNotFoundError
from session.entity import Session


class SessionStore(ABC):
    """
    Abstract base class for session storage implementations.

    Attributes:
        kind: Which of the closed set of variants this store is.
        client_side: True when the record lives in the client's token and
            the store holds no server-side state.
    """

    kind: StoreKind
    client_side: bool = False

    @abstractmethod
    async def load(self, session_id: str) -> Session:
        """
        Retrieve a session by id (or, for client-side stores, by token).

        Args:
            session_id: The presented session identity.

        Returns:
            The stored session, clean and not new.

        Raises:
            SessionNotFoundError: If the session does not exist, has
                expired, or its record is corrupt.
            BackendUnavailableError: If the external store failed.
        """
        pass

    @abstractmethod
    async def store(self, session: Session) -> Optional[str]:
        """
        Persist a session, overwriting any previous record (last write wins).

        Args:
            session: The session to persist.

        Returns:
            The replacement client token for client-side stores, None for
            server-side stores.

        Raises:
            BackendUnavailableError: If the external store failed.
            SessionSerializationError: If the session cannot be encoded.
        """
        pass

    @abstractmethod
    async def clear(self, session_id: str) -> Optional[str]:
        """
        Empty a session's data while keeping its id and creation time.

        Returns:
            The replacement client token for client-side stores, None
            otherwise.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        pass

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """
        Remove every server-side trace of a session.

        Raises:
            SessionNotFoundError: If the session does not exist or has
                expired. Expired records may be discarded on the way.
        """
        pass

    async def exists(self, session_id: str) -> bool:
        """Check whether a live session with this id exists."""
        try:
            await self.load(session_id)
        except SessionNotFoundError:
            return False
        return True

    async def reserve(self, session: Session) -> bool:
        """
        Store a freshly minted session only if its id is free.

        Stores that can do this atomically override it; this default is a
        check followed by a write.

        Returns:
            False when the id is already taken.
        """
        if await self.exists(session.id):
            return False
        await self.store(session)
        return True

    async def tidy(self) -> int:
        """Reclaim expired records; returns how many were removed."""
        return 0

    async def health_check(self) -> bool:
        """
        Check connectivity and health of the store.

        Note:
            This method should not raise exceptions; connectivity issues
            result in a False return value.
        """
        return True
