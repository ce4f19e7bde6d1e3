"""
Cookie-embedded session store.

The token presented by the client *is* the record: ``load`` opens it,
``store`` seals the session into a new token for the host to send back,
and ``destroy`` only tells the host to drop the cookie. Nothing is kept
on the server, which also means a destroyed token stays valid until it
expires if the client replays it.
"""

import logging
import time
from typing import Callable, Optional

from config.settings import StoreKind
from errors.exceptions import SessionSerializationError, session_not_found
from session.codec import TokenCodec
from session.entity import Session
from session.serialization import decode_session, encode_record
from session.store import SessionStore

logger = logging.getLogger(__name__)

# Browsers cap a cookie (name, value and attributes) at 4096 bytes
MAX_TOKEN_BYTES = 4093


class CookieSessionStore(SessionStore):
    """
    Session store whose records live entirely in client cookies.

    Attributes:
        codec: Seals and opens tokens.
        max_token_bytes: Largest token ``store`` will produce.
    """

    kind = StoreKind.COOKIE
    client_side = True

    def __init__(
        self,
        codec: TokenCodec,
        max_token_bytes: int = MAX_TOKEN_BYTES,
        clock: Callable[[], float] = time.time,
    ):
        self.codec = codec
        self.max_token_bytes = max_token_bytes
        self._clock = clock

    async def load(self, session_id: str) -> Session:
        # InvalidIdentityError from the codec propagates as-is
        payload = self.codec.decode(session_id)
        try:
            session = decode_session(payload)
        except SessionSerializationError as e:
            logger.error(
                "Sealed cookie carried a corrupt session record",
                extra={"extra_data": {"details": e.details}}
            )
            raise session_not_found() from e
        if session.is_expired(self._clock()):
            raise session_not_found(session.id)
        return session

    async def store(self, session: Session) -> Optional[str]:
        token = self.codec.encode(encode_record(session).encode("utf-8"))
        if len(token) > self.max_token_bytes:
            raise SessionSerializationError(
                message="Session too large for a cookie",
                details={"token_bytes": len(token), "limit": self.max_token_bytes},
            )
        return token

    async def clear(self, session_id: str) -> Optional[str]:
        session = await self.load(session_id)
        session.clear_data()
        return await self.store(session)

    async def destroy(self, session_id: str) -> None:
        await self.load(session_id)

    async def exists(self, session_id: str) -> bool:
        # No server-side namespace, so a minted id can never collide here
        return False

    async def reserve(self, session: Session) -> bool:
        return True
