"""
Default in-process session store.

Records live in a ConcurrentSessionMap as serialized JSON, so every load
hands out an independent Session and concurrent requests never share
mutable state. There is no I/O failure mode.
"""

import logging
import time
from typing import Callable, Optional

from config.settings import StoreKind
from errors.exceptions import (
    SessionSerializationError,
    fingerprint,
    session_not_found,
)
from session.concurrent_map import DEFAULT_SHARD_COUNT, ConcurrentSessionMap
from session.entity import Session
from session.serialization import decode_record, decode_session, encode_record
from session.store import SessionStore

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):
    """
    Session store backed by a sharded concurrent map.

    Attributes:
        sessions: The underlying map, exposed for inspection.
    """

    kind = StoreKind.MEMORY

    def __init__(
        self,
        sessions: Optional[ConcurrentSessionMap] = None,
        shard_count: int = DEFAULT_SHARD_COUNT,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        if sessions is None:
            sessions = ConcurrentSessionMap(shard_count=shard_count, clock=clock)
        self.sessions = sessions

    async def load(self, session_id: str) -> Session:
        record = self.sessions.get(session_id, self._clock())
        if record is None:
            raise session_not_found(session_id)
        try:
            return decode_session(record)
        except SessionSerializationError as e:
            logger.error(
                "Discarding corrupt session record",
                extra={"extra_data": {"session": fingerprint(session_id), "details": e.details}}
            )
            self.sessions.remove(session_id)
            raise session_not_found(session_id) from e

    async def store(self, session: Session) -> Optional[str]:
        self.sessions.insert(session.id, encode_record(session), session.expires_at)
        return None

    async def reserve(self, session: Session) -> bool:
        return self.sessions.insert_if_absent(
            session.id, encode_record(session), session.expires_at, self._clock()
        )

    async def clear(self, session_id: str) -> Optional[str]:
        def cleared(record: str):
            current = decode_record(record)
            emptied = current.model_copy(update={"data": {}})
            return emptied.model_dump_json(), current.expires_at

        try:
            entry = self.sessions.update(session_id, cleared, self._clock())
        except SessionSerializationError as e:
            logger.error(
                "Discarding corrupt session record",
                extra={"extra_data": {"session": fingerprint(session_id), "details": e.details}}
            )
            self.sessions.remove(session_id)
            raise session_not_found(session_id) from e
        if entry is None:
            raise session_not_found(session_id)
        return None

    async def destroy(self, session_id: str) -> None:
        if not self.sessions.remove(session_id, self._clock()):
            raise session_not_found(session_id)

    async def exists(self, session_id: str) -> bool:
        return self.sessions.contains(session_id, self._clock())

    async def tidy(self) -> int:
        removed = self.sessions.sweep(self._clock())
        if removed:
            logger.debug("Swept expired sessions", extra={"extra_data": {"removed": removed}})
        return removed

    def __len__(self) -> int:
        return len(self.sessions)
