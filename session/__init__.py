"""
Session management module.

This module provides server-side sessions for request-handling
applications: unguessable session ids, a string payload per session, and
pluggable stores (in-process memory, external database or cache, or the
client's own cookie) behind one contract, orchestrated by SessionHandler.
"""

from session.backend_store import (
    CacheSessionStore,
    DatabaseSessionStore,
    KeyValueClient,
    KeyValueSessionStore,
    PurgingClient,
    ReservingClient,
)
from session.codec import FernetTokenCodec, TokenCodec, generate_cookie_key
from session.concurrent_map import ConcurrentSessionMap
from session.cookie_store import CookieSessionStore
from session.entity import Session
from session.factory import create_store
from session.handler import (
    SessionHandler,
    SessionOutcome,
    get_session_handler,
    init_session_handler,
    reset_session_handler,
)
from session.identity import SessionIdGenerator
from session.memory_store import InMemorySessionStore
from session.redis_store import RedisCacheClient
from session.serialization import SessionRecord, decode_record, encode_record
from session.store import SessionStore, StoreKind
from session.sweeper import SessionSweeper

__all__ = [
    "CacheSessionStore",
    "ConcurrentSessionMap",
    "CookieSessionStore",
    "DatabaseSessionStore",
    "FernetTokenCodec",
    "InMemorySessionStore",
    "KeyValueClient",
    "KeyValueSessionStore",
    "PurgingClient",
    "RedisCacheClient",
    "ReservingClient",
    "Session",
    "SessionHandler",
    "SessionIdGenerator",
    "SessionOutcome",
    "SessionRecord",
    "SessionStore",
    "SessionSweeper",
    "StoreKind",
    "TokenCodec",
    "create_store",
    "decode_record",
    "encode_record",
    "generate_cookie_key",
    "get_session_handler",
    "init_session_handler",
    "reset_session_handler",
]
