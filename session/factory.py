"""
Store selection.

The store variant is chosen once at startup from SessionSettings. The set
of variants is closed; every StoreKind is handled here explicitly.
"""

import logging
import time
from typing import Callable, Optional

from config.settings import ConfigurationError, Environment, SessionSettings, StoreKind
from session.backend_store import CacheSessionStore, DatabaseSessionStore, KeyValueClient
from session.codec import FernetTokenCodec, TokenCodec, generate_cookie_key
from session.cookie_store import CookieSessionStore
from session.memory_store import InMemorySessionStore
from session.redis_store import RedisCacheClient
from session.store import SessionStore

logger = logging.getLogger(__name__)


def create_codec(settings: SessionSettings) -> TokenCodec:
    """
    Build the cookie codec from settings.

    Development environments without a key get an ephemeral one, which
    invalidates every cookie on restart.
    """
    key = settings.cookie_secret_key
    if not key:
        if settings.environment != Environment.DEVELOPMENT:
            raise ConfigurationError(
                "cookie_secret_key is required for cookie sessions",
                missing_fields=["cookie_secret_key"],
            )
        logger.warning("No cookie_secret_key configured; using an ephemeral key (development only)")
        key = generate_cookie_key()
    try:
        return FernetTokenCodec(key, max_age=settings.ttl_seconds)
    except ValueError as e:
        raise ConfigurationError(
            "Invalid session configuration",
            invalid_fields={"cookie_secret_key": str(e)},
        ) from e


def create_store(
    settings: SessionSettings,
    client: Optional[KeyValueClient] = None,
    codec: Optional[TokenCodec] = None,
    clock: Callable[[], float] = time.time,
) -> SessionStore:
    """
    Build the configured store variant.

    Args:
        settings: Session settings.
        client: External client for the database variant (required) or the
            cache variant (defaults to a RedisCacheClient on redis_url).
        codec: Token codec for the cookie variant (defaults to Fernet).
        clock: Time source shared with the handler.

    Raises:
        ConfigurationError: If a required collaborator is missing.
    """
    kind = settings.store_type

    if kind == StoreKind.MEMORY:
        store: SessionStore = InMemorySessionStore(shard_count=settings.shard_count, clock=clock)
    elif kind == StoreKind.COOKIE:
        store = CookieSessionStore(codec or create_codec(settings), clock=clock)
    elif kind == StoreKind.DATABASE:
        if client is None:
            raise ConfigurationError(
                "The database session store needs a client",
                missing_fields=["client"],
            )
        store = DatabaseSessionStore(client, clock=clock)
    elif kind == StoreKind.CACHE:
        if client is None:
            if not settings.redis_url:
                raise ConfigurationError(
                    "The cache session store needs a client or redis_url",
                    missing_fields=["redis_url"],
                )
            client = RedisCacheClient(settings.redis_url)
        store = CacheSessionStore(client, clock=clock)
    else:
        raise ConfigurationError(
            "Invalid session configuration",
            invalid_fields={"store_type": f"unsupported store kind {kind!r}"},
        )

    logger.info("Session store created", extra={"extra_data": {"store": kind.value}})
    return store
