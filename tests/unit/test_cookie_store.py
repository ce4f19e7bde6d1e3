"""
Unit tests for the cookie-embedded session store and its token codec.

Tests cover:
- Sealing and opening session tokens
- Rejection of tampered, foreign and garbage tokens
- Size limit of sealed tokens
- clear/destroy semantics when the client holds the record
"""

import pytest

from errors.exceptions import (
    InvalidIdentityError,
    SessionNotFoundError,
    SessionSerializationError,
)
from session.codec import FernetTokenCodec, TokenCodec, generate_cookie_key
from session.cookie_store import CookieSessionStore
from session.entity import Session
from session.store import StoreKind


@pytest.fixture
def codec():
    return FernetTokenCodec(generate_cookie_key())


@pytest.fixture
def store(codec, clock):
    return CookieSessionStore(codec, clock=clock)


@pytest.fixture
def session(clock):
    s = Session.create("c" * 43, ttl_seconds=3600, now=clock())
    s.set("cart", "3 items")
    return s


class TestFernetTokenCodec:
    """Tests for FernetTokenCodec."""

    def test_satisfies_protocol(self, codec):
        assert isinstance(codec, TokenCodec)

    def test_encode_decode(self, codec):
        token = codec.encode(b"payload")

        assert isinstance(token, str)
        assert b"payload" not in token.encode("ascii")
        assert codec.decode(token) == b"payload"

    def test_rejects_token_sealed_with_another_key(self, codec):
        other = FernetTokenCodec(generate_cookie_key())

        with pytest.raises(InvalidIdentityError):
            codec.decode(other.encode(b"payload"))

    @pytest.mark.parametrize("token", ["", "garbage", "é-not-ascii"])
    def test_rejects_garbage(self, codec, token):
        with pytest.raises(InvalidIdentityError):
            codec.decode(token)

    def test_invalid_key(self):
        with pytest.raises(ValueError, match="generate_cookie_key"):
            FernetTokenCodec("too-short")


class TestCookieSessionStore:
    """Tests for CookieSessionStore."""

    def test_kind(self, store):
        assert store.kind == StoreKind.COOKIE
        assert store.client_side

    @pytest.mark.asyncio
    async def test_store_returns_token_that_loads(self, store, session):
        token = await store.store(session)

        loaded = await store.load(token)

        assert loaded.id == session.id
        assert loaded.get("cart") == "3 items"
        assert loaded.expires_at == session.expires_at

    @pytest.mark.asyncio
    async def test_each_store_produces_a_new_token(self, store, session):
        first = await store.store(session)
        session.set("cart", "4 items")
        second = await store.store(session)

        assert first != second
        assert (await store.load(second)).get("cart") == "4 items"

    @pytest.mark.asyncio
    async def test_foreign_token_is_invalid(self, store, session):
        foreign = CookieSessionStore(FernetTokenCodec(generate_cookie_key()))
        token = await foreign.store(session)

        with pytest.raises(InvalidIdentityError):
            await store.load(token)

    @pytest.mark.asyncio
    async def test_expired_session_is_not_found(self, store, session, clock):
        token = await store.store(session)
        clock.advance(3600)

        with pytest.raises(SessionNotFoundError):
            await store.load(token)

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_not_found(self, store, codec):
        token = codec.encode(b"not a session record")

        with pytest.raises(SessionNotFoundError):
            await store.load(token)

    @pytest.mark.asyncio
    async def test_oversized_session_is_rejected(self, codec, session):
        store = CookieSessionStore(codec, max_token_bytes=200)
        session.set("blob", "x" * 500)

        with pytest.raises(SessionSerializationError) as exc_info:
            await store.store(session)
        assert exc_info.value.details["limit"] == 200

    @pytest.mark.asyncio
    async def test_clear_returns_token_with_empty_data(self, store, session):
        token = await store.store(session)

        cleared_token = await store.clear(token)

        cleared = await store.load(cleared_token)
        assert cleared.id == session.id
        assert len(cleared) == 0

    @pytest.mark.asyncio
    async def test_clear_invalid_token_raises(self, store):
        with pytest.raises(InvalidIdentityError):
            await store.clear("garbage")

    @pytest.mark.asyncio
    async def test_destroy_validates_token(self, store, session):
        token = await store.store(session)

        assert await store.destroy(token) is None
        with pytest.raises(InvalidIdentityError):
            await store.destroy("garbage")

    @pytest.mark.asyncio
    async def test_ids_never_collide_server_side(self, store, session):
        assert not await store.exists(session.id)
        assert await store.reserve(session)
