"""
Unit tests for session id generation.

Tests cover:
- Fixed length and URL-safe alphabet of generated ids
- Uniqueness across a large batch
- Collision handling and exhaustion in generate_unique
- Well-formedness checks on client-presented tokens
"""

import pytest
from hypothesis import given, strategies as st

from errors.exceptions import IdentityExhaustedError
from session.identity import SessionIdGenerator


class TestSessionIdGenerator:
    """Tests for SessionIdGenerator construction and generation."""

    def test_default_ids_are_43_characters(self):
        """32 random bytes encode to 43 unpadded base64url characters."""
        generator = SessionIdGenerator()

        session_id = generator.generate()

        assert generator.expected_length == 43
        assert len(session_id) == 43
        assert generator.is_well_formed(session_id)

    def test_minimum_byte_length(self):
        generator = SessionIdGenerator(byte_length=16)

        assert generator.expected_length == 22
        assert len(generator.generate()) == 22

    def test_rejects_short_byte_length(self):
        with pytest.raises(ValueError):
            SessionIdGenerator(byte_length=15)

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            SessionIdGenerator(max_attempts=0)

    def test_ids_are_unique(self):
        generator = SessionIdGenerator()

        ids = {generator.generate() for _ in range(2000)}

        assert len(ids) == 2000

    def test_ids_use_url_safe_alphabet(self):
        generator = SessionIdGenerator()
        allowed = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

        for _ in range(200):
            assert set(generator.generate()) <= allowed


class TestGenerateUnique:
    """Tests for collision-checked generation."""

    @pytest.mark.asyncio
    async def test_returns_first_free_candidate(self):
        candidates = iter(["a" * 43, "b" * 43, "c" * 43])
        generator = SessionIdGenerator(token_source=lambda n: next(candidates))
        taken = {"a" * 43, "b" * 43}

        async def is_taken(candidate):
            return candidate in taken

        assert await generator.generate_unique(is_taken) == "c" * 43

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        calls = []
        generator = SessionIdGenerator(max_attempts=3, token_source=lambda n: "x" * 43)

        async def is_taken(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(IdentityExhaustedError) as exc_info:
            await generator.generate_unique(is_taken)

        assert len(calls) == 3
        assert exc_info.value.details == {"attempts": 3}


class TestIsWellFormed:
    """Tests for validation of presented tokens."""

    @pytest.fixture
    def generator(self):
        return SessionIdGenerator()

    def test_rejects_wrong_length(self, generator):
        assert not generator.is_well_formed("a" * 42)
        assert not generator.is_well_formed("a" * 44)
        assert not generator.is_well_formed("")

    def test_rejects_characters_outside_alphabet(self, generator):
        assert not generator.is_well_formed("a" * 42 + "+")
        assert not generator.is_well_formed("a" * 42 + "=")
        assert not generator.is_well_formed("a" * 42 + " ")
        assert not generator.is_well_formed("a" * 42 + "\n")

    def test_rejects_non_strings(self, generator):
        assert not generator.is_well_formed(None)
        assert not generator.is_well_formed(b"a" * 43)
        assert not generator.is_well_formed(12345)

    @given(st.text())
    def test_arbitrary_text_never_raises(self, token):
        generator = SessionIdGenerator()

        result = generator.is_well_formed(token)

        assert isinstance(result, bool)
        if result:
            assert len(token) == 43
