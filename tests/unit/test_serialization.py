"""
Unit tests for session record serialization.

Tests cover:
- Encoded records carry every field of the session
- Decoding restores data and metadata
- Corrupt, foreign and future-version records are rejected
"""

import json

import pytest
from hypothesis import given, strategies as st

from errors.exceptions import SessionSerializationError
from session.entity import Session
from session.serialization import (
    RECORD_VERSION,
    SessionRecord,
    decode_record,
    decode_session,
    encode_record,
)

NOW = 1_700_000_000.0


def make_session(data=None):
    return Session(
        "id-123", data,
        created_at=NOW, last_accessed_at=NOW + 1, expires_at=NOW + 3600,
    )


class TestEncodeRecord:
    """Tests for encode_record."""

    def test_record_layout(self):
        raw = encode_record(make_session({"user": "alice"}))

        record = json.loads(raw)
        assert record == {
            "version": RECORD_VERSION,
            "id": "id-123",
            "data": {"user": "alice"},
            "created_at": NOW,
            "last_accessed_at": NOW + 1,
            "expires_at": NOW + 3600,
        }

    def test_decoded_session_is_clean_and_not_new(self):
        session = decode_session(encode_record(make_session({"k": "v"})))

        assert not session.is_new
        assert not session.is_dirty()

    @given(st.dictionaries(st.text(), st.text(), max_size=20))
    def test_data_survives_any_text(self, data):
        restored = decode_session(encode_record(make_session(data)))

        assert restored.as_dict() == data
        assert restored.id == "id-123"
        assert restored.expires_at == NOW + 3600


class TestDecodeRecord:
    """Tests for decode_record error handling."""

    def test_accepts_bytes(self):
        raw = encode_record(make_session()).encode("utf-8")

        assert decode_record(raw).id == "id-123"

    def test_ignores_unknown_keys(self):
        record = json.loads(encode_record(make_session()))
        record["added_later"] = True

        assert isinstance(decode_record(json.dumps(record)), SessionRecord)

    @pytest.mark.parametrize("raw", [
        "",
        "not json",
        "[]",
        '{"version": 1}',
    ])
    def test_rejects_malformed_input(self, raw):
        with pytest.raises(SessionSerializationError):
            decode_record(raw)

    def test_rejects_unsupported_version(self):
        record = json.loads(encode_record(make_session()))
        record["version"] = RECORD_VERSION + 1

        with pytest.raises(SessionSerializationError):
            decode_record(json.dumps(record))

    def test_rejects_empty_id(self):
        record = json.loads(encode_record(make_session()))
        record["id"] = ""

        with pytest.raises(SessionSerializationError):
            decode_record(json.dumps(record))

    def test_rejects_non_text_values(self):
        record = json.loads(encode_record(make_session()))
        record["data"] = {"k": ["not", "text"]}

        with pytest.raises(SessionSerializationError) as exc_info:
            decode_record(json.dumps(record))

        assert exc_info.value.details["errors"]
