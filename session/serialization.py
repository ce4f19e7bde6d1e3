"""
Persisted form of a session.

Every backend stores the same self-describing JSON document, so records
move between memory, cache, database and cookie without conversion:

    {"version": 1, "id": "...", "data": {"k": "v"},
     "created_at": 1700000000.0, "last_accessed_at": ..., "expires_at": ...}
"""

import logging
from typing import Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from errors.exceptions import SessionSerializationError
from session.entity import Session

logger = logging.getLogger(__name__)

RECORD_VERSION = 1


class SessionRecord(BaseModel):
    """Validated backend record. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    version: int = RECORD_VERSION
    id: str
    data: dict[str, str]
    created_at: float
    last_accessed_at: float
    expires_at: float

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v != RECORD_VERSION:
            raise ValueError(f"unsupported record version {v}")
        return v

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v:
            raise ValueError("record id cannot be empty")
        return v

    @classmethod
    def from_session(cls, session: Session) -> "SessionRecord":
        return cls(
            id=session.id,
            data=session.as_dict(),
            created_at=session.created_at,
            last_accessed_at=session.last_accessed_at,
            expires_at=session.expires_at,
        )

    def to_session(self) -> Session:
        return Session(
            self.id,
            self.data,
            created_at=self.created_at,
            last_accessed_at=self.last_accessed_at,
            expires_at=self.expires_at,
        )


def encode_record(session: Session) -> str:
    """Serialize a session to its JSON record."""
    return SessionRecord.from_session(session).model_dump_json()


def decode_record(raw: Union[str, bytes]) -> SessionRecord:
    """
    Parse and validate a JSON record.

    Raises:
        SessionSerializationError: If the input is not a valid record.
    """
    try:
        return SessionRecord.model_validate_json(raw)
    except ValidationError as e:
        raise SessionSerializationError(
            details={"errors": [err.get("msg", "") for err in e.errors()][:5]}
        ) from e


def decode_session(raw: Union[str, bytes]) -> Session:
    """Parse a JSON record straight into a Session."""
    return decode_record(raw).to_session()
