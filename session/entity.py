"""
In-memory representation of one session.

A Session is owned by a single request: handlers hand out a fresh instance
per ``begin`` and stores keep only serialized records, so instances are
never shared between concurrently handled requests.
"""

from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class Session:
    """
    One session's data plus metadata.

    Attributes:
        id: The session id; never changes for the lifetime of the session.
        created_at: Creation time, seconds since the epoch.
        last_accessed_at: Time of the last ``touch``.
        expires_at: Expiry time; only moves backwards through ``refresh``.
        is_new: True when minted during the current request.
        invalidated: True once ``invalidate`` was called.
    """

    __slots__ = (
        "_id",
        "_data",
        "_created_at",
        "_last_accessed_at",
        "_expires_at",
        "_dirty",
        "_is_new",
        "_invalidated",
    )

    def __init__(
        self,
        session_id: str,
        data: Optional[Mapping[str, str]] = None,
        *,
        created_at: float,
        last_accessed_at: float,
        expires_at: float,
        is_new: bool = False,
    ):
        self._id = session_id
        self._data: dict[str, str] = dict(data or {})
        self._created_at = float(created_at)
        self._last_accessed_at = float(last_accessed_at)
        self._expires_at = float(expires_at)
        self._dirty = False
        self._is_new = is_new
        self._invalidated = False

    @classmethod
    def create(cls, session_id: str, ttl_seconds: float, now: float) -> "Session":
        """Mint a new, empty session expiring ``ttl_seconds`` from ``now``."""
        return cls(
            session_id,
            created_at=now,
            last_accessed_at=now,
            expires_at=now + ttl_seconds,
            is_new=True,
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def created_at(self) -> float:
        return self._created_at

    @property
    def last_accessed_at(self) -> float:
        return self._last_accessed_at

    @property
    def expires_at(self) -> float:
        return self._expires_at

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    @property
    def data(self) -> Mapping[str, str]:
        """Read-only view of the payload; mutate through set/remove/clear_data."""
        return MappingProxyType(self._data)

    # Data accessors

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Store a text value; callers serialize richer values themselves."""
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError("session keys and values must be str")
        self._data[key] = value
        self._dirty = True

    def remove(self, key: str) -> None:
        """Remove a key; removing an absent key changes nothing."""
        if key in self._data:
            del self._data[key]
            self._dirty = True

    def clear_data(self) -> None:
        """Empty the payload. Identity and creation time are kept."""
        self._data.clear()
        self._dirty = True

    def keys(self):
        return self._data.keys()

    def as_dict(self) -> dict[str, str]:
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    # Metadata

    def touch(self, now: float) -> None:
        """Record an access. Not a mutation: the session stays clean."""
        self._last_accessed_at = now

    def refresh(self, ttl_seconds: float, now: float) -> None:
        """Reset the expiry to ``now + ttl_seconds``."""
        self._expires_at = now + ttl_seconds
        self._dirty = True

    def extend(self, expires_at: float) -> None:
        """Move the expiry forward; earlier values are ignored."""
        if expires_at > self._expires_at:
            self._expires_at = expires_at
            self._dirty = True

    def is_expired(self, now: float) -> bool:
        return self._expires_at <= now

    def invalidate(self) -> None:
        """Mark the session for destruction when the request ends."""
        self._invalidated = True

    def mark_dirty(self) -> None:
        self._dirty = True

    def mark_clean(self) -> None:
        self._dirty = False

    def is_dirty(self) -> bool:
        return self._dirty

    def __repr__(self) -> str:
        return (
            f"Session(id={self._id[:8]!r}..., keys={len(self._data)}, "
            f"expires_at={self._expires_at}, dirty={self._dirty}, new={self._is_new})"
        )
