"""
Token codecs for cookie-embedded sessions.

A cookie-embedded session has no server-side record: the cookie value is
the record itself, sealed by the host's secret facility so that clients
can neither read nor forge it. ``FernetTokenCodec`` provides that facility
with ``cryptography``'s Fernet (AES-128-CBC with HMAC-SHA256).
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from errors.exceptions import InvalidIdentityError

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenCodec(Protocol):
    """Seals and opens opaque cookie tokens."""

    def encode(self, payload: bytes) -> str:
        """Seal ``payload`` into a cookie-safe token."""
        ...

    def decode(self, token: str) -> bytes:
        """
        Open a token produced by ``encode``.

        Raises:
            InvalidIdentityError: If the token is malformed, tampered with,
                sealed under another key, or older than the codec allows.
        """
        ...


class FernetTokenCodec:
    """
    Fernet-backed TokenCodec.

    Example:
        codec = FernetTokenCodec(settings.cookie_secret_key)
        token = codec.encode(b'{"id": "..."}')
        payload = codec.decode(token)
    """

    def __init__(self, key: str, max_age: Optional[int] = None):
        """
        Args:
            key: URL-safe base64-encoded 32-byte Fernet key.
            max_age: Optional token age limit in seconds, enforced on decode
                on top of the session's own expiry.

        Raises:
            ValueError: If the key is not a valid Fernet key.
        """
        try:
            self._fernet = Fernet(key.encode("utf-8") if isinstance(key, str) else key)
        except (TypeError, ValueError) as e:
            raise ValueError(
                "cookie_secret_key must be a URL-safe base64-encoded 32-byte key; "
                "generate one with session.codec.generate_cookie_key()"
            ) from e
        self.max_age = max_age

    def encode(self, payload: bytes) -> str:
        return self._fernet.encrypt(payload).decode("ascii")

    def decode(self, token: str) -> bytes:
        try:
            return self._fernet.decrypt(token.encode("ascii"), ttl=self.max_age)
        except (InvalidToken, UnicodeEncodeError, TypeError, AttributeError) as e:
            # Never log the token itself
            logger.info("Rejected undecodable session cookie")
            raise InvalidIdentityError(details={"reason": "token rejected"}) from e


def generate_cookie_key() -> str:
    """Generate a fresh key for FernetTokenCodec."""
    return Fernet.generate_key().decode("ascii")
