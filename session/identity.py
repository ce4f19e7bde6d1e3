"""
Session identity generation.

Session ids are bearer secrets: anyone holding one can act as the session's
owner. They are drawn from ``secrets`` (the operating system CSPRNG) and
encoded with the URL-safe base64 alphabet without padding, which makes
them fixed-length and safe in cookies, headers and URLs.
"""

import logging
import math
import re
import secrets
from typing import Awaitable, Callable

from errors.exceptions import IdentityExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_ID_BYTES = 32
MIN_ID_BYTES = 16  # 128 bits of entropy
DEFAULT_MAX_ATTEMPTS = 8

_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]+")


class SessionIdGenerator:
    """
    Produces unguessable, fixed-length session ids.

    Attributes:
        byte_length: Random bytes drawn per id.
        max_attempts: Candidates tried by generate_unique before giving up.
    """

    def __init__(
        self,
        byte_length: int = DEFAULT_ID_BYTES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        token_source: Callable[[int], str] = secrets.token_urlsafe,
    ):
        """
        Initialize the generator.

        Args:
            byte_length: Random bytes per id, at least 16.
            max_attempts: Collision retries for generate_unique, at least 1.
            token_source: Callable turning a byte count into a URL-safe
                token. Only replaced in tests.
        """
        if byte_length < MIN_ID_BYTES:
            raise ValueError(f"byte_length must be at least {MIN_ID_BYTES}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.byte_length = byte_length
        self.max_attempts = max_attempts
        self._token_source = token_source

    @property
    def expected_length(self) -> int:
        """Length of every id this generator produces."""
        return math.ceil(self.byte_length * 4 / 3)

    def generate(self) -> str:
        """Return a fresh random session id."""
        return self._token_source(self.byte_length)

    async def generate_unique(self, is_taken: Callable[[str], Awaitable[bool]]) -> str:
        """
        Return an id for which ``is_taken`` reports False.

        ``is_taken`` may also claim the candidate as a side effect (the
        session handler reserves the id in the store in the same step), in
        which case the returned id is already owned by the caller.

        Raises:
            IdentityExhaustedError: After max_attempts consecutive collisions.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate()
            if not await is_taken(candidate):
                return candidate
            logger.warning(
                "Session id collision",
                extra={"extra_data": {"attempt": attempt, "max_attempts": self.max_attempts}}
            )

        logger.critical(
            "Session id generation exhausted; the random source is likely misconfigured",
            extra={"extra_data": {"attempts": self.max_attempts}}
        )
        raise IdentityExhaustedError(details={"attempts": self.max_attempts})

    def is_well_formed(self, token) -> bool:
        """Check that a client-presented token could have come from this generator."""
        return (
            isinstance(token, str)
            and len(token) == self.expected_length
            and _URLSAFE_ALPHABET.fullmatch(token) is not None
        )
