"""bcrypt password hashing."""

from functools import lru_cache

import bcrypt

from messenger.errors import InternalError
from messenger.logging import get_logger

logger = get_logger(__name__)

# bcrypt only looks at this many bytes of input and refuses anything longer
MAX_PASSWORD_BYTES = 72


@lru_cache
def _dummy_hash(rounds: int) -> bytes:
    """Hash compared against when the identity does not exist."""
    return bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds))


class PasswordHasher:
    """Hash and verify passwords with a configurable bcrypt work factor.

    The methods are CPU bound. Async callers run them through
    ``starlette.concurrency.run_in_threadpool``.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string

        Raises:
            InternalError: If the underlying primitive fails
        """
        try:
            hashed = bcrypt.hashpw(
                password.encode("utf-8"), bcrypt.gensalt(self.rounds)
            )
        except (ValueError, TypeError) as e:
            logger.error("password_hash_failed", error_type=type(e).__name__)
            raise InternalError("Could not hash password") from e
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        A malformed stored hash counts as a mismatch, and so does a password
        longer than bcrypt accepts.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return self._burn(encoded)
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("password_hash_malformed")
            return False

    def dummy_verify(self, password: str) -> bool:
        """Spend the same work as ``verify`` and always fail."""
        return self._burn(password.encode("utf-8"))

    def _burn(self, encoded: bytes) -> bool:
        bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], _dummy_hash(self.rounds))
        return False
