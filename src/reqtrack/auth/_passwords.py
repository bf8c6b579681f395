"""Password hashing with Argon2id."""

from typing import Final

import argon2
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from reqtrack.exceptions import ValidationError

__all__ = ["MIN_PASSWORD_LENGTH", "PasswordHasher", "validate_password_strength"]

MIN_PASSWORD_LENGTH: Final = 8


def validate_password_strength(password: str, *, field: str = "password") -> None:
    """Reject passwords shorter than the minimum length.

    Raises:
        ValidationError: If ``password`` is too short.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        msg = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        raise ValidationError(msg, field=field)


class PasswordHasher:
    """Argon2id hashing with a random salt per hash.

    The library default cost parameters are used; they are at or above the
    RFC 9106 low-memory baseline.
    """

    __slots__: Final = ("_hasher",)

    _hasher: argon2.PasswordHasher

    def __init__(self, hasher: argon2.PasswordHasher | None = None) -> None:
        self._hasher = hasher or argon2.PasswordHasher()

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """Return True if ``password`` matches ``password_hash``.

        A malformed stored hash counts as a mismatch.
        """
        try:
            return self._hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._hasher.check_needs_rehash(password_hash)
