"""Signed bearer tokens and opaque secrets.

Bearer tokens are HS256 JWTs carrying ``user_id``, ``username``, ``role``,
``iat``, ``nbf`` and ``exp``, plus a random ``jti``. Refresh tokens and PATs
are opaque random secrets; only their SHA-256 digests are stored, together
with a short non-secret lookup prefix that narrows the candidate rows.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Final

import jwt
import pendulum
from pydantic import ValidationError as PydanticValidationError

from reqtrack.auth._models import TokenClaims
from reqtrack.exceptions import ConfigError, InvalidTokenError, TokenExpiredError
from reqtrack.utils import utc_now

if TYPE_CHECKING:
    from reqtrack.auth._models import User

__all__ = [
    "LOOKUP_PREFIX_LENGTH",
    "PAT_PREFIX",
    "TokenCodec",
    "constant_time_equals",
    "generate_secret",
    "hash_secret",
    "lookup_prefix",
]

ALGORITHM: Final = "HS256"
PAT_PREFIX: Final = "mcp_pat_"
SECRET_BYTES: Final = 32
LOOKUP_PREFIX_LENGTH: Final = 8
MIN_SIGNING_KEY_LENGTH: Final = 32


def generate_secret() -> str:
    """Return 32 random bytes as unpadded base64url text."""
    raw = secrets.token_bytes(SECRET_BYTES)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def hash_secret(secret: str) -> str:
    """SHA-256 hex digest of an opaque secret.

    Examples:
        >>> len(hash_secret("abc"))
        64
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def lookup_prefix(secret: str) -> str:
    """The non-secret index prefix of an opaque secret.

    Examples:
        >>> lookup_prefix("abcdefghijkl")
        'abcdefgh'
    """
    return secret[:LOOKUP_PREFIX_LENGTH]


def constant_time_equals(left: str, right: str) -> bool:
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


class TokenCodec:
    """Issue and validate HS256 bearer tokens.

    Args:
        secret: HMAC signing key. Must be at least 32 characters.
        ttl: Token lifetime.
    """

    __slots__: Final = ("_secret", "_ttl")

    _secret: str
    _ttl: timedelta

    def __init__(self, secret: str, *, ttl: timedelta = timedelta(hours=1)) -> None:
        if len(secret) < MIN_SIGNING_KEY_LENGTH:
            msg = (
                "auth.secret must be set to at least "
                f"{MIN_SIGNING_KEY_LENGTH} characters"
            )
            raise ConfigError(msg)
        self._secret = secret
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user: User) -> tuple[str, pendulum.DateTime]:
        """Sign a token for ``user``.

        Returns:
            The encoded token and its expiry.
        """
        now = utc_now()
        expires_at = now + self._ttl
        payload = {
            "user_id": str(user.id),
            "username": user.username,
            "role": user.role.value,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            # Two tokens issued in the same second still differ
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM), expires_at

    def validate(self, token: str) -> TokenClaims:
        """Verify a token's signature and time claims.

        Raises:
            TokenExpiredError: If the token is past ``exp``.
            InvalidTokenError: For any other verification failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "nbf"]},
            )
        except jwt.ExpiredSignatureError:
            msg = "Token has expired"
            raise TokenExpiredError(msg) from None
        except jwt.InvalidTokenError:
            msg = "Invalid token"
            raise InvalidTokenError(msg) from None
        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError:
            msg = "Invalid token"
            raise InvalidTokenError(msg) from None
