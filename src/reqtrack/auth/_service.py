# pyright: reportAny=false
"""Sessions: login, refresh rotation, logout and request authentication."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Final
from uuid import uuid4

from reqtrack.auth._models import (
    CleanupResult,
    LoginResult,
    Principal,
    RefreshToken,
    User,
)
from reqtrack.auth._passwords import PasswordHasher, validate_password_strength
from reqtrack.auth._security import SecurityLogger
from reqtrack.auth._tokens import (
    PAT_PREFIX,
    constant_time_equals,
    generate_secret,
    hash_secret,
    lookup_prefix,
)
from reqtrack.enums import AuthMethod
from reqtrack.exceptions import (
    AuthenticationError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    ValidationError,
)
from reqtrack.utils import format_timestamp, utc_now

if TYPE_CHECKING:
    from uuid import UUID

    from reqtrack.auth._pats import PATService
    from reqtrack.auth._tokens import TokenCodec
    from reqtrack.auth._users import UserService
    from reqtrack.enums import Role
    from reqtrack.store import Store, Transaction

__all__ = ["AuthService", "require_role"]

BEARER_SCHEME: Final = "bearer"


def require_role(principal: Principal, role: Role) -> None:
    """Raise unless the principal's role rank is at least ``role``'s.

    Raises:
        ForbiddenError: If the principal's role is insufficient.
    """
    if not principal.role.satisfies(role):
        msg = f"This operation requires the {role.value} role"
        raise ForbiddenError(msg)


class AuthService:
    """Password login, bearer tokens with rotating refresh tokens, and PATs.

    Args:
        store: Backing store.
        users: User service, for lookups and password updates.
        pats: PAT service, for the PAT authentication path.
        codec: Bearer token codec.
        hasher: Password hasher.
        security: Security event sink.
        refresh_ttl: Refresh token lifetime.
    """

    __slots__: Final = (
        "_codec",
        "_hasher",
        "_pats",
        "_refresh_ttl",
        "_security",
        "_store",
        "_users",
    )

    _store: Store
    _users: UserService
    _pats: PATService
    _codec: TokenCodec
    _hasher: PasswordHasher
    _security: SecurityLogger
    _refresh_ttl: timedelta

    def __init__(  # noqa: PLR0913
        self,
        store: Store,
        *,
        users: UserService,
        pats: PATService,
        codec: TokenCodec,
        hasher: PasswordHasher | None = None,
        security: SecurityLogger | None = None,
        refresh_ttl: timedelta = timedelta(days=30),
    ) -> None:
        self._store = store
        self._users = users
        self._pats = pats
        self._codec = codec
        self._hasher = hasher or PasswordHasher()
        self._security = security or SecurityLogger()
        self._refresh_ttl = refresh_ttl

    # -------------------------------------------------------------------------
    # Refresh tokens
    # -------------------------------------------------------------------------

    def _issue_refresh(self, tx: Transaction, user_id: UUID) -> str:
        secret = generate_secret()
        now = utc_now()
        tx.insert(
            "refresh_tokens",
            RefreshToken(
                id=uuid4(),
                user_id=user_id,
                token_hash=hash_secret(secret),
                lookup_prefix=lookup_prefix(secret),
                expires_at=now + self._refresh_ttl,
                created_at=now,
            ),
        )
        return secret

    @staticmethod
    def _find_refresh(tx: Transaction, secret: str) -> RefreshToken | None:
        digest = hash_secret(secret)
        candidates = tx.fetch_all(
            RefreshToken,
            "SELECT * FROM refresh_tokens WHERE lookup_prefix = ?",
            (lookup_prefix(secret),),
        )
        return next(
            (c for c in candidates if constant_time_equals(c.token_hash, digest)), None
        )

    def _session(self, tx: Transaction, user: User) -> LoginResult:
        token, expires_at = self._codec.issue(user)
        refresh = self._issue_refresh(tx, user.id)
        return LoginResult(
            token=token, refresh_token=refresh, expires_at=expires_at, user=user
        )

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        """Verify credentials and open a session.

        Raises:
            InvalidCredentialsError: If the username is unknown or the password
                is wrong. The two cases are indistinguishable to the caller.
        """
        self._security.auth_attempt(username)
        record = self._users.get_by_username(username)
        if record is None or not self._hasher.verify(record.password_hash, password):
            self._security.auth_failure("invalid_credentials", username=username)
            raise InvalidCredentialsError
        with self._store.transaction() as tx:
            if self._hasher.needs_rehash(record.password_hash):
                self._users.set_password_hash(tx, record.id, self._hasher.hash(password))
            result = self._session(tx, record.public())
        self._security.auth_success(record.id, record.username)
        return result

    def refresh(self, refresh_token: str) -> LoginResult:
        """Rotate a refresh token.

        The presented token is deleted and a new bearer token and refresh
        token are issued in the same transaction.

        Raises:
            InvalidRefreshTokenError: If the token is unknown, already rotated
                or expired.
        """
        now = utc_now()
        with self._store.transaction() as tx:
            stored = self._find_refresh(tx, refresh_token)
            if stored is None:
                self._security.auth_failure("invalid_refresh_token")
                raise InvalidRefreshTokenError
            if stored.expires_at <= now:
                self._security.auth_failure("expired_refresh_token")
                raise InvalidRefreshTokenError
            user = tx.fetch_one(
                User, "SELECT * FROM users WHERE id = ?", (str(stored.user_id),)
            )
            if user is None:
                raise InvalidRefreshTokenError
            # A concurrent refresh of the same token may have deleted the row
            # between the lookup and this write
            if tx.delete("refresh_tokens", str(stored.id)) != 1:
                self._security.auth_failure("invalid_refresh_token")
                raise InvalidRefreshTokenError
            result = self._session(tx, user)
        self._security.refresh_rotated(user.id)
        return result

    def logout(self, refresh_token: str) -> None:
        """Delete the session's refresh token. Unknown tokens are ignored."""
        with self._store.transaction() as tx:
            stored = self._find_refresh(tx, refresh_token)
            if stored is not None:
                _ = tx.delete("refresh_tokens", str(stored.id))

    def change_password(self, user_id: UUID, current: str, new: str) -> None:
        """Replace a user's password and end their other sessions.

        Raises:
            InvalidCredentialsError: If ``current`` is wrong.
            ValidationError: If ``new`` is too short or equals ``current``.
        """
        record = self._users.get_record(user_id)
        if not self._hasher.verify(record.password_hash, current):
            self._security.auth_failure("invalid_current_password", username=record.username)
            raise InvalidCredentialsError
        validate_password_strength(new, field="new_password")
        if new == current:
            msg = "New password must differ from the current password"
            raise ValidationError(msg, field="new_password")
        with self._store.transaction() as tx:
            self._users.set_password_hash(tx, record.id, self._hasher.hash(new))
            _ = tx.delete("refresh_tokens", str(record.id), key_column="user_id")

    # -------------------------------------------------------------------------
    # Request authentication
    # -------------------------------------------------------------------------

    def authenticate(self, authorization: str | None) -> Principal:
        """Resolve an ``Authorization`` header to a principal.

        A bearer value starting with ``mcp_pat_`` takes the PAT path; anything
        else is treated as a signed bearer token.

        Raises:
            AuthenticationError: If the header is missing or malformed.
            InvalidTokenError: If the token cannot be verified.
            TokenExpiredError: If the token has expired.
        """
        if not authorization:
            msg = "Authentication required"
            raise AuthenticationError(msg)
        scheme, _, credentials = authorization.strip().partition(" ")
        credentials = credentials.strip()
        if scheme.lower() != BEARER_SCHEME or not credentials:
            msg = "Authorization header must use the Bearer scheme"
            raise AuthenticationError(msg)

        if credentials.startswith(PAT_PREFIX):
            return Principal(user=self._pats.validate(credentials), method=AuthMethod.PAT)

        claims = self._codec.validate(credentials)
        with self._store.transaction() as tx:
            user = tx.fetch_one(
                User, "SELECT * FROM users WHERE id = ?", (str(claims.user_id),)
            )
        if user is None:
            self._security.auth_failure("unknown_user")
            msg = "Invalid token"
            raise InvalidTokenError(msg)
        return Principal(user=user, method=AuthMethod.JWT)

    def cleanup_expired_tokens(self) -> CleanupResult:
        """Delete expired refresh tokens and PATs. Safe to call repeatedly."""
        with self._store.transaction() as tx:
            refresh = tx.execute(
                "DELETE FROM refresh_tokens WHERE expires_at <= ?",
                (format_timestamp(utc_now()),),
            ).rowcount
        pats = self._pats.cleanup_expired()
        return CleanupResult(refresh_tokens=refresh, personal_access_tokens=pats)
